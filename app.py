#!/usr/bin/env python3
import argparse
import logging
import sys

from faceid import config
from faceid.errors import FaceIDError
from faceid.logging_setup import setup_logging
from faceid.service import build_service

logger = logging.getLogger("faceid")


def serve(args) -> None:
    from faceid.server import create_app
    from faceid.store import Database

    config.ensure_dirs()
    service = build_service(args.knowledge, args.cascade, args.threshold)
    service.rebuild()
    db = Database(args.db)
    app = create_app(service, db, temp_dir=args.temp, cors_origin=args.cors_origin)

    logger.info("Face Recognition API listening on %s:%s", args.host, args.port)
    logger.info("  GET  /apidocs        - Swagger UI documentation")
    logger.info("  POST /add-face       - Add face data (multipart: id, photos)")
    logger.info("  POST /detect-face    - Detect face (multipart: photo)")
    app.run(host=args.host, port=args.port, threaded=True)


def train(args) -> None:
    service = build_service(args.knowledge, args.cascade, args.threshold)
    summary = service.rebuild()
    if not summary.trained:
        print(f"No usable face images under {args.knowledge}. Enroll someone first.")
        return
    print(
        f"Trained on {summary.sample_count} images for {len(summary.identities)} users"
        f" ({len(summary.skipped)} files skipped)"
    )


def enroll(args) -> None:
    service = build_service(args.knowledge, args.cascade, args.threshold)
    result = service.enroll(args.user_id, args.photos)
    print(f"Saved {result.images_saved} images for {result.user_id}")


def identify(args) -> None:
    service = build_service(args.knowledge, args.cascade, args.threshold)
    service.rebuild()
    result = service.identify_detailed(args.photo)
    name = result.identity or "Unknown"
    print(f"{name} (distance {result.distance:.1f})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Face identification service using OpenCV LBPH")
    parser.add_argument("--knowledge", default=str(config.KNOWLEDGE_DIR), help="Enrollment corpus directory")
    parser.add_argument("--cascade", default=config.CASCADE_PATH, help="Haar cascade XML path")
    parser.add_argument(
        "--threshold", type=float, default=config.MATCH_THRESHOLD, help="LBPH distance threshold"
    )
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_parser = sub.add_parser("serve", help="Run the REST server")
    serve_parser.add_argument("--host", default=config.HOST, help="Bind host")
    serve_parser.add_argument("--port", type=int, default=config.PORT, help="Bind port")
    serve_parser.add_argument("--db", default=str(config.DB_PATH), help="SQLite database path")
    serve_parser.add_argument("--temp", default=str(config.TEMP_DIR), help="Upload scratch directory")
    serve_parser.add_argument("--cors-origin", default=None, help="CORS origin, or 'auto'")
    serve_parser.set_defaults(func=serve)

    train_parser = sub.add_parser("train", help="Rebuild the model from the corpus")
    train_parser.set_defaults(func=train)

    enroll_parser = sub.add_parser("enroll", help="Add photos for a user and retrain")
    enroll_parser.add_argument("user_id", help="User identity")
    enroll_parser.add_argument("photos", nargs="+", help="Photo files")
    enroll_parser.set_defaults(func=enroll)

    identify_parser = sub.add_parser("identify", help="Identify the person in a photo")
    identify_parser.add_argument("photo", help="Photo file")
    identify_parser.set_defaults(func=identify)

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.log_level)

    try:
        args.func(args)
    except FaceIDError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
