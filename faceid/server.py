import logging
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Optional, Union

from flask import Flask, jsonify, make_response, request
from flasgger import Swagger
from werkzeug.utils import secure_filename

from . import config
from .errors import FaceIDError, NoFaceDetected
from .service import FaceIDService
from .store import Database

logger = logging.getLogger(__name__)


def api_response(success: bool, message: str, data: Optional[dict] = None, status: int = 200):
    body = {"success": success, "message": message}
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def create_app(
    service: FaceIDService,
    db: Database,
    temp_dir: Union[str, Path] = config.TEMP_DIR,
    cors_origin: Optional[str] = None,
) -> Flask:
    temp_dir = Path(temp_dir)
    temp_dir.mkdir(parents=True, exist_ok=True)

    app = Flask(__name__)
    Swagger(
        app,
        template={
            "info": {
                "title": "Face Recognition API",
                "version": "1.0.0",
                "description": "Face recognition and detection using OpenCV and LBPH",
            }
        },
    )

    if cors_origin:
        @app.before_request
        def handle_preflight():
            if request.method == "OPTIONS":
                return make_response("", 204)

        @app.after_request
        def add_cors_headers(response):
            origin = cors_origin.strip()
            if origin == "auto":
                origin = request.headers.get("Origin", "*")
                response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            return response

    @app.errorhandler(FaceIDError)
    def handle_faceid_error(exc: FaceIDError):
        logger.error("%s: %s", exc.code, exc.message)
        body = {"success": False, "message": exc.message, "error": exc.to_dict()}
        return jsonify(body), exc.status_code

    @app.get("/")
    def index():
        return "Face Recognition API - Visit /apidocs for documentation"

    @app.post("/add-face")
    def add_face():
        """Add face photos for a user and retrain the model.
        ---
        tags:
          - Face Recognition
        consumes:
          - multipart/form-data
        parameters:
          - name: id
            in: formData
            type: string
            required: true
          - name: photos
            in: formData
            type: file
            required: true
            description: One or more JPEG/PNG photos of the user.
        responses:
          200:
            description: Face data added and model trained
          400:
            description: Missing user id or photos
          500:
            description: Training failed
        """
        user_id = (request.form.get("id") or "").strip()
        if not user_id:
            return api_response(False, "User ID is required", status=400)

        uploads = [f for f in request.files.getlist("photos") if f and f.filename is not None]
        if not uploads:
            return api_response(False, "No photos were uploaded", status=400)

        upload_dir = Path(tempfile.mkdtemp(dir=temp_dir))
        try:
            paths = []
            for upload in uploads:
                filename = secure_filename(upload.filename or "") or f"{uuid.uuid4()}.jpg"
                path = upload_dir / filename
                if path.exists():
                    path = upload_dir / f"{uuid.uuid4()}{path.suffix}"
                upload.save(str(path))
                paths.append(path)

            saved = service.save_photos(user_id, paths)
        finally:
            shutil.rmtree(upload_dir, ignore_errors=True)

        # the photos are in the corpus now, record them even if training fails
        db.upsert_user(user_id)
        for image_path in saved:
            db.insert_face_image(user_id, image_path)

        service.rebuild()
        logger.info("Enrolled %d images for user %s", len(saved), user_id)
        return api_response(
            True,
            "Face data added and model trained successfully",
            {"user_id": user_id, "images_saved": len(saved)},
        )

    @app.post("/detect-face")
    def detect_face():
        """Identify the person in an uploaded photo.
        ---
        tags:
          - Face Recognition
        consumes:
          - multipart/form-data
        parameters:
          - name: photo
            in: formData
            type: file
            required: true
            description: Photo to identify. The field may also be named "image".
        responses:
          200:
            description: Detection completed; user_id is null when nobody matched
          400:
            description: No image uploaded or unreadable image
          503:
            description: Model not trained yet
        """
        upload = request.files.get("photo") or request.files.get("image")
        if upload is None:
            return api_response(
                False, "No image uploaded. Use 'photo' or 'image' as field name", status=400
            )

        suffix = Path(upload.filename or "").suffix.lower()
        if suffix not in config.IMAGE_EXTENSIONS:
            suffix = ".jpg"
        temp_path = temp_dir / f"{uuid.uuid4()}{suffix}"
        image_ref = upload.filename or temp_path.name

        try:
            upload.save(str(temp_path))
            result = service.identify_detailed(temp_path)
        except NoFaceDetected:
            db.log_detection(None, None, image_ref)
            return api_response(
                True, "No face detected in image", {"user_id": None, "detected": False}
            )
        finally:
            temp_path.unlink(missing_ok=True)

        db.log_detection(result.identity, result.distance, image_ref)
        detected = result.identity is not None
        message = "Face detected successfully" if detected else "No matching face found"
        return api_response(True, message, {"user_id": result.identity, "detected": detected})

    @app.get("/users")
    def users():
        """List enrolled users with image and detection counts.
        ---
        tags:
          - Records
        responses:
          200:
            description: Enrolled users
        """
        rows = []
        for user_id in db.get_all_users():
            image_count, detection_count = db.get_user_stats(user_id)
            rows.append(
                {"user_id": user_id, "images": image_count, "detections": detection_count}
            )
        return api_response(True, f"{len(rows)} users", {"users": rows, "trained": service.is_trained})

    @app.get("/detections")
    def detections():
        """Recent identification attempts.
        ---
        tags:
          - Records
        parameters:
          - name: limit
            in: query
            type: integer
            default: 20
        responses:
          200:
            description: Detection log entries, newest first
        """
        limit = request.args.get("limit", default=20, type=int)
        limit = max(1, min(limit, 500))
        return api_response(True, "Recent detections", {"detections": db.get_recent_detections(limit)})

    return app
