import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))

KNOWLEDGE_DIR = Path(os.getenv("FACEID_KNOWLEDGE_DIR", str(BASE_DIR / "knowledge")))
TEMP_DIR = Path(os.getenv("FACEID_TEMP_DIR", str(BASE_DIR / "temp")))
DB_PATH = Path(os.getenv("FACEID_DATABASE_PATH", str(BASE_DIR / "face_recognition.db")))
CASCADE_PATH = os.getenv("FACEID_CASCADE_PATH") or None
LOG_LEVEL = os.getenv("FACEID_LOG_LEVEL", "INFO")

# LBPH distance; lower is closer. A match needs distance < MATCH_THRESHOLD.
MATCH_THRESHOLD = float(os.getenv("FACEID_MATCH_THRESHOLD", "80.0"))

FACE_SIZE = (200, 200)
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png")

DETECT_SCALE_FACTOR = 1.1
DETECT_MIN_NEIGHBORS = 3
DETECT_MIN_SIZE = (30, 30)

LBPH_RADIUS = 1
LBPH_NEIGHBORS = 8
LBPH_GRID_X = 8
LBPH_GRID_Y = 8
LBPH_THRESHOLD = 123.0


def ensure_dirs() -> None:
    KNOWLEDGE_DIR.mkdir(parents=True, exist_ok=True)
    TEMP_DIR.mkdir(parents=True, exist_ok=True)
