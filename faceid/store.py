import sqlite3
import time
from pathlib import Path
from typing import List, Optional, Tuple, Union


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S")


class Database:
    """SQLite record of enrolled users, their images and identification attempts."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.init_db()

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self.connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS face_images (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    image_path TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE
                );
                CREATE TABLE IF NOT EXISTS detection_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    detected_user_id TEXT,
                    confidence REAL,
                    image_path TEXT,
                    detected_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_users_user_id ON users(user_id);
                CREATE INDEX IF NOT EXISTS idx_face_images_user_id ON face_images(user_id);
                CREATE INDEX IF NOT EXISTS idx_detection_logs_detected_at
                    ON detection_logs(detected_at);
                """
            )

    def upsert_user(self, user_id: str) -> None:
        now = now_iso()
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO users (user_id, created_at, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET updated_at = excluded.updated_at
                """,
                (user_id, now, now),
            )

    def insert_face_image(self, user_id: str, image_path: str) -> int:
        with self.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO face_images (user_id, image_path, created_at) VALUES (?, ?, ?)",
                (user_id, image_path, now_iso()),
            )
            return cursor.lastrowid

    def log_detection(
        self,
        detected_user_id: Optional[str],
        confidence: Optional[float],
        image_path: Optional[str],
    ) -> int:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO detection_logs (detected_user_id, confidence, image_path, detected_at)
                VALUES (?, ?, ?, ?)
                """,
                (detected_user_id, confidence, image_path, now_iso()),
            )
            return cursor.lastrowid

    def get_user_images(self, user_id: str) -> List[str]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT image_path FROM face_images WHERE user_id = ? ORDER BY id DESC",
                (user_id,),
            ).fetchall()
        return [row["image_path"] for row in rows]

    def get_user_stats(self, user_id: str) -> Tuple[int, int]:
        with self.connect() as conn:
            image_count = conn.execute(
                "SELECT COUNT(*) FROM face_images WHERE user_id = ?", (user_id,)
            ).fetchone()[0]
            detection_count = conn.execute(
                "SELECT COUNT(*) FROM detection_logs WHERE detected_user_id = ?", (user_id,)
            ).fetchone()[0]
        return image_count, detection_count

    def get_all_users(self) -> List[str]:
        with self.connect() as conn:
            rows = conn.execute("SELECT user_id FROM users ORDER BY id DESC").fetchall()
        return [row["user_id"] for row in rows]

    def get_recent_detections(self, limit: int = 20) -> List[dict]:
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT detected_user_id, confidence, image_path, detected_at
                FROM detection_logs
                ORDER BY id DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [dict(row) for row in rows]
