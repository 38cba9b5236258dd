"""
Flask endpoint tests using the test client and the fake engine.
"""
import io

import cv2
import numpy as np
import pytest
from werkzeug.datastructures import FileStorage

from conftest import ALICE, FakeDetector, NearestClassifier, face_image, png_bytes
from faceid.server import create_app
from faceid.service import FaceIDService
from faceid.store import Database


@pytest.fixture
def db(tmp_path):
    return Database(tmp_path / "faces.db")


@pytest.fixture
def client(service, db, tmp_path):
    app = create_app(service, db, temp_dir=tmp_path / "temp")
    app.config["TESTING"] = True
    return app.test_client()


def upload(image, name="photo.png"):
    return io.BytesIO(png_bytes(image)), name


def add_alice(client):
    return client.post(
        "/add-face",
        data={
            "id": "alice",
            "photos": [upload(face_image(ALICE, seed=1), "a1.png"), upload(face_image(ALICE, seed=2), "a2.png")],
        },
        content_type="multipart/form-data",
    )


class TestAddFace:
    def test_enrolls_and_records_user(self, client, db, corpus):
        response = add_alice(client)
        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert body["data"] == {"user_id": "alice", "images_saved": 2}
        assert db.get_all_users() == ["alice"]
        assert len(db.get_user_images("alice")) == 2
        assert len(list((corpus / "alice").iterdir())) == 2

    def test_missing_id_is_bad_request(self, client):
        response = client.post(
            "/add-face",
            data={"photos": [upload(face_image(ALICE))]},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400
        assert response.get_json()["message"] == "User ID is required"

    def test_missing_photos_is_bad_request(self, client):
        response = client.post("/add-face", data={"id": "alice"}, content_type="multipart/form-data")
        assert response.status_code == 400

    def test_path_like_id_is_rejected(self, client):
        response = client.post(
            "/add-face",
            data={"id": "../evil", "photos": [upload(face_image(ALICE))]},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400
        assert response.get_json()["error"]["code"] == "INVALID_IDENTITY"


class TestDetectFace:
    def test_before_training_is_unavailable(self, client):
        response = client.post(
            "/detect-face", data={"photo": upload(face_image(ALICE))}, content_type="multipart/form-data"
        )
        assert response.status_code == 503
        assert response.get_json()["error"]["code"] == "MODEL_NOT_TRAINED"

    def test_identifies_enrolled_user_and_logs(self, client, db):
        add_alice(client)
        response = client.post(
            "/detect-face",
            data={"image": upload(face_image(ALICE, seed=9), "query.png")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 200
        assert response.get_json()["data"] == {"user_id": "alice", "detected": True}

        logs = db.get_recent_detections()
        assert logs[0]["detected_user_id"] == "alice"
        assert logs[0]["image_path"] == "query.png"
        assert db.get_user_stats("alice") == (2, 1)

    def test_photo_without_face_is_not_a_failure(self, client, db):
        add_alice(client)
        blank = np.zeros((50, 50), dtype=np.uint8)
        response = client.post(
            "/detect-face", data={"photo": upload(blank)}, content_type="multipart/form-data"
        )
        assert response.status_code == 200
        assert response.get_json()["data"] == {"user_id": None, "detected": False}
        assert db.get_recent_detections()[0]["detected_user_id"] is None

    def test_unreadable_image_is_bad_request(self, client):
        add_alice(client)
        response = client.post(
            "/detect-face",
            data={"photo": (io.BytesIO(b"garbage"), "x.jpg")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400

    def test_missing_file_is_bad_request(self, client):
        response = client.post("/detect-face", data={}, content_type="multipart/form-data")
        assert response.status_code == 400

    def test_temp_files_are_removed(self, client, tmp_path):
        add_alice(client)
        client.post("/detect-face", data={"photo": upload(face_image(ALICE))}, content_type="multipart/form-data")
        assert list((tmp_path / "temp").iterdir()) == []


def test_users_endpoint_lists_counts(client):
    add_alice(client)
    body = client.get("/users").get_json()
    assert body["data"]["trained"] is True
    assert body["data"]["users"] == [{"user_id": "alice", "images": 2, "detections": 0}]


def test_detections_endpoint_respects_limit(client, db):
    for _ in range(3):
        db.log_detection(None, None, "x.png")
    body = client.get("/detections?limit=2").get_json()
    assert len(body["data"]["detections"]) == 2


def test_failed_training_still_records_saved_photos(corpus, db, tmp_path):
    class RefusesToTrain(NearestClassifier):
        def train(self, samples, labels):
            raise cv2.error("engine refused")

    service = FaceIDService(corpus, FakeDetector(), RefusesToTrain)
    client = create_app(service, db, temp_dir=tmp_path / "temp").test_client()

    response = client.post(
        "/add-face",
        data={"id": "alice", "photos": [upload(face_image(ALICE), "a.png")]},
        content_type="multipart/form-data",
    )

    assert response.status_code == 500
    assert response.get_json()["error"]["code"] == "TRAINING_ERROR"
    assert [p.name for p in (corpus / "alice").iterdir()] == ["a.png"]
    assert db.get_all_users() == ["alice"]
    assert db.get_user_images("alice") == [str(corpus / "alice" / "a.png")]
    assert service.is_trained is False


def test_failed_upload_save_leaves_no_temp_file(client, tmp_path, monkeypatch):
    add_alice(client)

    def broken_save(self, dst, buffer_size=16384):
        with open(dst, "wb") as fh:
            fh.write(b"partial")
        raise OSError("disk full")

    monkeypatch.setattr(FileStorage, "save", broken_save)
    with pytest.raises(OSError):
        client.post(
            "/detect-face", data={"photo": upload(face_image(ALICE))}, content_type="multipart/form-data"
        )
    assert list((tmp_path / "temp").iterdir()) == []


class TestCors:
    @pytest.fixture
    def cors_client(self, service, db, tmp_path):
        app = create_app(service, db, temp_dir=tmp_path / "temp", cors_origin="auto")
        app.config["TESTING"] = True
        return app.test_client()

    def test_auto_origin_echoes_request_origin(self, cors_client):
        response = cors_client.get("/", headers={"Origin": "http://example.test"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://example.test"
        assert response.headers["Vary"] == "Origin"

    def test_preflight_returns_no_content(self, cors_client):
        response = cors_client.open(
            "/detect-face", method="OPTIONS", headers={"Origin": "http://example.test"}
        )
        assert response.status_code == 204
        assert "POST" in response.headers["Access-Control-Allow-Methods"]

    def test_no_cors_headers_by_default(self, client):
        response = client.get("/", headers={"Origin": "http://example.test"})
        assert "Access-Control-Allow-Origin" not in response.headers
