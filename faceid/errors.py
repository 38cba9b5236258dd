from typing import Optional


class FaceIDError(Exception):
    """Base error for the face identification core.

    ``status_code`` is only a hint for the HTTP layer; the core never looks at it.
    """

    code = "FACEID_ERROR"
    status_code = 500

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(message)

    def to_dict(self) -> dict:
        result = {"code": self.code, "message": self.message}
        if self.path:
            result["path"] = self.path
        return result


class ImageLoadError(FaceIDError):
    code = "IMAGE_LOAD_ERROR"
    status_code = 400


class NoFaceDetected(FaceIDError):
    code = "NO_FACE_DETECTED"
    status_code = 422


class ModelNotTrained(FaceIDError):
    code = "MODEL_NOT_TRAINED"
    status_code = 503

    def __init__(self, message: str = "Model not trained yet"):
        super().__init__(message)


class TrainingError(FaceIDError):
    code = "TRAINING_ERROR"
    status_code = 500


class CorpusIOError(FaceIDError):
    code = "CORPUS_IO_ERROR"
    status_code = 500


class EngineError(FaceIDError):
    code = "ENGINE_ERROR"
    status_code = 500


class InvalidIdentityError(FaceIDError):
    code = "INVALID_IDENTITY"
    status_code = 400


class EnrollmentError(FaceIDError):
    code = "ENROLLMENT_ERROR"
    status_code = 400
