from typing import Any, Dict, Optional

class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class AIError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=503,
            error_code="AI_SERVICE_UNAVAILABLE",
            details=details
        )

class AIKillSwitchError(AppException):
    def __init__(self):
        super().__init__(
            message="AI services are currently offline for maintenance.",
            status_code=503,
            error_code="AI_KILL_SWITCH_ACTIVE"
        )

class InvalidDocumentError(AppException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=400,
            error_code="INVALID_DOCUMENT"
        )

class StageError(AppException):
    """A submission stopped at one pipeline stage. The partial state is left in place."""
    def __init__(
        self,
        stage: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        data: Any = None
    ):
        self.stage = stage
        # What was stored before the failure, returned alongside the error
        self.data = data
        super().__init__(
            message=message,
            status_code=502,
            error_code="STAGE_FAILED",
            details={"stage": stage, **(details or {})}
        )

class FeedbackParseError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=502,
            error_code="FEEDBACK_PARSE_FAILED",
            details=details
        )

class RasterizationError(AppException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=422,
            error_code="RASTERIZATION_FAILED"
        )

class StorageError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="STORAGE_ERROR",
            details=details
        )

class CorruptRecordError(AppException):
    def __init__(self, key: str):
        super().__init__(
            message=f"Stored record '{key}' could not be parsed.",
            status_code=500,
            error_code="CORRUPT_RECORD",
            details={"key": key}
        )

class ResumeNotFoundError(AppException):
    def __init__(self, resume_id: str):
        super().__init__(
            message=f"Resume {resume_id} not found",
            status_code=404,
            error_code="RESUME_NOT_FOUND"
        )

class FeedbackPendingError(AppException):
    def __init__(self, resume_id: str):
        super().__init__(
            message=f"Resume {resume_id} has no feedback yet.",
            status_code=409,
            error_code="FEEDBACK_PENDING"
        )
