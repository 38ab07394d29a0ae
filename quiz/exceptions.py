"""
Quiz Portal Exceptions

Domain errors raised by the managers and rendered by the API layer.
"""

from typing import Optional, Dict, Any


class QuizPortalError(Exception):
    """Base exception for quiz portal errors."""

    status_code = 400

    def __init__(
        self,
        message: str,
        code: str = "QUIZ_PORTAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(QuizPortalError):
    """Raised when a quiz, attempt, user or announcement does not exist."""

    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None, message: str = None):
        msg = message or f"{resource.capitalize()} not found"
        super().__init__(
            message=msg,
            code=f"{resource.upper()}_NOT_FOUND",
            details={"id": resource_id} if resource_id is not None else {},
        )


class ValidationError(QuizPortalError):
    """Raised when a payload is well-formed but not acceptable."""

    def __init__(self, message: str, field: str = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field} if field else {},
        )


class PermissionDeniedError(QuizPortalError):
    """Raised when the caller may not act on a resource."""

    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message=message, code="PERMISSION_DENIED")


class ConflictError(QuizPortalError):
    """Raised on uniqueness violations (username, email)."""

    status_code = 409

    def __init__(self, message: str, field: str = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            details={"field": field} if field else {},
        )


class AttemptLimitError(QuizPortalError):
    """Raised when a student has used all attempts for a quiz."""

    status_code = 403

    def __init__(self, quiz_id: int, max_attempts: int):
        super().__init__(
            message="Maximum attempts reached",
            code="ATTEMPT_LIMIT_REACHED",
            details={"quiz_id": quiz_id, "max_attempts": max_attempts},
        )


class QuizUnavailableError(QuizPortalError):
    """Raised when a quiz is outside its window or not published."""

    status_code = 403

    def __init__(self, message: str, quiz_id: int = None):
        super().__init__(
            message=message,
            code="QUIZ_UNAVAILABLE",
            details={"quiz_id": quiz_id} if quiz_id is not None else {},
        )
