"""
Exception hierarchy for journal-coach

Every error carries a request id, a caller-safe user_message and the
operation it came from, and logs itself when raised. Idempotency guards
(challenge already completed, post already liked) are outcome values,
not exceptions.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import asyncio
import logging

logger = logging.getLogger(__name__)


class JournalCoachError(Exception):
    """
    Base error. Logged at `log_level` on creation.

    Example:
        raise JournalCoachError(
            message="Failed to save journal entry",
            user_id="user-123",
            operation="append_journal_entry",
            context={"entry_id": "abc-123"}
        )
    """

    log_level = logging.ERROR

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        self._log_error()

    def _log_error(self) -> None:
        # 'message' and 'context' would clash with LogRecord attributes
        extra = {
            "error_type": type(self).__name__,
            "error_message": self.message,
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
        }
        if self.cause:
            extra["cause"] = str(self.cause)

        logger.log(
            self.log_level,
            f"{type(self).__name__}: {self.message}",
            extra=extra,
            exc_info=self.cause,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Body for API error responses"""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


class ValidationError(JournalCoachError):
    """Bad caller input: empty journal text, report window out of range, ..."""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


# ==========================================
# Store Errors
# ==========================================

class DatabaseError(JournalCoachError):
    """
    Base class for store-related errors
    """
    pass


class StoreUnavailableError(DatabaseError):
    """
    Backing store read/write failed or timed out.

    Never retried by the engine itself; the caller decides whether to retry.
    """

    def __init__(self, message: str = "Store unavailable", **kwargs):
        super().__init__(
            message=message,
            user_message="We couldn't reach your data right now. Please try again in a moment.",
            **kwargs
        )


class RecordNotFoundError(DatabaseError):
    """Requested record (user progress, artifact, report, post) does not exist"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


# ==========================================
# External API Errors
# ==========================================

class ExternalAPIError(JournalCoachError):
    """
    Base class for external API failures
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        self.service = service
        self.status_code = status_code
        kwargs.setdefault(
            "user_message",
            f"We're having trouble connecting to {service or 'an external service'}. Please try again later."
        )
        super().__init__(
            message=message,
            context={"service": service, "status_code": status_code},
            **kwargs
        )


class GenerationFailedError(ExternalAPIError):
    """
    Text-generation service failed.

    Always absorbed at the call site into a static fallback value.
    """

    log_level = logging.WARNING

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            service="Text generation",
            **kwargs
        )


# ==========================================
# Authorization
# ==========================================

class AuthorizationError(JournalCoachError):
    """User lacks permission for requested operation"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str = "Insufficient permissions",
        resource: Optional[str] = None,
        **kwargs
    ):
        self.resource = resource
        super().__init__(
            message=message,
            user_message=f"You don't have permission to access {resource or 'this resource'}.",
            context={"resource": resource},
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(JournalCoachError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> JournalCoachError:
    """
    Map a driver or timeout error onto the hierarchy.

    Our own errors pass through unchanged. Timeouts and every psycopg error
    become StoreUnavailableError; anything else becomes a plain
    JournalCoachError with the original kept as `cause`.
    """
    if isinstance(error, JournalCoachError):
        return error

    import psycopg

    details = dict(user_id=user_id, operation=operation, context=context, cause=error)

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return StoreUnavailableError(message=f"{operation} timed out", **details)
    if isinstance(error, psycopg.OperationalError):
        return StoreUnavailableError(message=f"Database connection failed: {error}", **details)
    if isinstance(error, psycopg.Error):
        return StoreUnavailableError(message=f"Database query failed: {error}", **details)

    return JournalCoachError(message=f"{operation} failed: {error}", **details)
