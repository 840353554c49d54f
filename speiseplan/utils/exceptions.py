"""
Speiseplan Custom Exceptions
============================

Exception hierarchy for the meal catalog with error codes, failure kinds,
context information, and user-friendly error messages.

Each class carries its defaults (error code, user message, recoverability) as
class attributes; constructor arguments override them per instance.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"

    # Feed and transport errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_NETWORK_ERROR = "F002"
    FEED_FETCH_TIMEOUT = "F003"
    FEED_BAD_STATUS = "F004"
    FEED_EMPTY_BODY = "F005"
    FEED_PARSE_ERROR = "F006"

    # Detail page errors (D001-D099)
    DETAIL_NETWORK_ERROR = "D001"
    DETAIL_BAD_STATUS = "D002"
    DETAIL_EMPTY_BODY = "D003"

    # Catalog errors (K001-K099)
    CATALOG_UNKNOWN_CANTEEN = "K001"
    CATALOG_OUTDATED = "K002"

    # System errors (S001-S099)
    SYSTEM_PERMISSION_DENIED = "S001"
    SYSTEM_UNEXPECTED = "S002"


class ErrorKind(str, Enum):
    """Caller-visible failure kinds.

    REQUEST: no response reached us (network down, timeout, bad URL).
    SERVER: a response arrived but its status or body is unusable.
    UNKNOWN_CANTEEN: the catalog has no entry for the requested canteen.
    OUTDATED_DATA: the catalog is stale and should be refreshed.
    """

    REQUEST = "request"
    SERVER = "server"
    UNKNOWN_CANTEEN = "unknown_canteen"
    OUTDATED_DATA = "outdated_data"


class SpeiseplanError(Exception):
    """Base exception for all Speiseplan errors."""

    default_code: Optional[ErrorCode] = None
    default_user_message: Optional[str] = None
    default_recoverable: bool = False

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: Optional[bool] = None,
    ):
        """Initialize Speiseplan error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code, the class default if omitted
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether retrying later may succeed
        """
        super().__init__(message)
        self.error_code = error_code or self.default_code
        self.context = dict(context or {})
        self.user_message = user_message or self.default_user_message or message
        self.recoverable = (
            self.default_recoverable if recoverable is None else recoverable
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


class ConfigurationError(SpeiseplanError):
    """Configuration-related errors."""

    default_code = ErrorCode.CONFIG_INVALID

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = dict(kwargs.pop("context", None) or {})
        if config_key:
            context["config_key"] = config_key
        kwargs.setdefault("user_message", f"Configuration error: {message}")
        super().__init__(message, context=context, **kwargs)


class TransportError(SpeiseplanError):
    """No response could be obtained for a URL."""

    default_code = ErrorCode.FEED_NETWORK_ERROR
    default_user_message = "Network connection failed"
    default_recoverable = True

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        context = dict(kwargs.pop("context", None) or {})
        if url:
            context["url"] = url
        super().__init__(message, context=context, **kwargs)


class _KindedError(SpeiseplanError):
    """Fetch-and-parse failure that is either REQUEST or SERVER kind.

    Subclasses name the default error code for each kind.
    """

    request_code: ErrorCode
    server_code: ErrorCode
    default_recoverable = True

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.SERVER,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        **kwargs,
    ):
        context = dict(context or {})
        context["kind"] = kind.value
        if error_code is None:
            error_code = (
                self.request_code if kind == ErrorKind.REQUEST else self.server_code
            )

        super().__init__(message, error_code=error_code, context=context, **kwargs)
        self.kind = kind


class IngestionError(_KindedError):
    """Feed refresh errors, either REQUEST or SERVER kind."""

    request_code = ErrorCode.FEED_NETWORK_ERROR
    server_code = ErrorCode.FEED_PARSE_ERROR

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.SERVER,
        feed_url: Optional[str] = None,
        **kwargs,
    ):
        """Initialize ingestion error.

        Args:
            message: Error message
            kind: ErrorKind.REQUEST or ErrorKind.SERVER
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for SpeiseplanError
        """
        context = dict(kwargs.pop("context", None) or {})
        if feed_url:
            context["feed_url"] = feed_url
        kwargs.setdefault("user_message", f"Meal plan refresh failed: {message}")
        super().__init__(message, kind, context=context, **kwargs)


class DetailError(_KindedError):
    """Meal detail page errors, either REQUEST or SERVER kind."""

    request_code = ErrorCode.DETAIL_NETWORK_ERROR
    server_code = ErrorCode.DETAIL_BAD_STATUS
    default_user_message = "Meal details are unavailable"

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.SERVER,
        meal_id: Optional[int] = None,
        **kwargs,
    ):
        context = dict(kwargs.pop("context", None) or {})
        if meal_id is not None:
            context["meal_id"] = meal_id
        super().__init__(message, kind, context=context, **kwargs)


class CatalogError(SpeiseplanError):
    """Catalog read errors."""

    kind: ErrorKind


class UnknownCanteenError(CatalogError):
    """The catalog holds no meals for the requested canteen."""

    kind = ErrorKind.UNKNOWN_CANTEEN
    default_code = ErrorCode.CATALOG_UNKNOWN_CANTEEN

    def __init__(self, canteen_name: str, **kwargs):
        kwargs.setdefault("user_message", f"Canteen '{canteen_name}' not found")
        super().__init__(
            f"Unknown canteen: {canteen_name}",
            context={"canteen": canteen_name},
            **kwargs,
        )
        self.canteen_name = canteen_name


class OutdatedDataError(CatalogError):
    """The catalog is older than the staleness window."""

    kind = ErrorKind.OUTDATED_DATA
    default_code = ErrorCode.CATALOG_OUTDATED
    default_user_message = "Meal plan is out of date"
    default_recoverable = True

    def __init__(self, last_updated: Optional[datetime] = None, **kwargs):
        context = {}
        if last_updated is not None:
            context["last_updated"] = last_updated.isoformat()
        super().__init__(
            "Catalog data is outdated and must be refreshed",
            context=context,
            **kwargs,
        )
        self.last_updated = last_updated


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> SpeiseplanError:
    """Convert any exception into a SpeiseplanError and log it.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        The exception itself if it already is a SpeiseplanError, otherwise a
        categorized wrapper
    """
    if isinstance(exception, SpeiseplanError):
        error = exception
    else:
        context = {
            **(context or {}),
            "operation": operation,
            "original_exception_type": type(exception).__name__,
        }
        detail = f"during {operation}: {exception}"

        if isinstance(exception, (ConnectionError, TimeoutError)):
            error = TransportError(f"Network error {detail}", context=context)
        elif isinstance(exception, PermissionError):
            error = SpeiseplanError(
                f"Permission denied {detail}",
                error_code=ErrorCode.SYSTEM_PERMISSION_DENIED,
                context=context,
                user_message="Access denied",
            )
        else:
            error = SpeiseplanError(
                f"Unexpected error {detail}",
                error_code=ErrorCode.SYSTEM_UNEXPECTED,
                context=context,
                user_message="An unexpected error occurred",
                recoverable=True,
            )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception."""
    if isinstance(exception, SpeiseplanError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
