"""Exception hierarchy.

All custom exceptions inherit from VectorizeSearchError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "VEC-1000"
    CONFIGURATION_ERROR = "VEC-1001"
    VALIDATION_ERROR = "VEC-1002"

    # Remote call errors (2xxx)
    REMOTE_CALL_FAILED = "VEC-2000"
    EMBEDDING_SERVICE_ERROR = "VEC-2001"
    VECTOR_STORE_ERROR = "VEC-2002"
    INDEX_NOT_FOUND = "VEC-2003"

    # Metadata index errors (3xxx)
    METADATA_INDEX_LIMIT = "VEC-3000"
    METADATA_INDEX_EXISTS = "VEC-3001"
    METADATA_INDEX_NOT_FOUND = "VEC-3002"
    CONFIRMATION_MISMATCH = "VEC-3003"

    # Engine errors (4xxx)
    FLUSH_INCOMPLETE = "VEC-4000"


class VectorizeSearchError(Exception):
    """Base exception for all vectorize-search errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a serializable dictionary."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(VectorizeSearchError):
    """Required credentials or settings are missing."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(VectorizeSearchError):
    """A local check refused the operation before any remote call."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class RemoteCallError(VectorizeSearchError):
    """A call to the Cloudflare API failed or returned a malformed body.

    Attributes:
        status_code: Upstream HTTP status, if a response was received.
        errors: Upstream ``errors`` array, if the body carried one.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.REMOTE_CALL_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)

    @property
    def status_code(self) -> int | None:
        return self.details.get("status_code")

    @property
    def errors(self) -> list[Any]:
        return self.details.get("errors", [])


class EmbeddingError(RemoteCallError):
    """Workers AI embedding call failed."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class VectorStoreError(RemoteCallError):
    """Vectorize call failed."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VECTOR_STORE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class FlushIncompleteError(VectorizeSearchError):
    """The flush sweep stopped at its iteration cap with vectors remaining."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.FLUSH_INCOMPLETE, details)
