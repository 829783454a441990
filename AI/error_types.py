"""
LLM Error Types - Structured Error Handling

Provides structured error representation for completion provider failures.
Failures below the message pipeline are returned as classified values
(CompletionResult) instead of raised, so the pipeline is the single place
that decides what the user gets to see.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

CONNECTION_FRIENDLY_MESSAGE = "Sorry, I couldn't connect to the AI service :c"
API_FRIENDLY_MESSAGE = "Sorry, something went wrong with the AI service :c"
GENERIC_FRIENDLY_MESSAGE = "An unexpected error occurred :c"

# Client error statuses that will fail the same way on every attempt
NON_RETRYABLE_STATUSES = frozenset({400, 401, 403})


class ErrorKind(str, Enum):
    """Classification of a completion failure."""
    CONFIG = "config_error"
    INVALID_REQUEST = "invalid_request"
    HTTP_CLIENT = "http_client_error"
    HTTP_ERROR = "http_error"
    TRANSPORT = "transport_error"
    API_ERROR = "api_error"
    UNEXPECTED_RESPONSE = "unexpected_response"
    INVALID_RESPONSE = "invalid_response"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.HTTP_ERROR, ErrorKind.TRANSPORT)


_FRIENDLY_MESSAGES = {
    ErrorKind.HTTP_CLIENT: CONNECTION_FRIENDLY_MESSAGE,
    ErrorKind.HTTP_ERROR: CONNECTION_FRIENDLY_MESSAGE,
    ErrorKind.TRANSPORT: CONNECTION_FRIENDLY_MESSAGE,
    ErrorKind.API_ERROR: API_FRIENDLY_MESSAGE,
}


@dataclass(frozen=True)
class LLMError:
    """
    Represents an LLM error in a structured format.

    Attributes:
        kind: Failure classification
        error_type: Short type label (e.g. "HTTP 401", "ClientConnectorError")
        error_message: Detailed error message
        friendly_message: User-friendly error message
        status: HTTP status code, when the failure came from a response
    """
    kind: ErrorKind
    error_type: str
    error_message: str
    friendly_message: str
    status: Optional[int] = None

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def to_detailed_string(self) -> str:
        """
        Returns detailed error string in format: 'ErrorType: message'

        Returns:
            Formatted error string with type and message
        """
        return f"{self.error_type}: {self.error_message}"

    def to_friendly_string(self) -> str:
        """
        Returns user-friendly error message.

        Returns:
            Friendly error message
        """
        return self.friendly_message

    @classmethod
    def create(
        cls,
        kind: ErrorKind,
        error_message: str,
        error_type: Optional[str] = None,
        status: Optional[int] = None
    ) -> "LLMError":
        """
        Create an error, deriving the type label and friendly message from the kind.

        Args:
            kind: Failure classification
            error_message: Detailed error message
            error_type: Optional custom type label (defaults to the kind value)
            status: Optional HTTP status code

        Returns:
            LLMError instance
        """
        return cls(
            kind=kind,
            error_type=error_type or kind.value,
            error_message=error_message,
            friendly_message=_FRIENDLY_MESSAGES.get(kind, GENERIC_FRIENDLY_MESSAGE),
            status=status
        )

    @classmethod
    def from_status(cls, status: int, body: Any) -> "LLMError":
        """Classify a non-2xx HTTP response."""
        kind = ErrorKind.HTTP_CLIENT if status in NON_RETRYABLE_STATUSES else ErrorKind.HTTP_ERROR
        return cls.create(kind, _truncate(body), error_type=f"HTTP {status}", status=status)

    @classmethod
    def from_exception(cls, exception: BaseException) -> "LLMError":
        """Classify a network/transport level exception."""
        return cls.create(
            ErrorKind.TRANSPORT,
            str(exception) or repr(exception),
            error_type=type(exception).__name__
        )


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of one completion: either text or a classified error."""
    text: Optional[str] = None
    error: Optional[LLMError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, text: str) -> "CompletionResult":
        return cls(text=text)

    @classmethod
    def failure(cls, error: LLMError) -> "CompletionResult":
        return cls(error=error)


def _truncate(value: Any, limit: int = 500) -> str:
    text = value if isinstance(value, str) else repr(value)
    if len(text) > limit:
        return text[:limit] + "..."
    return text
