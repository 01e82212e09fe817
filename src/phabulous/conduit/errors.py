"""Conduit failure taxonomy."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ConduitErrorKind(str, Enum):
    """Classification of a failed Conduit call."""

    AUTHENTICATION_FAILED = "authentication_failed"
    METHOD_NOT_FOUND = "method_not_found"
    INVALID_PARAMETERS = "invalid_parameters"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed_response"

    @property
    def retryable(self) -> bool:
        """Whether a failure of this kind is retried with backoff."""
        return self in (ConduitErrorKind.REMOTE_UNAVAILABLE, ConduitErrorKind.TIMEOUT)


# Remote error codes that mean the caller's credentials were rejected
AUTH_ERROR_CODES = frozenset(
    {
        "ERR-INVALID-AUTH",
        "ERR-INVALID-SESSION",
        "ERR-INVALID-CERTIFICATE",
        "ERR-NO-CERTIFICATE",
        "ERR-INVALID-USER",
        "ERR-INVALID-TOKEN",
    }
)


def summarize_params(params: dict[str, Any] | None) -> str:
    """Summarize request parameters for diagnostics.

    Only parameter names are kept; values may be large or sensitive and the
    ``__conduit__`` auth block is never included.
    """
    if not params:
        return "{}"
    keys = sorted(k for k in params if k != "__conduit__")
    return "{" + ", ".join(keys) + "}"


class ConduitClientError(Exception):
    """Base exception for Conduit client errors."""

    kind: ConduitErrorKind = ConduitErrorKind.INVALID_PARAMETERS

    def __init__(
        self,
        message: str,
        *,
        method: str = "",
        params: dict[str, Any] | None = None,
        error_code: str | None = None,
        error_info: str | None = None,
    ) -> None:
        self.message = message
        self.method = method
        self.params_summary = summarize_params(params)
        self.error_code = error_code
        self.error_info = error_info
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __str__(self) -> str:
        parts = [self.message]
        if self.method:
            parts.append(f"method={self.method}")
            parts.append(f"params={self.params_summary}")
        if self.error_code:
            parts.append(f"code={self.error_code}")
        if self.error_info and self.error_info not in self.message:
            parts.append(f"remote={self.error_info}")
        return " | ".join(parts)


class ConduitAuthError(ConduitClientError):
    """Authentication failed."""

    kind = ConduitErrorKind.AUTHENTICATION_FAILED


class ConduitMethodNotFoundError(ConduitClientError):
    """The remote installation does not expose the method."""

    kind = ConduitErrorKind.METHOD_NOT_FOUND


class ConduitInvalidParametersError(ConduitClientError):
    """The call was rejected because of its parameters."""

    kind = ConduitErrorKind.INVALID_PARAMETERS


class ConduitUnavailableError(ConduitClientError):
    """The remote could not be reached or returned a server error."""

    kind = ConduitErrorKind.REMOTE_UNAVAILABLE


class ConduitTimeoutError(ConduitClientError):
    """The call did not complete in time or was cancelled."""

    kind = ConduitErrorKind.TIMEOUT


class ConduitMalformedResponseError(ConduitClientError):
    """The response envelope could not be decoded."""

    kind = ConduitErrorKind.MALFORMED_RESPONSE
