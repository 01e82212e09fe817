"""Conduit request and response envelopes."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from .errors import (
    AUTH_ERROR_CODES,
    ConduitAuthError,
    ConduitClientError,
    ConduitInvalidParametersError,
    ConduitMalformedResponseError,
    ConduitMethodNotFoundError,
)

# Phabricator may prefix JSON output to defeat script-tag hijacking
JSON_HIJACK_PREFIX = "for(;;);"

_METHOD_MISSING_RE = re.compile(r"method .*does not exist", re.IGNORECASE)


@dataclass(frozen=True)
class ConduitRequest:
    """A single Conduit call: method name plus parameters."""

    method: str
    params: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.method or not self.method.strip():
            raise ValueError("Conduit method name cannot be empty")

    def encode(self, auth: dict[str, Any]) -> dict[str, str]:
        """Encode as the form fields Conduit expects.

        Args:
            auth: Contents of the ``__conduit__`` block (token or session)

        Raises:
            ConduitInvalidParametersError: Parameters are not JSON serializable
        """
        payload = dict(self.params)
        payload["__conduit__"] = auth
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise ConduitInvalidParametersError(
                f"Parameters are not JSON serializable: {e}",
                method=self.method,
                params=self.params,
            ) from e
        return {"params": body, "output": "json", "__conduit__": "1"}


@dataclass(frozen=True)
class ConduitResponse:
    """Outcome of a Conduit call.

    Exactly one of success (``error is None``, ``result`` holds the decoded
    payload, which may itself be ``None``) or failure (``error`` set,
    ``result`` is ``None``).
    """

    result: Any = None
    error: ConduitClientError | None = None

    def __post_init__(self) -> None:
        if self.error is not None and self.result is not None:
            raise ValueError("ConduitResponse cannot carry both a result and an error")

    @classmethod
    def success(cls, result: Any) -> ConduitResponse:
        return cls(result=result)

    @classmethod
    def failure(cls, error: ConduitClientError) -> ConduitResponse:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the result, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.result


def classify_remote_error(
    request: ConduitRequest, error_code: str, error_info: str | None
) -> ConduitClientError:
    """Map a Conduit ``error_code``/``error_info`` pair onto the taxonomy."""
    info = error_info or ""
    kwargs: dict[str, Any] = {
        "method": request.method,
        "params": request.params,
        "error_code": error_code,
        "error_info": error_info,
    }
    if error_code in AUTH_ERROR_CODES:
        return ConduitAuthError(f"Authentication failed: {info or error_code}", **kwargs)
    if _METHOD_MISSING_RE.search(info):
        return ConduitMethodNotFoundError(
            f"Conduit method '{request.method}' does not exist", **kwargs
        )
    return ConduitInvalidParametersError(f"Conduit call rejected: {info or error_code}", **kwargs)


def decode_envelope(request: ConduitRequest, text: str) -> ConduitResponse:
    """Decode a Conduit JSON envelope into a ConduitResponse."""
    body = text.strip()
    if body.startswith(JSON_HIJACK_PREFIX):
        body = body[len(JSON_HIJACK_PREFIX) :]

    try:
        data = json.loads(body)
    except ValueError as e:
        return ConduitResponse.failure(
            ConduitMalformedResponseError(
                f"Invalid JSON response: {e}", method=request.method, params=request.params
            )
        )

    if not isinstance(data, dict) or ("result" not in data and "error_code" not in data):
        return ConduitResponse.failure(
            ConduitMalformedResponseError(
                "Response is not a Conduit envelope",
                method=request.method,
                params=request.params,
            )
        )

    error_code = data.get("error_code")
    if error_code:
        return ConduitResponse.failure(
            classify_remote_error(request, str(error_code), data.get("error_info"))
        )

    return ConduitResponse.success(data.get("result"))
