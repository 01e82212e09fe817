"""Conduit API transport."""

from .auth import Authenticator, CertificateAuthenticator, TokenAuthenticator
from .client import ConduitClient
from .errors import (
    ConduitAuthError,
    ConduitClientError,
    ConduitErrorKind,
    ConduitInvalidParametersError,
    ConduitMalformedResponseError,
    ConduitMethodNotFoundError,
    ConduitTimeoutError,
    ConduitUnavailableError,
)
from .messages import ConduitRequest, ConduitResponse
from .retry import AttemptState, Retrier, RetryPolicy, RetryState

__all__ = [
    "AttemptState",
    "Authenticator",
    "CertificateAuthenticator",
    "ConduitAuthError",
    "ConduitClient",
    "ConduitClientError",
    "ConduitErrorKind",
    "ConduitInvalidParametersError",
    "ConduitMalformedResponseError",
    "ConduitMethodNotFoundError",
    "ConduitRequest",
    "ConduitResponse",
    "ConduitTimeoutError",
    "ConduitUnavailableError",
    "Retrier",
    "RetryPolicy",
    "RetryState",
    "TokenAuthenticator",
]
