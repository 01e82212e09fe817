"""Phabricator Conduit API client."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import httpx

from .auth import Authenticator, CertificateAuthenticator, TokenAuthenticator
from .errors import (
    ConduitAuthError,
    ConduitClientError,
    ConduitInvalidParametersError,
    ConduitMethodNotFoundError,
    ConduitTimeoutError,
    ConduitUnavailableError,
)
from .messages import ConduitRequest, ConduitResponse, decode_envelope
from .methods import CONDUIT_PING
from .retry import Retrier, RetryPolicy

if TYPE_CHECKING:
    from ..models.phabulous_config import ConduitConfig

logger = logging.getLogger(__name__)


class ConduitClient:
    """Phabricator Conduit API client.

    Provides a thin wrapper around the Conduit HTTP API with:
    - API token or certificate session authentication
    - Response envelope decoding and error classification
    - Bounded retries for transient failures
    """

    def __init__(
        self,
        url: str,
        authenticator: Authenticator | None = None,
        *,
        timeout: float = 30.0,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the Conduit client.

        Args:
            url: Base URL of the Phabricator installation
            authenticator: Supplies credentials for each call
            timeout: Per-request HTTP timeout in seconds
            retry_policy: Backoff parameters for transient failures
            sleep: Delay function used between retries
            clock: Monotonic clock used for deadlines
        """
        self.url = url.rstrip("/")
        self.authenticator = authenticator
        self.timeout = timeout
        self._api_url = f"{self.url}/api/"
        self._retrier = Retrier(retry_policy, sleep=sleep, clock=clock)
        self._client = httpx.Client(
            headers={"Accept": "application/json"},
            timeout=timeout,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> ConduitClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retrier.policy

    @classmethod
    def from_config(cls, config: ConduitConfig, **kwargs: Any) -> ConduitClient:
        """Create a client from the conduit section of the configuration.

        An API token is preferred; a user certificate is used otherwise.

        Raises:
            ConduitAuthError: If no credentials are configured
        """
        if not config.url:
            raise ConduitClientError("No Conduit URL configured (conduit.url)")

        client = cls(
            config.url,
            timeout=config.timeout,
            retry_policy=config.retry.to_policy(),
            **kwargs,
        )

        if config.token:
            logger.debug("Using Conduit API token")
            client.authenticator = TokenAuthenticator(config.token)
        elif config.user and config.certificate:
            logger.debug("Using Conduit certificate for user %s", config.user)
            client.authenticator = CertificateAuthenticator(
                config.user,
                config.certificate,
                connect=client._call_unauthenticated,
                host=client.url,
            )
        else:
            client.close()
            logger.error("No Conduit credentials found")
            raise ConduitAuthError(
                "No Conduit credentials found. Either:\n"
                "  - Set conduit.token (or PHABULOUS_CONDUIT_TOKEN)\n"
                "  - Set conduit.user and conduit.certificate"
            )
        return client

    def execute(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> ConduitResponse:
        """Call a Conduit method and return its outcome.

        Classified failures are returned in ``response.error`` rather than
        raised.

        Args:
            method: Conduit method name (e.g. ``diffusion.querycommits``)
            params: Method parameters
            timeout: Overall budget for the call including retries
            cancel: Set to abandon the call; surfaces as a timeout

        Raises:
            ValueError: If method is empty
        """
        request = ConduitRequest(method, dict(params or {}))
        refresh = self.authenticator.refresh if self.authenticator is not None else None
        return self._retrier.run(
            request,
            lambda remaining: self._attempt(request, remaining),
            timeout=timeout,
            cancel=cancel,
            refresh_auth=refresh,
        )

    def call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> Any:
        """Call a Conduit method and return the decoded result.

        Raises:
            ConduitAuthError: Credentials rejected
            ConduitMethodNotFoundError: Method not available remotely
            ConduitInvalidParametersError: Parameters rejected
            ConduitUnavailableError: Remote unreachable after retries
            ConduitTimeoutError: Deadline passed or call cancelled
            ConduitMalformedResponseError: Undecodable response
        """
        return self.execute(method, params, timeout=timeout, cancel=cancel).unwrap()

    def ping(self) -> Any:
        """Check connectivity and credentials (``conduit.ping``)."""
        return self.call(CONDUIT_PING)

    def _attempt(self, request: ConduitRequest, remaining: float | None) -> ConduitResponse:
        """Perform one authenticated attempt."""
        try:
            auth = self.authenticator.conduit_block() if self.authenticator is not None else {}
            form = request.encode(auth)
        except ConduitClientError as e:
            return ConduitResponse.failure(e)
        return self._post(request, form, remaining)

    def _call_unauthenticated(self, method: str, params: dict[str, Any]) -> Any:
        """Call a method without credentials (used to open sessions)."""
        request = ConduitRequest(method, params)
        return self._retrier.run(
            request,
            lambda remaining: self._post(request, request.encode({}), remaining),
        ).unwrap()

    def _post(
        self, request: ConduitRequest, form: dict[str, str], remaining: float | None
    ) -> ConduitResponse:
        method = request.method
        attempt_timeout = self.timeout if remaining is None else min(self.timeout, remaining)

        # Parameter values only at DEBUG to keep them out of INFO logs
        logger.debug("Conduit %s: params=%s", method, request.params)

        start_time = time.monotonic()
        try:
            response = self._client.post(
                f"{self._api_url}{method}", data=form, timeout=attempt_timeout
            )
        except httpx.TimeoutException as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.warning("Conduit %s timed out after %.0fms: %s", method, elapsed_ms, e)
            return ConduitResponse.failure(
                ConduitTimeoutError(
                    f"Request timed out: {e}", method=method, params=request.params
                )
            )
        except httpx.RequestError as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.warning("Conduit %s failed after %.0fms: %s", method, elapsed_ms, e)
            return ConduitResponse.failure(
                ConduitUnavailableError(
                    f"Request failed: {e}", method=method, params=request.params
                )
            )

        elapsed_ms = (time.monotonic() - start_time) * 1000

        # Handle HTTP errors
        status = response.status_code
        if status >= 400:
            logger.warning("Conduit %s: HTTP %d (%.0fms)", method, status, elapsed_ms)
            return ConduitResponse.failure(self._http_error(request, status, response.text))

        result = decode_envelope(request, response.text)
        if result.ok:
            logger.info("Conduit %s: OK (%.0fms)", method, elapsed_ms)
        else:
            logger.warning(
                "Conduit %s: %s (%.0fms)", method, result.error.kind.value, elapsed_ms
            )
        return result

    @staticmethod
    def _http_error(request: ConduitRequest, status: int, text: str) -> ConduitClientError:
        """Classify an HTTP error status."""
        kwargs: dict[str, Any] = {
            "method": request.method,
            "params": request.params,
            "error_code": f"HTTP-{status}",
            "error_info": text[:500] if text else None,
        }
        if status in (401, 403):
            return ConduitAuthError(f"Authentication failed (HTTP {status})", **kwargs)
        if status == 404:
            return ConduitMethodNotFoundError(
                f"Conduit endpoint for '{request.method}' not found", **kwargs
            )
        if status in (408, 504):
            return ConduitTimeoutError(f"Remote timed out (HTTP {status})", **kwargs)
        if status == 429 or status >= 500:
            return ConduitUnavailableError(f"Remote unavailable (HTTP {status})", **kwargs)
        return ConduitInvalidParametersError(f"Request rejected (HTTP {status})", **kwargs)
