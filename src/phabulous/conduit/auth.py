"""Credential providers for the Conduit client."""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

from .errors import ConduitMalformedResponseError
from .methods import CONDUIT_CONNECT

logger = logging.getLogger(__name__)

CLIENT_NAME = "phabulous"
CLIENT_VERSION = 6


class Authenticator(Protocol):
    """Supplies the ``__conduit__`` block for each request."""

    def conduit_block(self) -> dict[str, Any]:
        """Return the auth block to embed in request parameters."""
        ...

    def refresh(self) -> bool:
        """Discard cached credentials and obtain new ones.

        Returns:
            True if new credentials were obtained and a retry may succeed.
        """
        ...


class TokenAuthenticator:
    """API token authentication (``api-...`` tokens)."""

    def __init__(self, token: str) -> None:
        self.token = token

    def conduit_block(self) -> dict[str, Any]:
        return {"token": self.token}

    def refresh(self) -> bool:
        # A static token cannot be renewed
        return False


# Performs an unauthenticated call to conduit.connect and returns its result
ConnectFn = Callable[[str, dict[str, Any]], Any]


class CertificateAuthenticator:
    """Session authentication using a user certificate.

    The session returned by ``conduit.connect`` is cached and reused until a
    call is rejected, at which point ``refresh`` opens a new one.
    """

    def __init__(
        self,
        user: str,
        certificate: str,
        connect: ConnectFn,
        host: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.user = user
        self._certificate = certificate
        self._connect = connect
        self.host = host
        self._clock = clock
        self._lock = threading.Lock()
        self._session: dict[str, Any] | None = None

    @property
    def has_session(self) -> bool:
        return self._session is not None

    def conduit_block(self) -> dict[str, Any]:
        with self._lock:
            if self._session is None:
                self._session = self._open_session()
            return dict(self._session)

    def refresh(self) -> bool:
        with self._lock:
            self._session = None
            self._session = self._open_session()
            return True

    def _open_session(self) -> dict[str, Any]:
        auth_token = int(self._clock())
        signature = hashlib.sha1(f"{auth_token}{self._certificate}".encode()).hexdigest()
        logger.debug("Opening Conduit session for user %s", self.user)
        result = self._connect(
            CONDUIT_CONNECT,
            {
                "client": CLIENT_NAME,
                "clientVersion": CLIENT_VERSION,
                "user": self.user,
                "host": self.host,
                "authToken": auth_token,
                "authSignature": signature,
            },
        )
        if not isinstance(result, dict) or "sessionKey" not in result:
            raise ConduitMalformedResponseError(
                "conduit.connect did not return a session", method=CONDUIT_CONNECT
            )
        logger.info("Opened Conduit session for user %s", self.user)
        return {"sessionKey": result["sessionKey"], "connectionID": result.get("connectionID")}
