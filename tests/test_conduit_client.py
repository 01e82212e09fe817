"""Tests for the Conduit client."""

import json
import threading
from unittest.mock import MagicMock, patch

import httpx
import pytest

from phabulous.conduit import (
    CertificateAuthenticator,
    ConduitAuthError,
    ConduitClient,
    ConduitClientError,
    ConduitErrorKind,
    ConduitInvalidParametersError,
    ConduitMalformedResponseError,
    ConduitMethodNotFoundError,
    ConduitTimeoutError,
    ConduitUnavailableError,
    RetryPolicy,
    TokenAuthenticator,
)
from phabulous.models import ConduitConfig

URL = "https://phab.example.com"


def _response(body=None, status_code=200, text=None):
    """Build a fake httpx response."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text if text is not None else json.dumps(body)
    return response


def _ok(result):
    return _response({"result": result, "error_code": None, "error_info": None})


def _err(code, info):
    return _response({"result": None, "error_code": code, "error_info": info})


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def client(sleeps):
    """Create a token-authenticated test client with no real delays."""
    client = ConduitClient(
        URL,
        TokenAuthenticator("api-test"),
        retry_policy=RetryPolicy(max_attempts=3, base_delay=0.5, max_delay=8.0),
        sleep=sleeps.append,
    )
    yield client
    client.close()


class TestConduitClientInit:
    """Tests for ConduitClient initialization."""

    def test_init_strips_trailing_slash(self):
        """Base URL is normalized and the API path derived from it."""
        client = ConduitClient(URL + "/")
        assert client.url == URL
        assert client._api_url == f"{URL}/api/"
        client.close()

    def test_context_manager(self):
        """Client works as context manager."""
        with ConduitClient(URL) as client:
            assert client.url == URL


class TestConduitClientFromConfig:
    """Tests for ConduitClient.from_config."""

    def test_token_preferred(self):
        """An API token selects token authentication."""
        config = ConduitConfig(url=URL, token="api-abc", user="bot", certificate="cert")
        client = ConduitClient.from_config(config)
        assert isinstance(client.authenticator, TokenAuthenticator)
        assert client.authenticator.token == "api-abc"
        client.close()

    def test_certificate_when_no_token(self):
        """User and certificate select session authentication."""
        config = ConduitConfig(url=URL, user="bot", certificate="cert")
        client = ConduitClient.from_config(config)
        assert isinstance(client.authenticator, CertificateAuthenticator)
        assert client.authenticator.user == "bot"
        client.close()

    def test_retry_and_timeout_applied(self):
        """Retry and timeout settings come from the config."""
        config = ConduitConfig(
            url=URL, token="api-abc", timeout=5, retry={"max_attempts": 5}
        )
        client = ConduitClient.from_config(config)
        assert client.timeout == 5
        assert client.retry_policy.max_attempts == 5
        client.close()

    def test_raises_without_credentials(self):
        """Missing credentials raise ConduitAuthError."""
        with pytest.raises(ConduitAuthError) as exc_info:
            ConduitClient.from_config(ConduitConfig(url=URL))
        assert "No Conduit credentials" in str(exc_info.value)

    def test_raises_without_url(self):
        """Missing URL is reported."""
        with pytest.raises(ConduitClientError):
            ConduitClient.from_config(ConduitConfig(token="api-abc"))


class TestConduitClientCall:
    """Tests for successful calls."""

    def test_call_returns_result(self, client):
        """call() returns the unwrapped result."""
        with patch.object(client._client, "post", return_value=_ok({"pong": True})):
            assert client.call("conduit.ping") == {"pong": True}

    def test_ping(self, client):
        """ping() calls conduit.ping."""
        with patch.object(client._client, "post", return_value=_ok("phab01")) as mock_post:
            assert client.ping() == "phab01"
        assert mock_post.call_args.args[0] == f"{URL}/api/conduit.ping"

    def test_request_encoding(self, client):
        """Params are JSON encoded with the auth block and posted to /api/<method>."""
        with patch.object(client._client, "post", return_value=_ok([])) as mock_post:
            client.call("repository.query", {"callsigns": ["ENG"]})

        call_args = mock_post.call_args
        assert call_args.args[0] == f"{URL}/api/repository.query"
        form = call_args.kwargs["data"]
        assert form["output"] == "json"
        params = json.loads(form["params"])
        assert params["callsigns"] == ["ENG"]
        assert params["__conduit__"] == {"token": "api-test"}

    def test_execute_success_has_no_error(self, client):
        """A successful response carries a result and no error."""
        with patch.object(client._client, "post", return_value=_ok(["x"])):
            response = client.execute("repository.query")
        assert response.ok
        assert response.result == ["x"]
        assert response.error is None

    def test_hijack_prefix_is_stripped(self, client):
        """The for(;;); prefix is tolerated."""
        text = "for(;;);" + json.dumps({"result": 1, "error_code": None})
        with patch.object(client._client, "post", return_value=_response(text=text)):
            assert client.call("conduit.ping") == 1

    def test_repeated_calls_are_identical(self, client):
        """Identical calls against a stable remote give identical results."""
        with patch.object(client._client, "post", side_effect=[_ok({"a": 1}), _ok({"a": 1})]):
            first = client.execute("conduit.ping")
            second = client.execute("conduit.ping")
        assert first == second

    def test_empty_method_rejected(self, client):
        """An empty method name is a ValueError."""
        with pytest.raises(ValueError):
            client.call("")


class TestConduitClientErrors:
    """Tests for failure classification and retries."""

    def test_remote_auth_error_not_retried(self, client, sleeps):
        """ERR-INVALID-AUTH is terminal for a static token."""
        with patch.object(
            client._client, "post", return_value=_err("ERR-INVALID-AUTH", "Token is invalid.")
        ) as mock_post:
            with pytest.raises(ConduitAuthError) as exc_info:
                client.call("maniphest.query", {"ids": [1]})
        assert mock_post.call_count == 1
        assert sleeps == []
        assert exc_info.value.error_info == "Token is invalid."
        assert exc_info.value.method == "maniphest.query"

    def test_method_not_found(self, client):
        """Unknown methods map to ConduitMethodNotFoundError."""
        with patch.object(
            client._client,
            "post",
            return_value=_err("ERR-CONDUIT-CALL", "Conduit method 'nope.nope' does not exist."),
        ) as mock_post:
            with pytest.raises(ConduitMethodNotFoundError):
                client.call("nope.nope")
        assert mock_post.call_count == 1

    def test_invalid_parameters(self, client):
        """Other remote errors are invalid parameters and keep the remote message."""
        with patch.object(
            client._client,
            "post",
            return_value=_err("ERR-CONDUIT-CORE", "Parameter 'ids' must be a list."),
        ) as mock_post:
            with pytest.raises(ConduitInvalidParametersError) as exc_info:
                client.call("maniphest.query", {"ids": 1})
        assert mock_post.call_count == 1
        assert "must be a list" in str(exc_info.value)
        assert exc_info.value.error_code == "ERR-CONDUIT-CORE"

    def test_unserializable_params(self, client):
        """Params that are not JSON serializable fail before any request."""
        with patch.object(client._client, "post") as mock_post:
            with pytest.raises(ConduitInvalidParametersError):
                client.call("maniphest.query", {"ids": {1, 2}})
        mock_post.assert_not_called()

    def test_malformed_json_not_retried(self, client, sleeps):
        """Non-JSON bodies are malformed and not retried."""
        with patch.object(
            client._client, "post", return_value=_response(text="<html>oops</html>")
        ) as mock_post:
            with pytest.raises(ConduitMalformedResponseError):
                client.call("conduit.ping")
        assert mock_post.call_count == 1
        assert sleeps == []

    def test_non_envelope_is_malformed(self, client):
        """JSON without result/error_code keys is malformed."""
        with patch.object(client._client, "post", return_value=_response({"foo": 1})):
            response = client.execute("conduit.ping")
        assert response.error.kind is ConduitErrorKind.MALFORMED_RESPONSE
        assert response.result is None

    def test_server_error_retried_then_surfaced(self, client, sleeps):
        """HTTP 5xx is retried up to max_attempts with exponential backoff."""
        with patch.object(
            client._client, "post", return_value=_response(status_code=503, text="down")
        ) as mock_post:
            with pytest.raises(ConduitUnavailableError) as exc_info:
                client.call("conduit.ping")
        assert mock_post.call_count == 3
        assert sleeps == [0.5, 1.0]
        assert exc_info.value.error_info == "down"

    def test_connection_error_recovers(self, client, sleeps):
        """A transient connection error followed by success returns the result."""
        with patch.object(
            client._client,
            "post",
            side_effect=[httpx.ConnectError("refused"), _ok("pong")],
        ) as mock_post:
            assert client.call("conduit.ping") == "pong"
        assert mock_post.call_count == 2
        assert sleeps == [0.5]

    def test_timeout_retried(self, client, sleeps):
        """httpx timeouts are retried then surfaced as ConduitTimeoutError."""
        with patch.object(
            client._client, "post", side_effect=httpx.ReadTimeout("slow")
        ) as mock_post:
            with pytest.raises(ConduitTimeoutError):
                client.call("conduit.ping")
        assert mock_post.call_count == 3

    def test_http_401_is_auth_error(self, client):
        """HTTP 401 maps to authentication failure."""
        with patch.object(client._client, "post", return_value=_response(status_code=401, text="")):
            with pytest.raises(ConduitAuthError):
                client.call("conduit.ping")

    def test_http_400_is_invalid_parameters(self, client):
        """Other 4xx statuses are invalid parameters."""
        with patch.object(
            client._client, "post", return_value=_response(status_code=400, text="bad")
        ) as mock_post:
            with pytest.raises(ConduitInvalidParametersError):
                client.call("conduit.ping")
        assert mock_post.call_count == 1

    @pytest.mark.parametrize(
        "status,kind,attempts",
        [
            (401, ConduitErrorKind.AUTHENTICATION_FAILED, 1),
            (403, ConduitErrorKind.AUTHENTICATION_FAILED, 1),
            (404, ConduitErrorKind.METHOD_NOT_FOUND, 1),
            (408, ConduitErrorKind.TIMEOUT, 3),
            (504, ConduitErrorKind.TIMEOUT, 3),
            (429, ConduitErrorKind.REMOTE_UNAVAILABLE, 3),
            (500, ConduitErrorKind.REMOTE_UNAVAILABLE, 3),
            (422, ConduitErrorKind.INVALID_PARAMETERS, 1),
        ],
    )
    def test_http_status_classification(self, client, status, kind, attempts):
        """HTTP statuses map onto error kinds; only transient kinds are retried."""
        with patch.object(
            client._client, "post", return_value=_response(status_code=status, text="x")
        ) as mock_post:
            response = client.execute("conduit.ping")
        assert response.error.kind is kind
        assert response.error.error_code == f"HTTP-{status}"
        assert mock_post.call_count == attempts

    def test_failure_has_no_result(self, client):
        """A failed response carries an error and no result."""
        with patch.object(client._client, "post", return_value=_err("ERR-CONDUIT-CORE", "x")):
            response = client.execute("conduit.ping")
        assert not response.ok
        assert response.result is None
        assert response.error is not None


class TestConduitClientCancellation:
    """Tests for deadlines and cancellation."""

    def test_cancelled_before_start(self, client):
        """A set cancel event surfaces a timeout without calling the remote."""
        cancel = threading.Event()
        cancel.set()
        with patch.object(client._client, "post") as mock_post:
            with pytest.raises(ConduitTimeoutError):
                client.call("conduit.ping", cancel=cancel)
        mock_post.assert_not_called()

    def test_cancel_during_backoff(self, client):
        """Cancelling while waiting to retry surfaces a timeout."""
        cancel = threading.Event()

        def fail_and_cancel(*args, **kwargs):
            cancel.set()
            return _response(status_code=502, text="bad gateway")

        with patch.object(client._client, "post", side_effect=fail_and_cancel) as mock_post:
            with pytest.raises(ConduitTimeoutError) as exc_info:
                client.call("conduit.ping", cancel=cancel)
        assert mock_post.call_count == 1
        assert "502" in (exc_info.value.error_info or "")

    def test_cancel_during_successful_attempt(self, client):
        """A call cancelled while in flight is a timeout even if the remote answered."""
        cancel = threading.Event()

        def succeed_and_cancel(*args, **kwargs):
            cancel.set()
            return _ok("pong")

        with patch.object(client._client, "post", side_effect=succeed_and_cancel):
            response = client.execute("conduit.ping", cancel=cancel)
        assert response.error.kind is ConduitErrorKind.TIMEOUT
        assert response.result is None

    def test_per_attempt_timeout_bounded_by_deadline(self, client):
        """The HTTP timeout never exceeds the remaining budget."""
        with patch.object(client._client, "post", return_value=_ok(1)) as mock_post:
            client.call("conduit.ping", timeout=2.0)
        assert mock_post.call_args.kwargs["timeout"] <= 2.0


class TestCertificateSessions:
    """Tests for session authentication and transparent refresh."""

    @pytest.fixture
    def cert_client(self, sleeps):
        config = ConduitConfig(url=URL, user="bot", certificate="secret-cert")
        client = ConduitClient.from_config(config, sleep=sleeps.append)
        yield client
        client.close()

    def test_session_opened_lazily_and_reused(self, cert_client):
        """conduit.connect runs once and its session is reused."""
        responses = [
            _ok({"sessionKey": "s1", "connectionID": 7}),
            _ok("a"),
            _ok("b"),
        ]
        with patch.object(cert_client._client, "post", side_effect=responses) as mock_post:
            assert cert_client.call("conduit.ping") == "a"
            assert cert_client.call("conduit.ping") == "b"

        urls = [c.args[0] for c in mock_post.call_args_list]
        assert urls[0].endswith("/api/conduit.connect")
        params = json.loads(mock_post.call_args_list[2].kwargs["data"]["params"])
        assert params["__conduit__"] == {"sessionKey": "s1", "connectionID": 7}

    def test_expired_session_refreshed_once(self, cert_client, sleeps):
        """An invalid session triggers one reconnect and a retry."""
        responses = [
            _ok({"sessionKey": "old", "connectionID": 1}),
            _err("ERR-INVALID-SESSION", "Session key is invalid."),
            _ok({"sessionKey": "new", "connectionID": 2}),
            _ok("done"),
        ]
        with patch.object(cert_client._client, "post", side_effect=responses) as mock_post:
            assert cert_client.call("conduit.ping") == "done"
        assert mock_post.call_count == 4
        assert sleeps == []
        params = json.loads(mock_post.call_args_list[3].kwargs["data"]["params"])
        assert params["__conduit__"]["sessionKey"] == "new"

    def test_gives_up_after_single_refresh(self, cert_client):
        """A second auth failure in the same call is surfaced."""
        responses = [
            _ok({"sessionKey": "old", "connectionID": 1}),
            _err("ERR-INVALID-SESSION", "Session key is invalid."),
            _ok({"sessionKey": "new", "connectionID": 2}),
            _err("ERR-INVALID-AUTH", "User is disabled."),
        ]
        with patch.object(cert_client._client, "post", side_effect=responses) as mock_post:
            with pytest.raises(ConduitAuthError) as exc_info:
                cert_client.call("conduit.ping")
        assert mock_post.call_count == 4
        assert exc_info.value.error_info == "User is disabled."
