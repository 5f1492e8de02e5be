"""
Unit tests for the FlareSolverr challenge solver.

The solver service is replaced by patching the curl_cffi requests module,
so these tests verify the wire payloads, session handling and the mapping
of service failures onto the solver error taxonomy.
"""

import json
from unittest.mock import MagicMock, Mock, patch

import pytest
from curl_cffi import CurlError
from curl_cffi.requests.exceptions import Timeout

from steamdb.challenge.solver import (
    ChallengeSolver,
    FlareSolverr,
    FlareSolverrSolver,
    SolverResponse,
)
from steamdb.errors import (
    ChallengeUnsolvedError,
    FetchError,
    SolverError,
    SolverProtocolError,
    SolverTimeoutError,
    SolverTransportError,
)
from steamdb.http import HttpClient

ENDPOINT = "http://flaresolverr:8191/v1"


def service_reply(payload, status_code=200):
    """Fake curl_cffi response carrying a JSON payload."""
    response = Mock()
    response.status_code = status_code
    response.reason = "OK" if status_code == 200 else "Error"
    response.text = payload if isinstance(payload, str) else json.dumps(payload)
    return response


@pytest.fixture
def solution_payload():
    """Successful request.get reply."""
    return {
        "status": "ok",
        "message": "Challenge solved!",
        "solution": {
            "url": "https://steamdb.info/app/730/",
            "status": 200,
            "headers": {"content-type": "text/html"},
            "response": "<html><body>Counter-Strike 2</body></html>",
            "cookies": [
                {
                    "name": "cf_clearance",
                    "value": "clearance-token",
                    "domain": ".steamdb.info",
                    "path": "/",
                    "secure": True,
                    "httpOnly": True,
                    "expires": 4102444800,
                },
                {"name": "session", "value": "s1"},
            ],
            "userAgent": "Mozilla/5.0 (X11; Linux x86_64) Chrome/124.0",
        },
    }


@pytest.fixture
def mock_requests():
    """Patch the HTTP module used by the solver client."""
    with patch("steamdb.challenge.solver.curl_requests") as mocked:
        yield mocked


@pytest.fixture
def flaresolverr():
    return FlareSolverr(endpoint=ENDPOINT)


def sent_payloads(mocked):
    return [c.kwargs["json"] for c in mocked.post.call_args_list]


class TestFlareSolverrConfig:
    """Test client construction."""

    def test_defaults(self):
        client = FlareSolverr()

        assert client.endpoint == "http://localhost:8191/v1"
        assert client.timeout == 60000
        assert client.max_timeout == 120000
        assert client.session_id is None

    def test_timeout_is_capped(self):
        client = FlareSolverr(timeout=500000, max_timeout=90000)
        assert client.timeout == 90000


class TestFlareSolverrRequests:
    """Test request commands and their wire format."""

    def test_get_returns_solution(self, flaresolverr, mock_requests, solution_payload):
        mock_requests.post.return_value = service_reply(solution_payload)

        result = flaresolverr.get("https://steamdb.info/app/730/")

        assert isinstance(result, SolverResponse)
        assert result.status == 200
        assert "Counter-Strike 2" in result.body
        assert result.user_agent.startswith("Mozilla/5.0")
        assert result.cookie_dict == {"cf_clearance": "clearance-token", "session": "s1"}

    def test_get_payload_and_timeouts(self, flaresolverr, mock_requests, solution_payload):
        mock_requests.post.return_value = service_reply(solution_payload)

        flaresolverr.get("https://steamdb.info/")

        call = mock_requests.post.call_args
        assert call.args[0] == ENDPOINT
        assert call.kwargs["json"] == {
            "cmd": "request.get",
            "url": "https://steamdb.info/",
            "maxTimeout": 60000,
        }
        assert call.kwargs["timeout"] == (10, 70.0)
        assert call.kwargs["headers"]["Content-Type"] == "application/json"

    def test_per_call_max_timeout(self, flaresolverr, mock_requests, solution_payload):
        mock_requests.post.return_value = service_reply(solution_payload)

        flaresolverr.get("https://steamdb.info/", max_timeout=30000)

        call = mock_requests.post.call_args
        assert call.kwargs["json"]["maxTimeout"] == 30000
        assert call.kwargs["timeout"] == (10, 40.0)

    def test_post_sends_form_data(self, flaresolverr, mock_requests, solution_payload):
        mock_requests.post.return_value = service_reply(solution_payload)

        flaresolverr.post("https://steamdb.info/search/", post_data="q=portal")

        payload = sent_payloads(mock_requests)[0]
        assert payload["cmd"] == "request.post"
        assert payload["postData"] == "q=portal"

    def test_solution_cookies_are_parsed(self, flaresolverr, mock_requests, solution_payload):
        mock_requests.post.return_value = service_reply(solution_payload)

        cookies = flaresolverr.get("https://steamdb.info/").cookies
        clearance, session = cookies

        assert clearance.key == ("cf_clearance", "steamdb.info", "/")
        assert clearance.secure is True
        assert clearance.http_only is True
        assert clearance.expires is not None
        # Domain defaults to the requested host
        assert session.domain == "steamdb.info"
        assert session.path == "/"

    def test_missing_solution_raises(self, flaresolverr, mock_requests):
        mock_requests.post.return_value = service_reply({"status": "ok", "message": ""})

        with pytest.raises(ChallengeUnsolvedError):
            flaresolverr.get("https://steamdb.info/")


class TestFlareSolverrErrors:
    """Test mapping of service failures onto solver errors."""

    def test_error_status(self, flaresolverr, mock_requests):
        mock_requests.post.return_value = service_reply(
            {"status": "error", "message": "Error solving the challenge. Timeout after 60.0 seconds."}
        )

        with pytest.raises(SolverProtocolError, match="Timeout after 60.0 seconds"):
            flaresolverr.get("https://steamdb.info/")

    def test_non_2xx_status(self, flaresolverr, mock_requests):
        mock_requests.post.return_value = service_reply({"status": "error"}, status_code=500)

        with pytest.raises(SolverTransportError) as exc_info:
            flaresolverr.get("https://steamdb.info/")

        assert exc_info.value.status_code == 500
        assert not isinstance(exc_info.value, SolverTimeoutError)

    def test_malformed_json(self, flaresolverr, mock_requests):
        mock_requests.post.return_value = service_reply("<html>Bad gateway</html>")

        with pytest.raises(SolverProtocolError):
            flaresolverr.get("https://steamdb.info/")

    def test_non_object_json(self, flaresolverr, mock_requests):
        mock_requests.post.return_value = service_reply("[1, 2, 3]")

        with pytest.raises(SolverProtocolError):
            flaresolverr.get("https://steamdb.info/")

    def test_timeout(self, flaresolverr, mock_requests):
        mock_requests.post.side_effect = Timeout("Operation timed out after 70000 milliseconds")

        with pytest.raises(SolverTimeoutError) as exc_info:
            flaresolverr.get("https://steamdb.info/")

        assert isinstance(exc_info.value, SolverTransportError)

    def test_connection_failure(self, flaresolverr, mock_requests):
        mock_requests.post.side_effect = CurlError("Failed to connect to flaresolverr port 8191")

        with pytest.raises(SolverTransportError) as exc_info:
            flaresolverr.get("https://steamdb.info/")

        assert not isinstance(exc_info.value, SolverTimeoutError)
        assert isinstance(exc_info.value, SolverError)

    @pytest.mark.parametrize("solution", [
        "oops",
        ["not", "an", "object"],
        {"status": "abc", "response": ""},
        {"status": 200, "headers": ["x"], "response": ""},
        {"status": 200, "headers": 5, "response": ""},
        {"status": 200, "response": {"html": "<html></html>"}},
        {"status": 200, "response": "", "cookies": 7},
    ])
    def test_malformed_solution(self, flaresolverr, mock_requests, solution):
        mock_requests.post.return_value = service_reply({"status": "ok", "solution": solution})

        with pytest.raises(SolverProtocolError):
            flaresolverr.get("https://steamdb.info/")

    def test_malformed_cookie_entries_are_skipped(self, flaresolverr, mock_requests):
        mock_requests.post.return_value = service_reply({
            "status": "ok",
            "solution": {
                "status": 200,
                "response": "",
                "cookies": [42, None, "cf_clearance=tok", {"value": "unnamed"}, {"name": "session", "value": "s1"}],
            },
        })

        result = flaresolverr.get("https://steamdb.info/")

        assert result.cookie_dict == {"session": "s1"}

    def test_malformed_solution_fails_fetch(self, mock_requests):
        mock_requests.post.return_value = service_reply({"status": "ok", "solution": "oops"})
        client = HttpClient(transport=Mock())
        client.configure_captcha(solver=FlareSolverrSolver(endpoint=ENDPOINT))

        with pytest.raises(FetchError) as exc_info:
            client.fetch("/app/1/")

        assert isinstance(exc_info.value.__cause__, SolverProtocolError)


class TestFlareSolverrSessions:
    """Test session lifecycle."""

    def test_create_and_destroy(self, flaresolverr, mock_requests):
        mock_requests.post.side_effect = [
            service_reply({"status": "ok", "session": "sess-1"}),
            service_reply({"status": "ok"}),
        ]

        assert flaresolverr.create_session() == "sess-1"
        assert flaresolverr.session_id == "sess-1"

        flaresolverr.destroy_session()

        assert flaresolverr.session_id is None
        create, destroy = sent_payloads(mock_requests)
        assert create["cmd"] == "sessions.create"
        assert destroy == {"cmd": "sessions.destroy", "session": "sess-1", "maxTimeout": 60000}

    def test_destroy_without_session_is_noop(self, flaresolverr, mock_requests):
        flaresolverr.destroy_session()
        mock_requests.post.assert_not_called()

    def test_session_id_sent_with_requests(self, flaresolverr, mock_requests, solution_payload):
        mock_requests.post.side_effect = [
            service_reply({"status": "ok", "session": "sess-1"}),
            service_reply(solution_payload),
            service_reply(solution_payload),
        ]

        flaresolverr.create_session()
        flaresolverr.get("https://steamdb.info/a/")
        flaresolverr.get("https://steamdb.info/b/")

        payloads = sent_payloads(mock_requests)
        assert [p.get("session") for p in payloads[1:]] == ["sess-1", "sess-1"]

    def test_context_manager(self, mock_requests, solution_payload):
        mock_requests.post.side_effect = [
            service_reply({"status": "ok", "session": "sess-9"}),
            service_reply(solution_payload),
            service_reply({"status": "ok"}),
        ]

        with FlareSolverr(endpoint=ENDPOINT) as client:
            client.get("https://steamdb.info/")
            assert client.session_id == "sess-9"

        assert client.session_id is None
        assert [p["cmd"] for p in sent_payloads(mock_requests)] == [
            "sessions.create", "request.get", "sessions.destroy",
        ]


class TestFlareSolverrProbes:
    """Test availability and version probes."""

    def test_available(self, flaresolverr, mock_requests):
        mock_requests.get.return_value = service_reply({"msg": "FlareSolverr is ready!"})

        assert flaresolverr.available() is True
        assert mock_requests.get.call_args.args[0] == "http://flaresolverr:8191/"

    def test_unavailable_on_any_failure(self, flaresolverr, mock_requests):
        mock_requests.get.side_effect = CurlError("connection refused")
        assert flaresolverr.available() is False

        mock_requests.get.side_effect = RuntimeError("boom")
        assert flaresolverr.available() is False

    def test_version_running(self, flaresolverr, mock_requests):
        mock_requests.get.return_value = service_reply({"msg": "FlareSolverr is ready!", "version": "3.3.21"})

        info = flaresolverr.version()

        assert info == {"endpoint": ENDPOINT, "status": "running", "version": "3.3.21"}

    def test_version_unknown(self, flaresolverr, mock_requests):
        mock_requests.get.return_value = service_reply("", status_code=404)
        assert flaresolverr.version()["status"] == "unknown"

    def test_version_error(self, flaresolverr, mock_requests):
        mock_requests.get.side_effect = CurlError("connection refused")

        info = flaresolverr.version()

        assert info["status"] == "error"
        assert "connection refused" in info["error"]


class TestFlareSolverrSolver:
    """Test the ChallengeSolver adapter."""

    def test_is_challenge_solver(self):
        assert isinstance(FlareSolverrSolver(), ChallengeSolver)

    def test_stateless_solve(self):
        flaresolverr = MagicMock(spec=FlareSolverr)
        flaresolverr.session_id = None
        flaresolverr.get.return_value = SolverResponse(status=200, body="ok")

        solver = FlareSolverrSolver(flaresolverr)
        result = solver.solve("https://steamdb.info/")

        assert result.status == 200
        flaresolverr.create_session.assert_not_called()
        flaresolverr.get.assert_called_once_with("https://steamdb.info/")

    def test_session_variant_reuses_session(self, mock_requests, solution_payload):
        mock_requests.post.side_effect = [
            service_reply({"status": "ok", "session": "sess-1"}),
            service_reply(solution_payload),
            service_reply(solution_payload),
            service_reply({"status": "ok"}),
        ]

        solver = FlareSolverrSolver(endpoint=ENDPOINT, use_session=True)
        solver.solve("https://steamdb.info/a/")
        solver.solve("https://steamdb.info/b/")
        solver.close()

        payloads = sent_payloads(mock_requests)
        assert [p["cmd"] for p in payloads] == [
            "sessions.create", "request.get", "request.get", "sessions.destroy",
        ]
        assert payloads[1]["session"] == payloads[2]["session"] == "sess-1"

    def test_available_delegates(self):
        flaresolverr = MagicMock(spec=FlareSolverr)
        flaresolverr.available.return_value = False

        assert FlareSolverrSolver(flaresolverr).available() is False
