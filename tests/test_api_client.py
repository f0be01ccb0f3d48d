# tests/test_api_client.py

import json

import pytest
import requests

from unified.api_client import UnifiedClient
from unified.endpoint_tracker import EndpointTracker
from unified.errors import ApiConnectionError, ApiError, SessionExpiredError
from unified.models import GradeSubmission, Role


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        if text is None:
            text = "" if body is None else json.dumps(body)
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, data=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "data": data, "headers": headers, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_client(*responses, token="secret-token", tracker=None):
    session = FakeSession(*responses)
    client = UnifiedClient("http://unified.test/api/proxy/", token=token, tracker=tracker, session=session)
    return client, session


def test_bearer_token_and_json_headers():
    client, session = make_client(FakeResponse(body=[]))
    client.request("GET", "/api/v1/groups/all")

    call = session.calls[0]
    assert call["url"] == "http://unified.test/api/proxy/api/v1/groups/all"
    assert call["headers"]["Authorization"] == "Bearer secret-token"
    assert call["headers"]["Content-Type"] == "application/json"


def test_absolute_urls_are_not_prefixed():
    client, session = make_client(FakeResponse(body={}))
    client.request("GET", "https://other.test/x")
    assert session.calls[0]["url"] == "https://other.test/x"


def test_empty_body_returns_none():
    client, _ = make_client(FakeResponse(text=""))
    assert client.request("PATCH", "/x", {"a": 1}) is None


def test_401_raises_session_expired():
    client, _ = make_client(FakeResponse(401, {"message": "nope"}, reason="Unauthorized"))
    with pytest.raises(SessionExpiredError):
        client.request("GET", "/x")


def test_error_uses_server_message():
    client, _ = make_client(FakeResponse(422, {"message": "Invalid date"}, reason="Unprocessable"))
    with pytest.raises(ApiError) as exc_info:
        client.request("PATCH", "/x")
    assert str(exc_info.value) == "Invalid date"
    assert exc_info.value.status == 422


def test_error_without_json_falls_back_to_status():
    client, _ = make_client(FakeResponse(500, text="<html>", reason="Internal Server Error"))
    with pytest.raises(ApiError, match="Error 500: Internal Server Error"):
        client.request("GET", "/x")


def test_unparseable_success_body():
    client, _ = make_client(FakeResponse(text="not json"))
    with pytest.raises(ApiError, match="Could not process"):
        client.request("GET", "/x")


def test_network_failure():
    client, _ = make_client(requests.ConnectionError("refused"))
    with pytest.raises(ApiConnectionError):
        client.request("GET", "/x")


def test_calls_are_published_to_tracker():
    tracker = EndpointTracker()
    seen = []
    tracker.subscribe(seen.append)
    client, _ = make_client(FakeResponse(body={}), tracker=tracker)

    client.request("PATCH", "/api/v1/students/1/assessment", {"grade": 9})

    assert [(c.method, c.endpoint, c.data) for c in seen] == [
        ("PATCH", "/api/v1/students/1/assessment", {"grade": 9})
    ]


def test_login_sets_token_and_role():
    client, session = make_client(FakeResponse(body={"access_token": "new-token", "role": "admins"}), token=None)

    auth = client.login("12345678", "pw")

    assert auth.role is Role.ADMIN
    assert client.token == "new-token"
    assert session.calls[0]["timeout"] == 12
    assert json.loads(session.calls[0]["data"]) == {"username": "12345678", "password": "pw"}


def test_login_without_token_in_response():
    client, _ = make_client(FakeResponse(body={"role": "admin"}))
    with pytest.raises(ApiError):
        client.login("12345678", "pw")


def test_fetch_groups_flattens_degrees():
    body = {
        "master": [{"group": {"en": "M-1"}}],
        "bachelor": [{"group": {"en": "B-1"}}, {"group": {"en": "B-2"}}],
        "skilled_worker": [{"group": {"en": "S-1"}}],
    }
    client, _ = make_client(FakeResponse(body=body))

    assert [g.code for g in client.fetch_groups()] == ["S-1", "B-1", "B-2", "M-1"]


def test_fetch_assigned_disciplines():
    client, session = make_client(FakeResponse(body=["Math", "Physics"]))
    assert client.fetch_assigned_disciplines("IPZ-21") == ["Math", "Physics"]
    assert session.calls[0]["url"].endswith("/api/v1/teachers/assigned/IPZ-21/disciplines")


def test_fetch_assessments_posts_bare_discipline(roster_data):
    client, session = make_client(FakeResponse(body=roster_data))

    roster = client.fetch_assessments("IPZ-21", '"Math"')

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"].endswith("/api/v1/students/IPZ-21/assesment/all")
    assert call["data"] == '"Math"'
    assert [s.edbo_id for s in roster] == [1001, 1002, 1003]


def test_fetch_assessments_non_list_is_empty():
    client, _ = make_client(FakeResponse(body="no students"))
    assert client.fetch_assessments("IPZ-21", "Math") == []


def test_submit_grade_patches_without_timeout():
    client, session = make_client(FakeResponse(body={"status": "ok"}))

    client.submit_grade(GradeSubmission(1001, "Math", "12-point", 9, "01-09-2024"))

    call = session.calls[0]
    assert call["method"] == "PATCH"
    assert call["url"].endswith("/api/v1/students/1001/assessment")
    assert call["timeout"] is None
    assert json.loads(call["data"]) == {
        "subject": "Math", "grade_system": "12-point", "grade": 9, "date": "01-09-2024"
    }


def test_from_config(config):
    config["api"]["token"] = "t"
    client = UnifiedClient.from_config(config)
    assert client.base_url == "http://localhost:5000/api/proxy"
    assert client.token == "t"
    assert client.login_timeout == 12
