"""HTTP client for the Unified REST API (reached through the dashboard proxy)."""

from typing import Any
import json

import requests

from .app_logger import get_logger
from .endpoint_tracker import EndpointTracker
from .errors import ApiConnectionError, ApiError, SessionExpiredError
from .models import (
    DEGREE_ORDER,
    AuthSession,
    GradeSubmission,
    GroupDetail,
    Role,
    StudentAssessment,
)

logger = get_logger("api")


def _token_preview(token: str | None) -> str:
    return f"{token[:20]}..." if token else "MISSING"


class UnifiedClient:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        tracker: EndpointTracker | None = None,
        timeout: float | None = None,
        login_timeout: float = 12,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.tracker = tracker
        self.timeout = timeout
        self.login_timeout = login_timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: dict[str, Any], tracker: EndpointTracker | None = None) -> "UnifiedClient":
        api = config["api"]
        return cls(
            base_url=api["base_url"],
            token=api.get("token"),
            tracker=tracker,
            timeout=api.get("timeout"),
            login_timeout=api.get("login_timeout", 12),
        )

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith("http"):
            return endpoint
        return f"{self.base_url}{endpoint}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "accept": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
            logger.debug("Authorization header set: %s", _token_preview(self.token))
        else:
            logger.warning("No token set; request goes out without Authorization")
        return headers

    def request(self, method: str, endpoint: str, body: Any = None, timeout: float | None = None) -> Any:
        """
        Send a JSON request and decode the JSON response.

        Returns:
            Decoded body, or None for an empty body.

        Raises:
            SessionExpiredError: the API answered 401
            ApiError: any other non-2xx answer or an unreadable body
            ApiConnectionError: the request never got an answer
        """
        url = self._url(endpoint)
        if self.tracker is not None:
            self.tracker.publish(endpoint, method, body)

        data = json.dumps(body) if body is not None else None
        logger.info("%s %s", method, url)

        try:
            response = self.session.request(
                method, url, data=data, headers=self._headers(), timeout=timeout
            )
        except requests.RequestException as e:
            logger.error("Network error for %s: %s", url, e)
            raise ApiConnectionError("Could not reach the server. Check your connection.") from e

        logger.info("Response %s %s for %s", response.status_code, response.reason, url)

        if response.status_code == 401:
            logger.error("401 Unauthorized for %s; session expired", url)
            raise SessionExpiredError("Session expired. Please sign in again.", 401)

        if not response.ok:
            message = self._error_message(response)
            logger.error("%s %s failed (%s): %s", method, url, response.status_code, message)
            raise ApiError(message, response.status_code)

        text = response.text
        if not text:
            logger.warning("Empty response body for %s", url)
            return None

        try:
            return json.loads(text)
        except ValueError as e:
            logger.error("Could not parse response for %s: %s", url, e)
            raise ApiError("Could not process the server response", response.status_code) from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        fallback = f"Error {response.status_code}: {response.reason}"
        try:
            payload = json.loads(response.text) if response.text else {}
        except ValueError:
            return fallback
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        return fallback

    # --- Identity provider ---

    def login(self, username: str, password: str) -> AuthSession:
        payload = self.request(
            "POST", "/auth/login",
            {"username": username, "password": password},
            timeout=self.login_timeout,
        )
        return self._start_session(payload)

    def check_token(self, token: str | None = None) -> AuthSession:
        payload = self.request(
            "POST", "/auth/token",
            {"token": token or self.token},
            timeout=self.login_timeout,
        )
        return self._start_session(payload)

    def _start_session(self, payload: Any) -> AuthSession:
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise ApiError("Authentication response did not contain a token")
        session = AuthSession(token=payload["access_token"], role=Role.parse(payload.get("role")))
        self.token = session.token
        logger.info("Signed in as %s", session.role.value)
        return session

    # --- Groups and disciplines ---

    def fetch_groups(self) -> list[GroupDetail]:
        """All groups, flattened across degrees."""
        payload = self.request("GET", "/api/v1/groups/all", timeout=self.timeout) or {}
        groups = []
        for degree in DEGREE_ORDER:
            for item in payload.get(degree) or []:
                groups.append(GroupDetail.from_dict(item))
        return groups

    def fetch_assigned_disciplines(self, group_code: str) -> list[str]:
        """Disciplines the signed-in teacher teaches in ``group_code``."""
        payload = self.request(
            "GET", f"/api/v1/teachers/assigned/{group_code}/disciplines", timeout=self.timeout
        )
        return list(payload) if isinstance(payload, list) else []

    # --- Assessments ---

    def fetch_assessments(self, group_code: str, discipline: str) -> list[StudentAssessment]:
        """Roster of ``group_code`` with grades for ``discipline``."""
        # The API expects the bare discipline as a JSON string body
        normalized = discipline.strip('"')
        payload = self.request(
            "POST", f"/api/v1/students/{group_code}/assesment/all", normalized, timeout=self.timeout
        )
        if not isinstance(payload, list):
            logger.warning("Assessments response for %s was not a list", group_code)
            return []
        return [StudentAssessment.from_dict(item) for item in payload]

    def submit_grade(self, submission: GradeSubmission) -> Any:
        """Set one grade; resubmitting the same (student, subject, date) overwrites it."""
        return self.request(
            "PATCH", f"/api/v1/students/{submission.edbo_id}/assessment",
            submission.to_payload(), timeout=self.timeout
        )
