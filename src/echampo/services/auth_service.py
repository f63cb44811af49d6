from dataclasses import dataclass
import logging
from typing import Any, Dict, Optional
import requests
from requests import RequestException

from echampo.config.settings import settings


logger = logging.getLogger(__name__)


class AuthServiceError(Exception):
    pass


@dataclass
class AuthResult:
    uid: str
    email: str
    id_token: str
    refresh_token: str


class AppwriteAuthService:
    """Email/password accounts through the Appwrite account REST API."""

    SIGN_UP_PATH = "/account"
    LOGIN_PATH = "/account/sessions/email"
    SESSION_PATH = "/account/sessions/{session_id}"
    TIMEOUT_SECONDS = 15

    def __init__(self, endpoint: str, project_id: str) -> None:
        if not endpoint:
            raise AuthServiceError("Missing APPWRITE_ENDPOINT in environment")
        if not project_id:
            raise AuthServiceError("Missing APPWRITE_PROJECT_ID in environment")
        self.endpoint = endpoint.rstrip("/")
        self.project_id = project_id

    @classmethod
    def from_settings(cls) -> "AppwriteAuthService":
        return cls(settings.appwrite_endpoint, settings.appwrite_project_id)

    def sign_up(self, email: str, password: str, name: Optional[str] = None) -> AuthResult:
        payload = {
            "userId": "unique()",
            "email": email,
            "password": password,
        }
        if name and name.strip():
            payload["name"] = name.strip()
        self._request("POST", self.SIGN_UP_PATH, payload)
        logger.info("Created account for %s", email)
        return self.sign_in(email, password)

    def sign_in(self, email: str, password: str) -> AuthResult:
        payload = {
            "email": email,
            "password": password,
        }
        response = self._request("POST", self.LOGIN_PATH, payload)
        return self._to_result(response, email)

    def sign_out(self, session_id: str, session_secret: str) -> None:
        if not session_id or not session_secret:
            raise AuthServiceError("INVALID_APPWRITE_SESSION")
        self._request(
            "DELETE",
            self.SESSION_PATH.format(session_id=session_id),
            None,
            session_secret=session_secret,
        )

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]],
        session_secret: Optional[str] = None,
    ) -> Dict[str, Any]:
        url = f"{self.endpoint}{path}"
        headers = {
            "X-Appwrite-Project": self.project_id,
            "Content-Type": "application/json",
        }
        if session_secret:
            headers["X-Appwrite-Session"] = session_secret
        try:
            res = requests.request(method, url, headers=headers, json=payload, timeout=self.TIMEOUT_SECONDS)
        except RequestException as exc:
            logger.warning("Auth request %s %s failed: %s", method, path, exc)
            raise AuthServiceError("AUTH_SERVICE_UNAVAILABLE") from exc

        if res.status_code == 204:
            return {}
        try:
            data = res.json()
        except ValueError:
            raise AuthServiceError("AUTH_SERVICE_UNAVAILABLE")

        if res.status_code >= 400:
            error_key = str(data.get("message") or data.get("type") or "AUTH_ERROR")
            raise AuthServiceError(error_key)

        return data

    @staticmethod
    def _to_result(data: Dict[str, Any], email: str) -> AuthResult:
        session_id = str(data.get("$id") or "")
        session_secret = str(data.get("secret") or "")
        uid = str(data.get("userId") or "")
        if not uid:
            raise AuthServiceError("INVALID_APPWRITE_SESSION")
        return AuthResult(
            uid=uid,
            email=email,
            id_token=session_secret,
            refresh_token=session_id,
        )
