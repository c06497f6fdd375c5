# --------------------------------------------------
# Task Manager API client
#
# - Thin httpx wrapper over the /api routes
# - Keeps the session token and sends it as a bearer header
# - Warns 5 minutes before the token lapses and logs out when it does
# - Expiry timers are cancelled on logout and replaced on re-login
# --------------------------------------------------

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from taskmanager.core.session_timer import ExpiryNotice, schedule_expiry_notice

logger = logging.getLogger(__name__)


class TaskManagerClientError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class TaskManagerClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000/api",
        http: Optional[httpx.Client] = None,
        on_session_warning: Optional[Callable[[], None]] = None,
        on_session_expired: Optional[Callable[[], None]] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.http = http or httpx.Client(timeout=timeout)
        self.on_session_warning = on_session_warning
        self.on_session_expired = on_session_expired
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None
        self._expiry: ExpiryNotice = ExpiryNotice()

    # === Session ===

    def _warn(self) -> None:
        logger.warning("Your session will expire in 5 minutes")
        if self.on_session_warning:
            self.on_session_warning()

    def _expire(self) -> None:
        logger.info("Session expired, logging out")
        self._clear_session()
        if self.on_session_expired:
            self.on_session_expired()

    def _clear_session(self) -> None:
        self._expiry.cancel()
        self.token = None
        self.user = None

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self._request("POST", "/users/login", json={"email": email, "password": password})
        self._clear_session()
        self.token = data["token"]
        self.user = data["user"]
        self._expiry = schedule_expiry_notice(self.token, self._warn, self._expire)
        return data

    def logout(self) -> None:
        self._clear_session()

    @property
    def expiry(self) -> ExpiryNotice:
        return self._expiry

    # === Transport ===

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self.http.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        if response.status_code >= 400:
            try:
                message = response.json().get("error", response.text)
            except ValueError:
                message = response.text
            if response.status_code == 401 and self.token:
                self._expire()
            raise TaskManagerClientError(response.status_code, message)
        return response.json()

    # === Tasks ===

    def list_tasks(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/tasks")["tasks"]

    def list_tasks_by_category(self, category: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/tasks/category/{category}")["tasks"]

    def get_task(self, task_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/tasks/{task_id}")

    def create_task(self, **fields) -> Dict[str, Any]:
        return self._request("POST", "/tasks", json=fields)["task"]

    def update_task(self, task_id: int, **fields) -> Dict[str, Any]:
        return self._request("PUT", f"/tasks/{task_id}", json=fields)["task"]

    def update_status(self, task_id: int, status: str) -> Dict[str, Any]:
        return self._request("PATCH", f"/tasks/{task_id}/status", json={"status": status})["task"]

    def share_task(self, task_id: int, user_id: str) -> Dict[str, Any]:
        return self._request("PATCH", f"/tasks/{task_id}/share", json={"sharedWith": user_id})

    def unshare_task(self, task_id: int, user_id: str) -> Dict[str, Any]:
        return self._request("PATCH", f"/tasks/{task_id}/unshare", json={"sharedWith": user_id})["task"]

    def delete_task(self, task_id: int) -> None:
        self._request("DELETE", f"/tasks/{task_id}")

    # === Users & roles ===

    def list_users(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/users")

    def my_role(self) -> Dict[str, Any]:
        return self._request("GET", "/roles/me")

    def close(self) -> None:
        self._clear_session()
        self.http.close()
