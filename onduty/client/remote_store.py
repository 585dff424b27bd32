"""HTTP client for the OnDuty REST backend."""
import logging
from typing import Any, Dict, List, Optional

import httpx

from onduty.config import settings
from onduty.exceptions import RemoteUnavailableError
from onduty.schemas import RequestRecord, UserOut


logger = logging.getLogger(__name__)


class RemoteStore:
    """Authoritative remote copy of users and requests.

    Every failure, network or HTTP, is raised as RemoteUnavailableError so
    that callers have a single thing to catch.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None
    ):
        """
        Args:
            base_url: API root, e.g. ``http://localhost:5000/api``
            timeout: Per-call timeout in seconds
            client: Pre-built httpx client (tests pass a TestClient here)
        """
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=timeout if timeout is not None else settings.remote_timeout
        )

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def _call(self, method: str, path: str, operation: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteUnavailableError(operation, str(e) or e.__class__.__name__)

        if response.status_code >= 400:
            raise RemoteUnavailableError(
                operation,
                f"HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            return response.json()
        except ValueError:
            raise RemoteUnavailableError(operation, "response was not JSON")

    # Health

    def check_health(self) -> Dict[str, Any]:
        return self._call("GET", "/health", "health check")

    # Users

    def list_users(self) -> List[UserOut]:
        data = self._call("GET", "/users", "list users")
        return [UserOut.model_validate(item) for item in data]

    def create_user(self, payload: Dict[str, Any]) -> UserOut:
        data = self._call("POST", "/users", "create user", json=payload)
        return UserOut.model_validate(data)

    def delete_user(self, user_id: str) -> None:
        self._call("DELETE", f"/users/{user_id}", "delete user")

    # Requests

    def list_requests(
        self,
        manager_id: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[RequestRecord]:
        params = {}
        if manager_id:
            params["managerId"] = manager_id
        if status:
            params["status"] = status
        data = self._call("GET", "/requests", "list requests", params=params)
        return [RequestRecord.model_validate(item) for item in data]

    def create_request(self, payload: Dict[str, Any]) -> RequestRecord:
        data = self._call("POST", "/requests", "create request", json=payload)
        return RequestRecord.model_validate(data)

    def update_request(self, request_id: str, patch: Dict[str, Any]) -> RequestRecord:
        data = self._call("PUT", f"/requests/{request_id}", "update request", json=patch)
        return RequestRecord.model_validate(data)

    def delete_request(self, request_id: str) -> None:
        self._call("DELETE", f"/requests/{request_id}", "delete request")
