# tractor_sales/services/api_client.py
from __future__ import annotations

import logging
from typing import Any, Mapping

import requests

from .results import ApiError, AuthExpired, Ok, Result

logger = logging.getLogger(__name__)


# =========================================================
# Helpers
# =========================================================
def _json_or_none(response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _server_message(payload: Any) -> str | None:
    if isinstance(payload, Mapping):
        msg = payload.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg
    return None


# =========================================================
# Client
# =========================================================
class ApiClient:
    """
    Thin wrapper over the tractor sales REST API.

    - Sends JSON and attaches `Authorization: Bearer <token>` when a token is set.
    - Never raises for HTTP or transport failures; returns a Result instead.
    - `http` is anything with a `requests.request`-compatible `request()`
      (the `requests` module itself by default, a `requests.Session`, or a test double).
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout: float = 10,
        http: Any = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.token = token or None
        self.timeout = timeout
        self.http = http or requests

    def with_token(self, token: str | None) -> "ApiClient":
        return ApiClient(self.base_url, token, timeout=self.timeout, http=self.http)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> Result:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.http.request(
                method,
                url,
                params=dict(params) if params else None,
                json=json,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            return ApiError(status=None, message=None)

        status = response.status_code
        payload = _json_or_none(response)

        if status == 401:
            logger.info("%s %s returned 401; session is no longer valid", method, path)
            return AuthExpired(message=_server_message(payload))

        if 200 <= status < 300:
            return Ok(data=payload, status=status)

        logger.warning("%s %s returned %s", method, path, status)
        return ApiError(status=status, message=_server_message(payload))

    # ======================
    # Auth
    # ======================
    def login(self, credentials: Mapping[str, Any]) -> Result:
        return self.request("POST", "/auth/login", json=dict(credentials))

    def register(self, user_data: Mapping[str, Any]) -> Result:
        return self.request("POST", "/auth/register", json=dict(user_data))

    def me(self) -> Result:
        return self.request("GET", "/auth/me")

    # ======================
    # Sales
    # ======================
    def create_normal_sale(self, sale: Mapping[str, Any]) -> Result:
        return self.request("POST", "/sales/normal", json=dict(sale))

    def create_exchange_sale(self, sale: Mapping[str, Any]) -> Result:
        return self.request("POST", "/sales/exchange", json=dict(sale))

    def list_sales(self, **params: Any) -> Result:
        return self.request("GET", "/sales", params={k: v for k, v in params.items() if v is not None})

    def get_sale(self, sale_id: str) -> Result:
        return self.request("GET", f"/sales/{sale_id}")

    # ======================
    # Vehicles
    # ======================
    def list_new_vehicles(self) -> Result:
        return self.request("GET", "/vehicles/new")

    def add_new_vehicle(self, vehicle: Mapping[str, Any]) -> Result:
        return self.request("POST", "/vehicles/new", json=dict(vehicle))

    def update_new_vehicle(self, vehicle_id: str, vehicle: Mapping[str, Any]) -> Result:
        return self.request("PUT", f"/vehicles/new/{vehicle_id}", json=dict(vehicle))

    def delete_new_vehicle(self, vehicle_id: str) -> Result:
        return self.request("DELETE", f"/vehicles/new/{vehicle_id}")

    def list_used_vehicles(self) -> Result:
        return self.request("GET", "/vehicles/used")

    # ======================
    # Dashboard
    # ======================
    def get_analytics(self, **params: Any) -> Result:
        return self.request("GET", "/dashboard/analytics", params=params or None)

    def get_payment_alerts(self) -> Result:
        return self.request("GET", "/dashboard/payment-alerts")

    # ======================
    # Notifications
    # ======================
    def list_notifications(self, **params: Any) -> Result:
        return self.request("GET", "/notifications", params=params or None)

    def mark_notification_read(self, notification_id: str) -> Result:
        return self.request("PUT", f"/notifications/{notification_id}/read")

    def mark_all_notifications_read(self) -> Result:
        return self.request("PUT", "/notifications/mark-all-read")
