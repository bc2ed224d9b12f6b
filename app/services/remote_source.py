"""Webhook client: sends the request and decodes JSON. No schedule validation."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.core.errors import AuthError, InvalidScheduleError, NetworkError

logger = logging.getLogger(__name__)


class RemoteDataSource:
    """JSON-over-HTTPS access to the automation webhooks."""

    def __init__(
        self,
        hours_endpoint: Optional[str] = None,
        admin_auth_endpoint: Optional[str] = None,
        admin_verify_endpoint: Optional[str] = None,
        admin_save_endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.hours_endpoint = hours_endpoint or settings.hours_endpoint
        self.admin_auth_endpoint = admin_auth_endpoint or settings.admin_auth_endpoint
        self.admin_verify_endpoint = admin_verify_endpoint or settings.admin_verify_endpoint
        self.admin_save_endpoint = admin_save_endpoint or settings.admin_save_endpoint
        self.api_key = settings.api_key if api_key is None else api_key
        self.timeout = settings.request_timeout_seconds if timeout is None else timeout
        self._transport = transport

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        h = {"Content-Type": "application/json"}
        if self.api_key:
            h["x-api-key"] = self.api_key
        if extra:
            h.update(extra)
        return h

    def fetch(self, endpoint: str, options: Optional[Dict[str, Any]] = None) -> Any:
        """Request `endpoint` and return the decoded JSON body.

        `options` may carry `method` (default GET), `body` (sent as JSON),
        `headers` and `timeout`. Raises NetworkError on transport failures,
        non-2xx responses and bodies that are not JSON.
        """
        options = options or {}
        method = options.get("method", "GET").upper()
        timeout = options.get("timeout", self.timeout)
        try:
            with httpx.Client(timeout=timeout, transport=self._transport) as c:
                r = c.request(
                    method,
                    endpoint,
                    json=options.get("body"),
                    headers=self._headers(options.get("headers")),
                )
        except httpx.HTTPError as e:
            raise NetworkError(f"{method} {endpoint} failed: {e}") from e
        if not r.is_success:
            raise NetworkError(f"HTTP {r.status_code} from {endpoint}")
        try:
            return r.json() if r.content else {}
        except ValueError as e:
            raise NetworkError(f"Invalid JSON from {endpoint}") from e

    def fetch_hours(self) -> Any:
        """Return the raw `hours` object of the hours webhook."""
        data = self.fetch(self.hours_endpoint)
        if not isinstance(data, dict) or "hours" not in data:
            raise InvalidScheduleError("Invalid response format from hours endpoint")
        logger.debug("Fetched operating hours from %s", self.hours_endpoint)
        return data["hours"]

    def login(self, username: str, password: str) -> str:
        """Exchange admin credentials for a token. Raises AuthError when refused."""
        username, password = (username or "").strip(), (password or "").strip()
        if not username or not password:
            raise AuthError("Please enter both username and password")
        data = self.fetch(self.admin_auth_endpoint, {
            "method": "POST",
            "body": {
                "username": username,
                "password": password,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        })
        if not isinstance(data, dict) or not data.get("success") or not data.get("token"):
            message = data.get("message") if isinstance(data, dict) else None
            raise AuthError(message or "Authentication failed")
        logger.info("Admin %s authenticated", username)
        return data["token"]

    def verify_token(self, token: str) -> bool:
        """True if the backend still accepts `token`."""
        if not token:
            return False
        data = self.fetch(self.admin_verify_endpoint, {"headers": {"x-admin-token": token}})
        return isinstance(data, dict) and bool(data.get("success"))
