"""Low-level HTTP client for Keycloak Admin API.

Handles service account authentication, token refresh, and HTTP operations.
"""
from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import requests

from ..errors import StoreUnavailable
from .exceptions import KeycloakAPIError

REQUEST_TIMEOUT = 5

logger = logging.getLogger(__name__)


class KeycloakClient:
    """HTTP client for Keycloak Admin API with automatic token management.

    Usage:
        client = KeycloakClient("http://keycloak:8080")
        client.authenticate_service_account("demo", "automation-cli", secret)
        response = client.get("/admin/realms/demo/users")
    """

    def __init__(self, base_url: str, timeout: float = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._auth_params: Dict[str, Any] = {}

    def authenticate_service_account(self, auth_realm: str, client_id: str, client_secret: str) -> str:
        """Authenticate as service account and store credentials for auto-refresh.

        Args:
            auth_realm: Realm where service account client exists
            client_id: Service account client ID
            client_secret: Service account client secret

        Returns:
            Access token
        """
        self._auth_params = {
            "auth_realm": auth_realm,
            "client_id": client_id,
            "client_secret": client_secret,
        }
        self._refresh_token()
        return self._token

    def _refresh_token(self) -> None:
        url = f"{self.base_url}/realms/{self._auth_params['auth_realm']}/protocol/openid-connect/token"
        data = {
            "grant_type": "client_credentials",
            "client_id": self._auth_params["client_id"],
            "client_secret": self._auth_params["client_secret"],
        }
        try:
            resp = requests.post(url, data=data, timeout=self.timeout)
        except requests.RequestException as exc:
            raise StoreUnavailable(f"Keycloak token endpoint unreachable: {exc}") from exc
        if resp.status_code != 200:
            raise KeycloakAPIError(resp.status_code, resp.text, url)
        payload = resp.json()
        self._token = payload["access_token"]
        # Refresh 10 seconds before the advertised expiry
        expires_in = int(payload.get("expires_in", 60))
        self._token_expires_at = datetime.now() + timedelta(seconds=max(expires_in - 10, 0))

    def _ensure_authenticated(self) -> None:
        """Ensure we have a valid token, refreshing if necessary."""
        if not self._auth_params:
            raise KeycloakAPIError(401, "Not authenticated - call authenticate_service_account first", "")
        if not self._token or not self._token_expires_at or datetime.now() >= self._token_expires_at:
            self._refresh_token()

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Execute an authenticated request against the Admin API.

        Raises:
            KeycloakAPIError: On HTTP error status
            StoreUnavailable: On connection failure or timeout
        """
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self._token}"
        try:
            resp = requests.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("Keycloak %s %s failed: %s", method, path, exc)
            raise StoreUnavailable(f"Keycloak unreachable: {exc.__class__.__name__}") from exc
        self._handle_error(resp)
        return resp

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        return self.request("GET", path, params=params, **kwargs)

    def post(self, path: str, json: Optional[Any] = None, **kwargs) -> requests.Response:
        return self.request("POST", path, json=json, **kwargs)

    def put(self, path: str, json: Optional[Any] = None, **kwargs) -> requests.Response:
        return self.request("PUT", path, json=json, **kwargs)

    def delete(self, path: str, json: Optional[Any] = None, **kwargs) -> requests.Response:
        return self.request("DELETE", path, json=json, **kwargs)

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            KeycloakAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            message = resp.text
            try:
                body = resp.json()
                if isinstance(body, dict):
                    message = body.get("errorMessage") or body.get("error_description") or body.get("error") or message
            except ValueError:
                pass
            raise KeycloakAPIError(resp.status_code, message, resp.url)
