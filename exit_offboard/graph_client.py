"""Microsoft Graph directory client used for account deprovisioning."""
from __future__ import annotations

import threading
from typing import Any, Dict, Iterator, List, Optional

import msal
import requests

from .config import GraphConfig
from .models import Account, Group, LicenseAssignment


GRAPH_SCOPE = ["https://graph.microsoft.com/.default"]
GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
REQUEST_TIMEOUT = 30
USER_SELECT = "id,displayName,userPrincipalName"


class DirectoryClientError(RuntimeError):
    """Base exception for Microsoft Graph directory operations."""


class DirectoryConfigurationError(DirectoryClientError):
    """Raised when the Graph integration is not configured."""


class GraphRequestError(DirectoryClientError):
    """Raised when the Microsoft Graph API returns an error."""

    def __init__(self, status_code: int, error: str, description: str) -> None:
        super().__init__(f"{status_code}: {error} - {description}")
        self.status_code = status_code
        self.error = error
        self.description = description


class GraphDirectoryClient:
    """Directory session backed by an app-only Graph token."""

    name = "Microsoft Graph"

    def __init__(
        self,
        config: GraphConfig,
        session: Optional[requests.Session] = None,
        app: Optional[Any] = None,
    ) -> None:
        self._config = config
        self._session = session
        self._app = app
        self._token_lock = threading.Lock()
        self.connected = False

    # ------------------------------------------------------------------ #
    # Session lifecycle                                                  #
    # ------------------------------------------------------------------ #
    def connect(self) -> None:
        if not self._config.has_credentials:
            raise DirectoryConfigurationError(
                "Microsoft Graph credentials are not configured. "
                "Provide tenant_id, client_id, and client_secret."
            )
        if self._app is None:
            self._app = msal.ConfidentialClientApplication(
                client_id=self._config.client_id,
                client_credential=self._config.client_secret,
                authority=f"{self._config.authority_host.rstrip('/')}/{self._config.tenant_id}",
            )
        if self._session is None:
            self._session = requests.Session()
        self._acquire_token()
        self.connected = True

    def disconnect(self) -> None:
        if self._session is not None:
            self._session.close()
        self._session = None
        self.connected = False

    # ------------------------------------------------------------------ #
    # Token handling / HTTP helpers                                      #
    # ------------------------------------------------------------------ #
    def _acquire_token(self) -> str:
        if self._app is None:
            raise DirectoryClientError("Directory session is not connected.")
        with self._token_lock:
            result = self._app.acquire_token_silent(GRAPH_SCOPE, account=None)
            if not result:
                result = self._app.acquire_token_for_client(scopes=GRAPH_SCOPE)

        if not result or "access_token" not in result:
            result = result or {}
            raise GraphRequestError(
                status_code=0,
                error=result.get("error", "token_error"),
                description=result.get("error_description", "Unable to acquire Graph token."),
            )
        return str(result["access_token"])

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        if self._session is None:
            raise DirectoryClientError("Directory session is not connected.")
        url = path if path.startswith("https://") else GRAPH_BASE_URL + path
        headers = kwargs.pop("headers", {}) or {}
        headers.setdefault("Authorization", f"Bearer {self._acquire_token()}")
        headers.setdefault("Accept", "application/json")
        if "json" in kwargs:
            headers.setdefault("Content-Type", "application/json")

        response = self._session.request(
            method,
            url,
            timeout=REQUEST_TIMEOUT,
            headers=headers,
            **kwargs,
        )
        if response.status_code == 204:
            return {}

        if response.status_code >= 400:
            try:
                payload = response.json()
                error = payload.get("error", {})
                code = error.get("code", "GraphError")
                message = error.get("message", response.text)
            except ValueError:
                code = "GraphError"
                message = response.text or "Unknown Graph error."
            raise GraphRequestError(response.status_code, code, message)

        if not response.content:
            return {}
        return response.json()

    def _iter_pages(self, path: str, params: Optional[Dict[str, str]] = None) -> Iterator[Dict[str, Any]]:
        result = self._request("GET", path, params=params)
        while True:
            for item in result.get("value", []):
                yield item
            next_link = result.get("@odata.nextLink")
            if not next_link:
                return
            # nextLink already carries the original query string.
            result = self._request("GET", next_link)

    # ------------------------------------------------------------------ #
    # Users                                                              #
    # ------------------------------------------------------------------ #
    def list_users(self) -> List[Account]:
        """Return every user in the tenant."""
        params = {"$select": USER_SELECT, "$top": "999"}
        return [Account.from_dict(item) for item in self._iter_pages("/users", params)]

    # ------------------------------------------------------------------ #
    # Group helpers                                                      #
    # ------------------------------------------------------------------ #
    def get_user_groups(self, user_id: str) -> List[Group]:
        """Return the groups the user is a direct member of."""
        params = {"$select": "id,displayName"}
        return [
            Group.from_dict(item)
            for item in self._iter_pages(f"/users/{user_id}/memberOf", params)
            if Group.is_group_payload(item) and item.get("id")
        ]

    def remove_user_from_group(self, user_id: str, group_id: str) -> None:
        self._request("DELETE", f"/groups/{group_id}/members/{user_id}/$ref")

    # ------------------------------------------------------------------ #
    # License helpers                                                    #
    # ------------------------------------------------------------------ #
    def get_user_licenses(self, user_id: str) -> List[LicenseAssignment]:
        params = {"$select": "skuId,skuPartNumber"}
        return [
            LicenseAssignment.from_dict(item)
            for item in self._iter_pages(f"/users/{user_id}/licenseDetails", params)
            if item.get("skuId")
        ]

    def remove_license(self, user_id: str, sku_id: str) -> None:
        payload = {"addLicenses": [], "removeLicenses": [sku_id]}
        self._request("POST", f"/users/{user_id}/assignLicense", json=payload)


__all__ = [
    "DirectoryClientError",
    "DirectoryConfigurationError",
    "GraphDirectoryClient",
    "GraphRequestError",
]
