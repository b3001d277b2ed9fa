"""HTTP client for the Tailscale control API.

Covers the two endpoints tailout needs: creating auth keys and listing the
devices of a tailnet. Authentication uses an API access token sent as a
bearer token. Requests are not retried here.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from tailout.constants import DEFAULT_BASE_URL, DEFAULT_TAILNET, HTTP_TIMEOUT_SECONDS
from tailout.providers.exceptions import (
    MeshAPIError,
    ProviderConnectionError,
    ProviderCredentialsError,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v2"


class TailscaleClient:
    """Synchronous client for the Tailscale v2 REST API.

    Parameters
    ----------
    api_key : str
        Tailscale API access token
    tailnet : str
        Tailnet name, ``-`` for the tailnet of the token owner
    base_url : str
        API endpoint
    http_client : httpx.Client | None
        Client to send requests with, created on demand when None
    timeout_seconds : float
        Per-request timeout
    """

    def __init__(
        self,
        *,
        api_key: str,
        tailnet: str = DEFAULT_TAILNET,
        base_url: str = DEFAULT_BASE_URL,
        http_client: httpx.Client | None = None,
        timeout_seconds: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        if not api_key:
            raise ProviderCredentialsError("Tailscale API key is required")

        self._api_key = api_key
        self.tailnet = tailnet or DEFAULT_TAILNET
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.Client()
        self._timeout = timeout_seconds

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return

        body = resp.text
        message = body[:200] if body else f"HTTP {resp.status_code}"

        try:
            payload = resp.json()
            if isinstance(payload, dict):
                message = payload.get("message", message)
        except ValueError:
            pass

        if resp.status_code in (401, 403):
            raise ProviderCredentialsError(
                f"Tailscale API rejected the credentials ({resp.status_code}): {message}"
            )

        raise MeshAPIError(status_code=resp.status_code, message=message)

    def _request(self, method: str, path: str, *, json: Any | None = None) -> Any:
        url = f"{self.base_url}{API_PREFIX}{path}"

        try:
            resp = self._client.request(
                method,
                url,
                headers=self._auth_headers(),
                json=json,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise MeshAPIError(0, f"request to {path} timed out") from e
        except httpx.TransportError as e:
            raise ProviderConnectionError(f"failed to reach {self.base_url}: {e}") from e

        self._raise_for_status(resp)
        return resp.json()

    def create_key(self, capabilities: dict[str, Any], description: str) -> dict[str, Any]:
        """Create an auth key in the tailnet.

        Parameters
        ----------
        capabilities : dict[str, Any]
            ``capabilities`` object of the request
        description : str
            Description shown in the admin console

        Returns
        -------
        dict[str, Any]
            Created key including the secret ``key`` field
        """
        payload = self._request(
            "POST",
            f"/tailnet/{self.tailnet}/keys",
            json={"capabilities": capabilities, "description": description},
        )
        logger.debug("Created auth key %s", payload.get("id", "?"))
        return payload

    def list_devices(self) -> list[dict[str, Any]]:
        """Return every device of the tailnet as raw JSON objects."""
        payload = self._request("GET", f"/tailnet/{self.tailnet}/devices")
        return payload.get("devices", [])

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()
