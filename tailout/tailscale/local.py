"""Client for the local tailscaled LocalAPI.

tailscaled serves its LocalAPI over a unix socket. The client speaks plain
HTTP over that socket through httpx's ``uds`` transport.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from tailout.constants import DEFAULT_LOCAL_SOCKET, HTTP_TIMEOUT_SECONDS
from tailout.providers.exceptions import LocalAgentError
from tailout.tailscale.models import AgentStatus, Preferences

logger = logging.getLogger(__name__)

LOCALAPI_HOST = "http://local-tailscaled.sock"
"""Placeholder host; tailscaled ignores it but HTTP requires one."""


class LocalClient:
    """Read and edit the preferences of the local Tailscale agent.

    Parameters
    ----------
    socket_path : str
        Path of the tailscaled unix socket
    http_client : httpx.Client | None
        Client to send requests with. When None a client bound to
        ``socket_path`` is created.
    """

    def __init__(
        self,
        socket_path: str = DEFAULT_LOCAL_SOCKET,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.socket_path = socket_path
        self._client = http_client or httpx.Client(
            transport=httpx.HTTPTransport(uds=socket_path),
            timeout=HTTP_TIMEOUT_SECONDS,
        )

    def _request(self, method: str, path: str, *, json: Any | None = None) -> Any:
        try:
            resp = self._client.request(
                method,
                f"{LOCALAPI_HOST}/localapi/v0/{path}",
                headers={"Sec-Tailscale": "localapi"},
                json=json,
            )
        except httpx.TransportError as e:
            raise LocalAgentError(
                f"failed to reach tailscaled at {self.socket_path}: {e}"
            ) from e

        if resp.status_code >= 400:
            raise LocalAgentError(
                f"tailscaled {method} {path} returned {resp.status_code}: {resp.text[:200]}"
            )

        return resp.json()

    def status(self) -> AgentStatus:
        """Return backend state and current exit node of the agent."""
        return AgentStatus.from_json(self._request("GET", "status"))

    def get_prefs(self) -> Preferences:
        """Return the agent's current preferences."""
        return Preferences.from_json(self._request("GET", "prefs"))

    def edit_prefs(self, masked_prefs: dict[str, Any]) -> Preferences:
        """Apply a masked preference update and return the new preferences.

        Parameters
        ----------
        masked_prefs : dict[str, Any]
            Preference fields plus ``<Field>Set: true`` markers naming the
            fields to change. Unmarked fields are left untouched.

        Returns
        -------
        Preferences
            Preferences after the edit
        """
        logger.debug("Editing tailscaled prefs: %s", masked_prefs)
        return Preferences.from_json(self._request("PATCH", "prefs", json=masked_prefs))

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()
