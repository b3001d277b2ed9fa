"""Data types exchanged with the Tailscale control API and LocalAPI."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tailout.constants import EXIT_NODE_TAG
from tailout.utils import parse_timestamp, redact_secret


@dataclass(frozen=True)
class KeyCapabilities:
    """Capabilities of a device auth key.

    Keys created by tailout are single use, ephemeral, pre-authorized and
    carry only the exit-node tag.
    """

    reusable: bool = False
    ephemeral: bool = True
    preauthorized: bool = True
    tags: frozenset[str] = frozenset({EXIT_NODE_TAG})

    def to_json(self) -> dict[str, Any]:
        """Return the ``capabilities`` object of a create-key request."""
        return {
            "devices": {
                "create": {
                    "reusable": self.reusable,
                    "ephemeral": self.ephemeral,
                    "preauthorized": self.preauthorized,
                    "tags": sorted(self.tags),
                }
            }
        }


@dataclass(frozen=True)
class JoinCredential:
    """Auth key used once by a new node to join the tailnet."""

    key: str = field(repr=False)
    capabilities: KeyCapabilities
    key_id: str = ""
    expires: datetime | None = None

    @property
    def redacted(self) -> str:
        """Return a log-safe representation of the key."""
        return redact_secret(self.key)

    @classmethod
    def from_json(cls, payload: dict[str, Any], capabilities: KeyCapabilities) -> JoinCredential:
        """Build a credential from a create-key response."""
        return cls(
            key=payload["key"],
            capabilities=capabilities,
            key_id=payload.get("id", ""),
            expires=parse_timestamp(payload.get("expires")),
        )


@dataclass(frozen=True)
class Device:
    """Tailnet member as listed by the control API."""

    node_id: str
    hostname: str
    name: str = ""
    tags: frozenset[str] = frozenset()
    addresses: tuple[str, ...] = ()
    last_seen: datetime | None = None

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> Device:
        """Build a device from one entry of the devices list response."""
        return cls(
            node_id=payload.get("nodeId", ""),
            hostname=payload.get("hostname", ""),
            name=payload.get("name", ""),
            tags=frozenset(payload.get("tags") or ()),
            addresses=tuple(payload.get("addresses") or ()),
            last_seen=parse_timestamp(payload.get("lastSeen")),
        )

    @property
    def primary_address(self) -> str | None:
        """Return the first tailnet address, if any."""
        return self.addresses[0] if self.addresses else None

    @property
    def label(self) -> str:
        """Return ``hostname (address)`` for selection lists and messages."""
        return f"{self.hostname} ({self.primary_address or 'no IP'})"


@dataclass(frozen=True)
class ExitNodeStatus:
    """Exit node currently in use by the local agent."""

    node_id: str
    online: bool
    addresses: tuple[str, ...] = ()


@dataclass(frozen=True)
class AgentStatus:
    """Subset of the LocalAPI status response used by tailout."""

    backend_state: str
    exit_node: ExitNodeStatus | None = None

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> AgentStatus:
        """Build a status from a ``/localapi/v0/status`` response."""
        exit_node = payload.get("ExitNodeStatus")
        return cls(
            backend_state=payload.get("BackendState", ""),
            exit_node=(
                ExitNodeStatus(
                    node_id=exit_node.get("ID", ""),
                    online=bool(exit_node.get("Online")),
                    addresses=tuple(exit_node.get("TailscaleIPs") or ()),
                )
                if exit_node
                else None
            ),
        )


@dataclass(frozen=True)
class Preferences:
    """Local agent preferences relevant to exit node selection."""

    exit_node_id: str = ""
    exit_node_ip: str = ""

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> Preferences:
        """Build preferences from a ``/localapi/v0/prefs`` response."""
        return cls(
            exit_node_id=payload.get("ExitNodeID") or "",
            exit_node_ip=payload.get("ExitNodeIP") or "",
        )
