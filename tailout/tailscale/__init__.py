"""Tailscale control API and local agent integration."""

from __future__ import annotations

from tailout.tailscale.api import TailscaleClient
from tailout.tailscale.auth import AuthKeyIssuer
from tailout.tailscale.exit_node import ExitNodeSwitch
from tailout.tailscale.local import LocalClient
from tailout.tailscale.models import Device, JoinCredential, KeyCapabilities
from tailout.tailscale.registry import NodeRegistry

__all__ = [
    "TailscaleClient",
    "LocalClient",
    "AuthKeyIssuer",
    "NodeRegistry",
    "ExitNodeSwitch",
    "Device",
    "JoinCredential",
    "KeyCapabilities",
]
