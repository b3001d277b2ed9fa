"""Discovery of active tailout exit nodes in the tailnet."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from tailout.constants import ACTIVE_NODE_MAX_AGE_SECONDS, EXIT_NODE_TAG
from tailout.providers.exceptions import MeshAPIError
from tailout.tailscale.api import TailscaleClient
from tailout.tailscale.models import Device

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class NodeRegistry:
    """Read-only view over the devices of the tailnet.

    Parameters
    ----------
    api_client : TailscaleClient
        Control API client
    tag : str
        Tag identifying exit node candidates
    max_age : timedelta
        Devices last seen longer ago than this are ignored
    now : Callable[[], datetime]
        Clock returning an aware datetime, injectable for tests
    """

    def __init__(
        self,
        api_client: TailscaleClient,
        tag: str = EXIT_NODE_TAG,
        max_age: timedelta = timedelta(seconds=ACTIVE_NODE_MAX_AGE_SECONDS),
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.api_client = api_client
        self.tag = tag
        self.max_age = max_age
        self.now = now

    def list_devices(self) -> list[Device]:
        """Return every device of the tailnet.

        Raises
        ------
        MeshAPIError
            If the devices cannot be listed
        """
        try:
            payload = self.api_client.list_devices()
        except MeshAPIError as e:
            raise MeshAPIError(e.status_code, f"failed to get devices: {e.message}") from e

        return [Device.from_json(item) for item in payload]

    def is_recent(self, device: Device, now: datetime) -> bool:
        """Return True if the device checked in within ``max_age``."""
        if device.last_seen is None:
            return False
        return now - device.last_seen < self.max_age

    def list_active_exit_nodes(self) -> list[Device]:
        """Return tagged devices seen recently, in control API order."""
        now = self.now()
        active = [
            device
            for device in self.list_devices()
            if self.tag in device.tags and self.is_recent(device, now)
        ]
        logger.debug("Found %d active exit node(s)", len(active))
        return active

    def find_by_hostname(self, hostname: str) -> Device | None:
        """Return the device with exactly this hostname, if any."""
        for device in self.list_devices():
            if device.hostname == hostname:
                return device
        return None

    def find_by_node_id(self, node_id: str) -> Device | None:
        """Return the device with this stable node ID, if any."""
        for device in self.list_devices():
            if device.node_id == node_id:
                return device
        return None
