"""Selection of the local agent's exit node."""

from __future__ import annotations

import logging

from tailout.constants import BackendState
from tailout.exceptions import AgentNotRunningError, ExitNodeUnreachableError
from tailout.providers.exceptions import LocalAgentError, ProviderError
from tailout.tailscale.local import LocalClient
from tailout.tailscale.models import Device
from tailout.tailscale.registry import NodeRegistry

logger = logging.getLogger(__name__)


class ExitNodeSwitch:
    """Set or clear the exit node of the local Tailscale agent.

    After a successful call the agent either has no exit node, or uses the
    requested one and reports it online.

    Parameters
    ----------
    local_client : LocalClient
        LocalAPI client of the running tailscaled
    registry : NodeRegistry
        Used to show the name of the exit node currently in use
    """

    def __init__(self, local_client: LocalClient, registry: NodeRegistry) -> None:
        self.local_client = local_client
        self.registry = registry

    def current_exit_node(self, node_id: str) -> Device | None:
        """Look up the device behind an exit node ID.

        The lookup is informational only, so a failing device listing is
        logged and treated as a miss.
        """
        try:
            return self.registry.find_by_node_id(node_id)
        except ProviderError as e:
            logger.debug("Could not resolve exit node %s: %s", node_id, e)
            return None

    def set_exit_node(self, device_id: str) -> None:
        """Use ``device_id`` as exit node, or clear the exit node if empty.

        Parameters
        ----------
        device_id : str
            Stable node ID of the target device, empty string to clear

        Raises
        ------
        AgentNotRunningError
            If tailscaled is not in the Running state; nothing is changed
        ExitNodeUnreachableError
            If the exit node is offline after the change
        LocalAgentError
            If the LocalAPI cannot be used
        """
        try:
            status = self.local_client.status()
        except LocalAgentError as e:
            raise LocalAgentError(f"failed to get tailscale status: {e}") from e

        if status.backend_state != BackendState.RUNNING.value:
            raise AgentNotRunningError(status.backend_state)

        if status.exit_node is not None:
            current = self.current_exit_node(status.exit_node.node_id)
            if current is not None:
                logger.info(
                    "Currently connected to exit node: %s", current.name or current.hostname
                )

        try:
            prefs = self.local_client.get_prefs()
        except LocalAgentError as e:
            raise LocalAgentError(f"failed to get prefs: {e}") from e

        if prefs.exit_node_id == device_id:
            if device_id:
                logger.info("Exit node is already set to %s.", device_id)
            else:
                logger.info("No exit node is set.")
        elif device_id:
            logger.info("Setting exit node to %s...", device_id)
        else:
            logger.info("Clearing exit node...")

        try:
            self.local_client.edit_prefs({"ExitNodeID": device_id, "ExitNodeIDSet": True})
        except LocalAgentError as e:
            raise LocalAgentError(f"failed to set/unset exit node: {e}") from e

        try:
            status = self.local_client.status()
        except LocalAgentError as e:
            raise LocalAgentError(f"failed to get tailscale status: {e}") from e

        if status.exit_node is not None and not status.exit_node.online:
            raise ExitNodeUnreachableError(status.exit_node.node_id)
