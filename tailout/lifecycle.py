from __future__ import annotations

import logging
from typing import Any

from tailout.exceptions import ConfigurationError, NotFoundError
from tailout.tailscale.exit_node import ExitNodeSwitch
from tailout.tailscale.models import Device
from tailout.tailscale.registry import NodeRegistry

logger = logging.getLogger(__name__)


class LifecycleManager:
    """Manages the exit node commands (connect, disconnect).

    Parameters
    ----------
    registry : NodeRegistry
        Source of active exit nodes
    switch : ExitNodeSwitch
        Changes the exit node of the local agent
    prompter : Any
        Prompting collaborator providing ``select_one(title, options)``
    """

    def __init__(self, registry: NodeRegistry, switch: ExitNodeSwitch, prompter: Any) -> None:
        self.registry = registry
        self.switch = switch
        self.prompter = prompter

    def _select_node(self, node: str | None, non_interactive: bool) -> Device:
        """Pick the active exit node to connect to.

        Parameters
        ----------
        node : str | None
            Exact hostname requested on the command line
        non_interactive : bool
            Refuse to prompt when no hostname is given

        Returns
        -------
        Device
            Node to use as exit node

        Raises
        ------
        NotFoundError
            If the hostname is not among the active nodes, or no node is active
        ConfigurationError
            If no hostname was given in non-interactive mode
        """
        active_nodes = self.registry.list_active_exit_nodes()

        if node:
            for device in active_nodes:
                if device.hostname == node:
                    return device
            raise NotFoundError(f"node {node} not found")

        if non_interactive:
            raise ConfigurationError("no node name provided")

        if not active_nodes:
            raise NotFoundError("no tailout node found in your tailnet")

        index = self.prompter.select_one(
            "Select a node", [device.label for device in active_nodes]
        )
        return active_nodes[index]

    def connect(self, node: str | None = None, non_interactive: bool = False) -> Device:
        """Route outbound traffic of this machine through an exit node.

        Parameters
        ----------
        node : str | None
            Hostname of the node, prompted for when omitted
        non_interactive : bool
            Fail instead of prompting

        Returns
        -------
        Device
            The node now in use
        """
        device = self._select_node(node, non_interactive)

        self.switch.set_exit_node(device.node_id)

        logger.info(
            "Connected to node %s (%s) via Tailscale.",
            device.hostname,
            device.primary_address or "no IP",
        )
        return device

    def disconnect(self) -> None:
        """Stop using any exit node."""
        self.switch.set_exit_node("")
        logger.info("Disconnected from exit node.")
