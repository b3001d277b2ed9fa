"""Tailout - disposable Tailscale exit nodes on AWS spot instances."""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Any, Callable

import httpx

from tailout.cli.prompts import Prompter
from tailout.core.config import ConfigLoader
from tailout.core.create_executor import CreateExecutor
from tailout.core.signals import CancellationToken
from tailout.lifecycle import LifecycleManager
from tailout.providers.aws.utils import make_client_factory
from tailout.tailscale.api import TailscaleClient
from tailout.tailscale.auth import AuthKeyIssuer
from tailout.tailscale.exit_node import ExitNodeSwitch
from tailout.tailscale.local import LocalClient
from tailout.tailscale.registry import NodeRegistry

for _noisy_module in ["botocore", "boto3", "urllib3", "httpx", "httpcore"]:
    logging.getLogger(_noisy_module).setLevel(logging.WARNING)


class Tailout:
    """Main CLI interface for tailout.

    Every command loads the configuration, builds its clients once and
    closes the HTTP clients again before returning.

    Parameters
    ----------
    boto3_client_factory : Callable | None
        Replacement for ``boto3.client``
    http_client : httpx.Client | None
        Client for the Tailscale control API, created per command when None
    local_http_client : httpx.Client | None
        Client for the tailscaled LocalAPI, created per command when None
    prompter : Any | None
        Prompting collaborator, a terminal Prompter when None
    token : CancellationToken | None
        Token shared with the signal handlers
    """

    def __init__(
        self,
        boto3_client_factory: Callable | None = None,
        http_client: httpx.Client | None = None,
        local_http_client: httpx.Client | None = None,
        prompter: Any | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Initialize Tailout with optional dependency injection."""
        self._config_loader = ConfigLoader()
        self._client_factory = make_client_factory(boto3_client_factory)
        self._http_client = http_client
        self._local_http_client = local_http_client
        self._token = token or CancellationToken()
        self._prompter = prompter or Prompter(token=self._token)

    @property
    def token(self) -> CancellationToken:
        """Get the cancellation token of this invocation."""
        return self._token

    def _load_config(self, overrides: dict[str, Any], verbose: bool) -> dict[str, Any]:
        if verbose:
            logging.getLogger("tailout").setLevel(logging.DEBUG)
            logging.debug("Verbose mode enabled")

        config = self._config_loader.load_config(overrides=overrides)
        self._config_loader.validate_config(config)
        return config

    def _build_lifecycle_manager(
        self, config: dict[str, Any], stack: ExitStack
    ) -> tuple[LifecycleManager, NodeRegistry, TailscaleClient]:
        tailscale = config["tailscale"]

        api_client = TailscaleClient(
            api_key=tailscale["api_key"],
            tailnet=tailscale["tailnet"],
            base_url=tailscale["base_url"],
            http_client=self._http_client,
        )
        stack.callback(api_client.close)

        local_client = LocalClient(
            socket_path=tailscale["local_socket"],
            http_client=self._local_http_client,
        )
        stack.callback(local_client.close)

        registry = NodeRegistry(api_client)
        lifecycle_manager = LifecycleManager(
            registry=registry,
            switch=ExitNodeSwitch(local_client, registry),
            prompter=self._prompter,
        )
        return lifecycle_manager, registry, api_client

    def create(
        self,
        region: str | None = None,
        dry_run: bool = False,
        connect: bool = False,
        shutdown: str | None = None,
        non_interactive: bool = False,
        instance_type: str | None = None,
        verbose: bool = False,
    ) -> None:
        """Create a new exit node in AWS and join it to the tailnet.

        Parameters
        ----------
        region : str | None
            AWS region, prompted for when omitted
        dry_run : bool
            Validate the launch request without creating anything
        connect : bool
            Use the new node as exit node once it has joined
        shutdown : str | None
            Instance lifetime such as ``2h`` or ``90m`` (default: 2h)
        non_interactive : bool
            Fail instead of prompting
        instance_type : str | None
            EC2 instance type (default: t3a.micro)
        verbose : bool
            Enable debug logging
        """
        config = self._load_config(
            {
                "region": region,
                "dry_run": dry_run or None,
                "non_interactive": non_interactive or None,
                "create.connect": connect or None,
                "create.shutdown": shutdown,
                "create.instance_type": instance_type,
            },
            verbose,
        )

        with ExitStack() as stack:
            lifecycle_manager, registry, api_client = self._build_lifecycle_manager(
                config, stack
            )
            executor = CreateExecutor(
                client_factory=self._client_factory,
                issuer=AuthKeyIssuer(api_client),
                registry=registry,
                prompter=self._prompter,
                token=self._token,
                connect=lambda node: lifecycle_manager.connect(
                    node, non_interactive=config["non_interactive"]
                ),
            )
            executor.execute(
                region=config["region"] or None,
                dry_run=config["dry_run"],
                connect=config["create"]["connect"],
                shutdown=config["create"]["shutdown"],
                non_interactive=config["non_interactive"],
                instance_type=config["create"]["instance_type"],
            )

    def connect(
        self, node: str | None = None, non_interactive: bool = False, verbose: bool = False
    ) -> None:
        """Use an active tailout node as exit node.

        Parameters
        ----------
        node : str | None
            Hostname of the node, prompted for when omitted
        non_interactive : bool
            Fail instead of prompting
        verbose : bool
            Enable debug logging
        """
        config = self._load_config({"non_interactive": non_interactive or None}, verbose)

        with ExitStack() as stack:
            lifecycle_manager, _, _ = self._build_lifecycle_manager(config, stack)
            lifecycle_manager.connect(node, non_interactive=config["non_interactive"])

    def disconnect(self, verbose: bool = False) -> None:
        """Stop using an exit node.

        Parameters
        ----------
        verbose : bool
            Enable debug logging
        """
        config = self._load_config({}, verbose)

        with ExitStack() as stack:
            lifecycle_manager, _, _ = self._build_lifecycle_manager(config, stack)
            lifecycle_manager.disconnect()
