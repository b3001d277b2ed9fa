from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from rich.console import Console

from tailout.constants import DEFAULT_INSTANCE_TYPE, DEFAULT_SHUTDOWN
from tailout.core.signals import CancellationToken
from tailout.exceptions import ConfigurationError, NotFoundError
from tailout.providers.aws.ami import ImageResolver
from tailout.providers.aws.compute import (
    Aborted,
    InstanceProvisioner,
    ProvisionedInstance,
    list_regions,
)
from tailout.providers.aws.constants import REGION_DISCOVERY_REGION
from tailout.providers.aws.ssm import RemoteInstaller
from tailout.providers.aws.utils import build_user_data
from tailout.tailscale.auth import AuthKeyIssuer
from tailout.tailscale.registry import NodeRegistry, utc_now
from tailout.utils import duration_minutes, parse_duration

logger = logging.getLogger(__name__)


class CreateExecutor:
    """Orchestrates the create command execution flow.

    Issues a join credential, launches a spot instance, installs Tailscale on
    it and checks that the node joined the tailnet. Nothing is left to clean
    up on failure: the instance shuts itself down and the ephemeral node
    leaves the tailnet on its own.

    Parameters
    ----------
    client_factory : Callable[[str, str], Any]
        Builds a boto3 client from ``(service_name, region)``
    issuer : AuthKeyIssuer
        Creates the join credential
    registry : NodeRegistry
        Used to verify that the new node joined
    prompter : Any
        Prompting collaborator with ``confirm`` and ``select_region``
    token : CancellationToken
        Cancellation token of the current invocation
    connect : Callable[[str], Any] | None
        Called with the new node's hostname when the node should be used as
        exit node right away
    console : Console | None
        Console the progress spinners are drawn on
    now : Callable[[], datetime]
        Clock used for the planned termination time
    """

    def __init__(
        self,
        client_factory: Callable[[str, str], Any],
        issuer: AuthKeyIssuer,
        registry: NodeRegistry,
        prompter: Any,
        token: CancellationToken,
        connect: Callable[[str], Any] | None = None,
        console: Console | None = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client_factory = client_factory
        self.issuer = issuer
        self.registry = registry
        self.prompter = prompter
        self.token = token
        self.connect = connect
        self.console = console or Console(stderr=True)
        self.now = now

    def resolve_region(self, region: str | None, non_interactive: bool) -> str:
        """Return the explicit region, or ask the operator for one.

        Raises
        ------
        ConfigurationError
            If no region is given in non-interactive mode
        """
        if region:
            return region

        if non_interactive:
            raise ConfigurationError(
                "selected non-interactive mode but no region was explicitly specified"
            )

        regions = list_regions(self.client_factory("ec2", REGION_DISCOVERY_REGION))
        return self.prompter.select_region(regions)

    def execute(
        self,
        region: str | None = None,
        dry_run: bool = False,
        connect: bool = False,
        shutdown: str = DEFAULT_SHUTDOWN,
        non_interactive: bool = False,
        instance_type: str = DEFAULT_INSTANCE_TYPE,
    ) -> ProvisionedInstance | None:
        """Create a new exit node.

        Parameters
        ----------
        region : str | None
            AWS region, prompted for when empty
        dry_run : bool
            Validate the launch request without creating anything
        connect : bool
            Use the new node as exit node once it has joined
        shutdown : str
            Lifetime of the instance as a duration string such as ``2h``
        non_interactive : bool
            Fail instead of prompting for missing values
        instance_type : str
            EC2 instance type

        Returns
        -------
        ProvisionedInstance | None
            The new instance, the dry-run sentinel, or None when the operator
            declined the launch

        Raises
        ------
        ConfigurationError
            If the duration is shorter than a minute or no region is known
        NotFoundError
            If the node does not show up in the tailnet after installation
        """
        credential = self.issuer.issue_key()

        lifetime = parse_duration(shutdown)
        minutes = duration_minutes(shutdown)

        region = self.resolve_region(region, non_interactive)

        ec2_client = self.client_factory("ec2", region)
        image = ImageResolver(ec2_client, region).resolve_latest_image()

        provisioner = InstanceProvisioner(
            ec2_client,
            self.client_factory("sts", region),
            region,
            confirm=self.prompter.confirm,
        )
        decision = provisioner.prepare(
            image,
            instance_type,
            build_user_data(minutes),
            shutdown,
            dry_run=dry_run,
        )
        if isinstance(decision, Aborted):
            logger.info("Instance creation aborted.")
            return None

        with self.console.status("Creating instance...") as status:
            instance = provisioner.provision(decision, self.token, progress=status.update)

        if instance.is_dry_run:
            return instance

        installer = RemoteInstaller(self.client_factory("ssm", region))
        with self.console.status("Installing Tailscale...") as status:
            installer.install(
                instance.instance_id,
                credential,
                instance.name,
                self.token,
                progress=status.update,
            )
        logger.info("Tailscale installed.")

        if self.registry.find_by_hostname(instance.name) is None:
            raise NotFoundError("failed to find the created node in tailnet")

        logger.info("Node %s joined tailnet.", instance.name)
        logger.info("Public IP address: %s", instance.public_ip)
        logger.info(
            "Planned termination time: %s",
            (self.now() + lifetime).isoformat(timespec="seconds"),
        )

        if connect and self.connect is not None:
            logger.info("")
            self.connect(instance.name)

        return instance
