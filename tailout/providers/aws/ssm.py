"""Remote Tailscale installation through AWS Systems Manager."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from tailout.constants import COMMAND_EXECUTION_TIMEOUT_SECONDS, COMMAND_POLL_DELAY_SECONDS
from tailout.core.signals import CancellationToken
from tailout.core.waiter import poll_until
from tailout.exceptions import RemoteExecutionError
from tailout.providers.aws.constants import (
    COMMAND_PENDING_STATUSES,
    COMMAND_STATUS_SUCCESS,
    INVOCATION_NOT_FOUND_ERROR_CODE,
    RUN_SHELL_SCRIPT_DOCUMENT,
)
from tailout.providers.aws.errors import handle_aws_errors
from tailout.providers.exceptions import ProviderAPIError
from tailout.tailscale.models import JoinCredential

logger = logging.getLogger(__name__)

TAILSCALE_INSTALL_SCRIPT_URL = "https://tailscale.com/install.sh"


@dataclass(frozen=True)
class CommandInvocation:
    """State of a command on one instance as reported by SSM."""

    command_id: str
    instance_id: str
    status: str
    stderr: str = ""

    @property
    def is_terminal(self) -> bool:
        """Return True once SSM will no longer change the status."""
        return self.status not in COMMAND_PENDING_STATUSES


def build_install_commands(auth_key: str, node_name: str) -> list[str]:
    """Return the shell commands that install and start Tailscale.

    Parameters
    ----------
    auth_key : str
        Pre-authorized join credential
    node_name : str
        Hostname the node announces to the tailnet

    Returns
    -------
    list[str]
        Commands for the AWS-RunShellScript document, in order
    """
    return [
        "echo 'Installing Tailscale...'",
        f"curl -fsSL {TAILSCALE_INSTALL_SCRIPT_URL} | sh",
        "echo 'Starting Tailscale...'",
        f"sudo tailscale up --auth-key={auth_key} --hostname={node_name} "
        "--advertise-exit-node --ssh",
        "echo 'Tailscale installation and configuration completed.'",
    ]


class RemoteInstaller:
    """Install Tailscale on an instance and join it to the tailnet.

    The command is sent exactly once. Running the installer has side effects
    on the instance, so a failed invocation is reported, never repeated.

    Parameters
    ----------
    ssm_client : Any
        Boto3 SSM client for the instance's region
    poll_interval : float
        Seconds between invocation status polls
    timeout : float
        Budget in seconds for the command to reach a terminal status
    clock : Callable[[], float]
        Monotonic clock used by the wait
    """

    def __init__(
        self,
        ssm_client: Any,
        poll_interval: float = COMMAND_POLL_DELAY_SECONDS,
        timeout: float = COMMAND_EXECUTION_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ssm_client = ssm_client
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.clock = clock

    def install(
        self,
        instance_id: str,
        credential: JoinCredential,
        node_name: str,
        token: CancellationToken,
        progress: Callable[[str], None] | None = None,
    ) -> None:
        """Run the Tailscale installer on the instance and wait for it.

        Parameters
        ----------
        instance_id : str
            Target instance
        credential : JoinCredential
            Join credential passed to ``tailscale up``
        node_name : str
            Hostname of the new node
        token : CancellationToken
            Cancellation token of the current invocation
        progress : Callable[[str], None] | None
            Receives short status titles while the call blocks

        Raises
        ------
        RemoteExecutionError
            If the command ends with any status other than Success
        WaitTimeoutError
            If the command does not finish in time
        OperationCancelledError
            If the token fires while waiting
        ProviderError
            If SSM rejects the request
        """
        if progress:
            progress("Installing Tailscale...")
        token.raise_if_cancelled("Tailscale installation")

        command_id = self.send(instance_id, build_install_commands(credential.key, node_name))
        logger.debug(
            "Sent SSM command %s to %s with auth key %s",
            command_id,
            instance_id,
            credential.redacted,
        )

        invocation = self.wait_until_terminal(command_id, instance_id, token)

        if invocation.status != COMMAND_STATUS_SUCCESS:
            raise RemoteExecutionError(invocation.status, invocation.stderr)

    def send(self, instance_id: str, commands: list[str]) -> str:
        """Send commands to an instance and return the command ID."""
        try:
            with handle_aws_errors():
                response = self.ssm_client.send_command(
                    InstanceIds=[instance_id],
                    DocumentName=RUN_SHELL_SCRIPT_DOCUMENT,
                    Parameters={"commands": commands},
                )
        except ProviderAPIError as e:
            raise ProviderAPIError(
                f"failed to send SSM command: {e}", error_code=e.error_code
            ) from e

        return response["Command"]["CommandId"]

    def wait_until_terminal(
        self, command_id: str, instance_id: str, token: CancellationToken
    ) -> CommandInvocation:
        """Poll the invocation until SSM reports a terminal status.

        An invocation that SSM does not know about yet counts as pending.

        Parameters
        ----------
        command_id : str
            Command to wait for
        instance_id : str
            Instance the command runs on
        token : CancellationToken
            Cancellation token of the current invocation

        Returns
        -------
        CommandInvocation
            Invocation in its terminal state
        """

        def check() -> CommandInvocation | None:
            try:
                with handle_aws_errors():
                    response = self.ssm_client.get_command_invocation(
                        CommandId=command_id, InstanceId=instance_id
                    )
            except ProviderAPIError as e:
                if e.error_code == INVOCATION_NOT_FOUND_ERROR_CODE:
                    return None
                raise ProviderAPIError(
                    f"failed to get SSM command invocation: {e}", error_code=e.error_code
                ) from e

            invocation = CommandInvocation(
                command_id=command_id,
                instance_id=instance_id,
                status=response.get("Status", ""),
                stderr=response.get("StandardErrorContent", ""),
            )
            return invocation if invocation.is_terminal else None

        return poll_until(
            check,
            operation=f"SSM command {command_id} on {instance_id}",
            timeout=self.timeout,
            interval=self.poll_interval,
            token=token,
            clock=self.clock,
        )
