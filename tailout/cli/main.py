"""CLI entry point for tailout."""

from __future__ import annotations

import logging
import os
import sys

import fire

from tailout.app import Tailout
from tailout.constants import EXIT_CONFIG_ERROR, EXIT_ERROR
from tailout.core.signals import setup_signal_handlers
from tailout.exceptions import (
    AgentNotRunningError,
    ConfigurationError,
    TailoutError,
)
from tailout.logging import StreamFormatter, StreamRoutingFilter
from tailout.providers import (
    LocalAgentError,
    ProviderAPIError,
    ProviderConnectionError,
    ProviderCredentialsError,
)
from tailout.providers.aws.utils import get_aws_credentials_error_message


class TailoutCLI(Tailout):
    """CLI wrapper that installs signal handlers for each command.

    Fire exposes every public method of this class as a command.
    """

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
        setup_signal_handlers(self.token)
        super().create(
            region=region,
            dry_run=dry_run,
            connect=connect,
            shutdown=shutdown,
            non_interactive=non_interactive,
            instance_type=instance_type,
            verbose=verbose,
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
        setup_signal_handlers(self.token)
        super().connect(node=node, non_interactive=non_interactive, verbose=verbose)

    def disconnect(self, verbose: bool = False) -> None:
        """Stop using an exit node.

        Parameters
        ----------
        verbose : bool
            Enable debug logging
        """
        setup_signal_handlers(self.token)
        super().disconnect(verbose=verbose)


def handle_credentials_error(error: ProviderCredentialsError, debug_mode: bool) -> None:
    """Handle missing or rejected credentials.

    Parameters
    ----------
    error : ProviderCredentialsError
        The credentials error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ProviderCredentialsError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    if "Tailscale" in str(error):
        print(f"{error}\n", file=sys.stderr)
        print("Create an API access token in the Tailscale admin console and:", file=sys.stderr)
        print("  export TAILOUT_API_KEY=tskey-api-...", file=sys.stderr)
    else:
        print(get_aws_credentials_error_message(), file=sys.stderr)

    sys.exit(EXIT_ERROR)


def handle_configuration_error(error: ConfigurationError, debug_mode: bool) -> None:
    """Handle invalid or missing configuration.

    Parameters
    ----------
    error : ConfigurationError
        The configuration error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ConfigurationError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(f"Configuration error: {error}", file=sys.stderr)
    sys.exit(EXIT_CONFIG_ERROR)


def handle_api_error(error: ProviderAPIError, debug_mode: bool) -> None:
    """Handle error responses from AWS or the Tailscale control API.

    Parameters
    ----------
    error : ProviderAPIError
        The API error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ProviderAPIError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    error_code = error.error_code

    if error_code in ["UnauthorizedOperation", "AccessDeniedException", "AccessDenied"]:
        print("Insufficient IAM permissions\n", file=sys.stderr)
        print(
            "Your AWS credentials don't have the required permissions.",
            file=sys.stderr,
        )
        print("tailout needs:", file=sys.stderr)
        print(
            "  - EC2 permissions (DescribeImages, RunInstances, CreateTags, "
            "DescribeInstances, DescribeInstanceStatus, DescribeRegions)",
            file=sys.stderr,
        )
        print("  - SSM permissions (SendCommand, GetCommandInvocation)", file=sys.stderr)
        print("  - STS GetCallerIdentity", file=sys.stderr)
    elif error_code in ["InsufficientInstanceCapacity", "MaxSpotInstanceCountExceeded"]:
        print("No spot capacity available\n", file=sys.stderr)
        print("Fix it:", file=sys.stderr)
        print("  tailout create --region <another region>", file=sys.stderr)
        print("  tailout create --instance_type t3.micro", file=sys.stderr)
    elif error_code in ["ExpiredToken", "RequestExpired", "ExpiredTokenException"]:
        print("AWS credentials have expired\n", file=sys.stderr)
        print("Fix it:", file=sys.stderr)
        print("  aws sso login           # If using AWS SSO", file=sys.stderr)
        print("  aws configure           # Re-configure credentials", file=sys.stderr)
    else:
        print(f"API error: {error}", file=sys.stderr)

    sys.exit(EXIT_ERROR)


def handle_local_agent_error(error: Exception, debug_mode: bool) -> None:
    """Handle an unusable or stopped local Tailscale agent.

    Parameters
    ----------
    error : Exception
        LocalAgentError or AgentNotRunningError
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    Exception
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(f"{error}\n", file=sys.stderr)
    print("Make sure tailscaled is running and you are logged in:", file=sys.stderr)
    print("  sudo tailscale up", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def handle_tailout_error(error: Exception, debug_mode: bool) -> None:
    """Handle any other tailout or service failure.

    Parameters
    ----------
    error : Exception
        The error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    Exception
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(f"Error: {error}", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def main() -> None:
    """Entry point for Fire CLI with graceful error handling.

    Fire maps the methods of TailoutCLI to the ``create``, ``connect`` and
    ``disconnect`` commands. Set ``TAILOUT_DEBUG=1`` to get tracebacks
    instead of short error messages.
    """
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(StreamFormatter("%(message)s"))
    stdout_handler.addFilter(StreamRoutingFilter("stdout"))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(StreamFormatter("%(message)s"))
    stderr_handler.addFilter(StreamRoutingFilter("stderr"))

    logging.basicConfig(
        level=logging.INFO,
        handlers=[stdout_handler, stderr_handler],
    )

    debug_mode = os.environ.get("TAILOUT_DEBUG") == "1"

    try:
        fire.Fire(TailoutCLI())
    except ConfigurationError as e:
        handle_configuration_error(e, debug_mode)
    except ProviderCredentialsError as e:
        handle_credentials_error(e, debug_mode)
    except ProviderAPIError as e:
        handle_api_error(e, debug_mode)
    except (LocalAgentError, AgentNotRunningError) as e:
        handle_local_agent_error(e, debug_mode)
    except (TailoutError, ProviderConnectionError) as e:
        handle_tailout_error(e, debug_mode)
