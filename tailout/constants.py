"""Global constants for tailout application.

This module contains application-wide constants that are shared by the
cloud, Tailscale and command-line layers.
"""

from enum import Enum

EXIT_NODE_TAG = "tag:tailout"
"""Tailscale ACL tag carried by every node tailout creates.

Join credentials are scoped to this tag and the node registry only
considers devices that carry it.
"""

AUTH_KEY_DESCRIPTION = "tailout"
"""Description attached to auth keys created in the Tailscale admin console."""

ACTIVE_NODE_MAX_AGE_SECONDS = 600
"""Maximum age in seconds of a device's last-seen timestamp.

Exit nodes that have not checked in with the control plane within the last
ten minutes are treated as gone.
"""

INSTANCE_READY_TIMEOUT_SECONDS = 300
"""Upper bound in seconds for the instance status check wait.

Five minutes covers spot fulfilment plus both EC2 status checks for a
small instance.
"""

COMMAND_EXECUTION_TIMEOUT_SECONDS = 300
"""Upper bound in seconds for the remote Tailscale installation command."""

WAITER_DELAY_SECONDS = 15
"""Delay between instance status polling attempts in seconds."""

COMMAND_POLL_DELAY_SECONDS = 5
"""Delay between remote command invocation polling attempts in seconds."""

DEFAULT_SHUTDOWN = "2h"
"""Default lifetime of a node before it shuts itself down."""

DEFAULT_INSTANCE_TYPE = "t3a.micro"
"""Default EC2 instance type for exit nodes."""

DEFAULT_BASE_URL = "https://api.tailscale.com"
"""Default Tailscale control API endpoint."""

DEFAULT_TAILNET = "-"
"""Tailnet placeholder meaning "the tailnet of the API key owner"."""

DEFAULT_LOCAL_SOCKET = "/var/run/tailscale/tailscaled.sock"
"""Unix socket of the local tailscaled LocalAPI on Linux."""

HTTP_TIMEOUT_SECONDS = 30.0
"""Timeout in seconds for Tailscale HTTP requests."""

EXIT_ERROR = 1
"""Exit code indicating a general application error."""

EXIT_CONFIG_ERROR = 2
"""Exit code indicating a configuration error.

Used when the application terminates due to invalid configuration,
missing required settings, or configuration validation failures.
"""


class BackendState(str, Enum):
    """tailscaled backend states reported by the LocalAPI."""

    NO_STATE = "NoState"
    NEEDS_LOGIN = "NeedsLogin"
    NEEDS_MACHINE_AUTH = "NeedsMachineAuth"
    STOPPED = "Stopped"
    STARTING = "Starting"
    RUNNING = "Running"
