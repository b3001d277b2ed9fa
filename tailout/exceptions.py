"""Exception hierarchy for tailout operations."""

from __future__ import annotations


class TailoutError(Exception):
    """Base exception for all tailout failures."""


class ConfigurationError(TailoutError, ValueError):
    """Invalid or missing configuration (endpoint, duration, region)."""


class NotFoundError(TailoutError, LookupError):
    """A named device, image or instance does not exist."""


class ProvisioningError(TailoutError, RuntimeError):
    """The cloud provider did not produce a usable instance."""


class RemoteExecutionError(TailoutError):
    """A remote command finished with a non-success status.

    Parameters
    ----------
    status : str
        Terminal invocation status reported by the remote execution service
    stderr : str
        Standard error captured from the remote command
    """

    def __init__(self, status: str, stderr: str = "") -> None:
        self.status = status
        self.stderr = stderr
        super().__init__(f"remote command failed with status: {status}, output: {stderr}")


class WaitTimeoutError(TailoutError, TimeoutError):
    """A bounded wait exceeded its budget.

    The cloud resource may still be converging when this is raised.

    Parameters
    ----------
    operation : str
        Human readable description of what was being waited for
    timeout : float
        Budget in seconds that was exceeded
    """

    def __init__(self, operation: str, timeout: float) -> None:
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"timed out after {timeout:.0f}s waiting for {operation}")


class OperationCancelledError(TailoutError):
    """The cancellation token fired during a blocking step."""


class AgentNotRunningError(TailoutError):
    """The local tailscaled backend is not in the Running state."""

    def __init__(self, backend_state: str) -> None:
        self.backend_state = backend_state
        super().__init__(f"tailscale is not running (backend state: {backend_state})")


class ExitNodeUnreachableError(TailoutError):
    """The selected exit node reports offline after the preference change."""

    def __init__(self, exit_node_id: str) -> None:
        self.exit_node_id = exit_node_id
        super().__init__(f"the exit node {exit_node_id} is not reachable")
