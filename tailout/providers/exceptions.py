"""Provider-agnostic exceptions raised by cloud and Tailscale clients."""

from __future__ import annotations


class ProviderError(Exception):
    """Base exception for failures reported by an external service."""


class ProviderCredentialsError(ProviderError):
    """Credentials for the service are missing or rejected."""


class ProviderConnectionError(ProviderError):
    """The service endpoint could not be reached."""


class ProviderAPIError(ProviderError):
    """The service answered with an error.

    Parameters
    ----------
    message : str
        Error message
    error_code : str | None
        Service specific error code (e.g. ``UnauthorizedOperation``)
    """

    def __init__(self, message: str, error_code: str | None = None) -> None:
        self.error_code = error_code
        super().__init__(message)


class MeshAPIError(ProviderAPIError):
    """Error response from the Tailscale control API.

    Parameters
    ----------
    status_code : int
        HTTP status code, 0 when no response was received
    message : str
        Error message extracted from the response body
    """

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(
            f"Tailscale API error {status_code}: {message}", error_code=str(status_code)
        )


class LocalAgentError(ProviderError):
    """The local tailscaled LocalAPI could not be used."""
