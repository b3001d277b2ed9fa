"""Clients for the external services tailout drives."""

from __future__ import annotations

from tailout.providers.exceptions import (
    LocalAgentError,
    MeshAPIError,
    ProviderAPIError,
    ProviderConnectionError,
    ProviderCredentialsError,
    ProviderError,
)

__all__ = [
    "ProviderError",
    "ProviderCredentialsError",
    "ProviderAPIError",
    "ProviderConnectionError",
    "MeshAPIError",
    "LocalAgentError",
]
