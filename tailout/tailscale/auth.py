"""Issuing of single-use join credentials for new exit nodes."""

from __future__ import annotations

import logging

from tailout.constants import AUTH_KEY_DESCRIPTION, EXIT_NODE_TAG
from tailout.providers.exceptions import MeshAPIError
from tailout.tailscale.api import TailscaleClient
from tailout.tailscale.models import JoinCredential, KeyCapabilities

logger = logging.getLogger(__name__)


class AuthKeyIssuer:
    """Create ephemeral, pre-authorized auth keys scoped to one tag."""

    def __init__(self, api_client: TailscaleClient) -> None:
        self.api_client = api_client

    def issue_key(self, tag: str = EXIT_NODE_TAG) -> JoinCredential:
        """Create a new join credential.

        Parameters
        ----------
        tag : str
            The only ACL tag the joining device receives

        Returns
        -------
        JoinCredential
            Fresh single-use credential

        Raises
        ------
        MeshAPIError
            If the control API refuses or fails the request
        ProviderCredentialsError
            If the API key is rejected
        """
        capabilities = KeyCapabilities(tags=frozenset({tag}))

        try:
            payload = self.api_client.create_key(
                capabilities.to_json(), description=AUTH_KEY_DESCRIPTION
            )
        except MeshAPIError as e:
            raise MeshAPIError(e.status_code, f"failed to create auth key: {e.message}") from e

        if not payload.get("key"):
            raise MeshAPIError(200, "failed to create auth key: response contained no key")

        credential = JoinCredential.from_json(payload, capabilities)
        logger.debug("Issued auth key %s for %s", credential.redacted, tag)
        return credential
