"""Configuration loading for tailout."""

import logging
import os
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException

from tailout.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_INSTANCE_TYPE,
    DEFAULT_LOCAL_SOCKET,
    DEFAULT_SHUTDOWN,
    DEFAULT_TAILNET,
)
from tailout.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.tailout/config.yaml"

ENV_OVERRIDES = {
    "TAILSCALE_API_KEY": "tailscale.api_key",
    "TAILOUT_API_KEY": "tailscale.api_key",
    "TAILOUT_TAILNET": "tailscale.tailnet",
    "TAILOUT_BASE_URL": "tailscale.base_url",
    "TAILOUT_LOCAL_SOCKET": "tailscale.local_socket",
    "TAILOUT_REGION": "region",
    "TAILOUT_NON_INTERACTIVE": "non_interactive",
    "TAILOUT_SHUTDOWN": "create.shutdown",
    "TAILOUT_INSTANCE_TYPE": "create.instance_type",
}
"""Environment variables and the config keys they override.

Later entries win, so ``TAILOUT_API_KEY`` takes precedence over the
``TAILSCALE_API_KEY`` fallback.
"""

_BOOLEAN_KEYS = frozenset(("non_interactive", "dry_run", "create.connect"))


class ConfigLoader:
    """Load tailout settings from defaults, YAML, environment and overrides."""

    def __init__(self) -> None:
        """Initialize ConfigLoader with built-in defaults."""
        self.BUILT_IN_DEFAULTS = {
            "tailscale": {
                "api_key": "",
                "tailnet": DEFAULT_TAILNET,
                "base_url": DEFAULT_BASE_URL,
                "local_socket": DEFAULT_LOCAL_SOCKET,
            },
            "region": "",
            "non_interactive": False,
            "dry_run": False,
            "create": {
                "connect": False,
                "shutdown": DEFAULT_SHUTDOWN,
                "instance_type": DEFAULT_INSTANCE_TYPE,
            },
        }

    def load_config(
        self,
        config_path: str | None = None,
        overrides: dict[str, Any] | None = None,
        environ: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Load the merged configuration.

        Parameters
        ----------
        config_path : str | None
            Path to YAML config file. If None, checks TAILOUT_CONFIG env var,
            then falls back to ~/.tailout/config.yaml. A missing file is not
            an error.
        overrides : dict[str, Any] | None
            Dotted keys set from the command line; None values are ignored
        environ : dict[str, str] | None
            Environment to read overrides from, os.environ when None

        Returns
        -------
        dict[str, Any]
            Fully resolved configuration

        Raises
        ------
        ConfigurationError
            If the YAML file cannot be parsed or resolved
        """
        environ = os.environ if environ is None else environ

        if config_path is None:
            config_path = environ.get("TAILOUT_CONFIG", DEFAULT_CONFIG_PATH)

        cfg = OmegaConf.create(self.BUILT_IN_DEFAULTS)

        config_file = Path(config_path).expanduser()
        if config_file.exists():
            try:
                file_cfg = OmegaConf.load(config_file)
            except yaml.YAMLError as e:
                logger.error("Failed to parse YAML config file %s: %s", config_file, e)
                raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
            except OSError as e:
                raise ConfigurationError(f"Failed to read config file {config_file}: {e}") from e

            if file_cfg is not None:
                cfg = OmegaConf.merge(cfg, file_cfg)

        for env_name, key in ENV_OVERRIDES.items():
            value = environ.get(env_name)
            if value:
                OmegaConf.update(cfg, key, self._coerce(key, value))

        for key, value in (overrides or {}).items():
            if value is not None:
                OmegaConf.update(cfg, key, value)

        try:
            return OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
        except OmegaConfBaseException as e:
            raise ConfigurationError(f"Configuration variable resolution error: {e}") from e

    @staticmethod
    def _coerce(key: str, value: str) -> Any:
        if key in _BOOLEAN_KEYS:
            return value.strip().lower() in ("1", "true", "yes", "on")
        return value

    def validate_config(self, config: dict[str, Any], require_api_key: bool = True) -> None:
        """Validate configuration values.

        Parameters
        ----------
        config : dict[str, Any]
            Configuration returned by load_config
        require_api_key : bool
            Whether the command talks to the Tailscale control API

        Raises
        ------
        ConfigurationError
            If a value is missing or malformed
        """
        tailscale = config.get("tailscale", {})

        base_url = tailscale.get("base_url", "")
        parsed = urlparse(str(base_url))
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(f"failed to parse base URL: '{base_url}'")

        if require_api_key and not tailscale.get("api_key"):
            raise ConfigurationError(
                "Tailscale API key is required. Set tailscale.api_key in the "
                "config file or export TAILOUT_API_KEY"
            )

        if not isinstance(config.get("create", {}).get("instance_type", ""), str):
            raise ConfigurationError("create.instance_type must be a string")
