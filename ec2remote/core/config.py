import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import InterpolationResolutionError

from ec2remote.constants import (
    DEFAULT_KEY_ROOT,
    DEFAULT_REGION,
    MAX_VALID_PORT,
    MIN_VALID_PORT,
    Protocol,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "EC2REMOTE_CONFIG"
DEFAULT_CONFIG_FILE = "ec2remote.yaml"


class ConfigLoader:
    """Load and merge YAML configuration with defaults."""

    def __init__(self) -> None:
        """Initialize ConfigLoader with built-in defaults."""
        self.BUILT_IN_DEFAULTS = {
            "region": None,
            "environment": None,
            "profile": None,
            "key_root": DEFAULT_KEY_ROOT,
            "key_path": None,
            "key_name": None,
            "username": None,
            "protocol": None,
            "port": None,
            "rdp_client": None,
            "ssh_client": "ssh",
            "terminal": [],
        }

    def load_config(self, config_path: str | None = None) -> dict[str, Any]:
        """Load configuration from YAML file.

        Parameters
        ----------
        config_path : str | None
            Path to YAML config file. If None, checks EC2REMOTE_CONFIG env var,
            then falls back to ec2remote.yaml

        Returns
        -------
        dict[str, Any]
            Parsed configuration with defaults and environments sections,
            with all variable interpolations resolved

        Raises
        ------
        omegaconf.errors.InterpolationResolutionError
            If undefined variables are referenced or circular references exist
        """
        if config_path is None:
            config_path = os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE)

        config_file = Path(config_path).expanduser()

        if not config_file.exists():
            logger.debug("No config file at %s, using built-in defaults", config_file)
            return {"defaults": {}}

        try:
            cfg = OmegaConf.load(config_file)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML config file %s: %s", config_file, e)
            raise ValueError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            logger.error("Failed to read config file %s: %s", config_file, e)
            raise RuntimeError(f"Failed to read config file {config_file}: {e}") from e

        if cfg is None:
            return {"defaults": {}}

        if "vars" in cfg:
            vars_dict = OmegaConf.to_container(cfg.vars, resolve=False)
            for key, value in vars_dict.items():
                if key not in cfg:
                    cfg[key] = value

        try:
            config = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
        except InterpolationResolutionError as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise
        except (ValueError, KeyError, AttributeError) as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ValueError(f"Configuration variable resolution error: {e}") from e

        return config

    def get_environment_config(
        self, config: dict[str, Any], environment: str | None = None
    ) -> dict[str, Any]:
        """Get merged settings for an environment.

        Environments that are not listed in the config file are still valid:
        their name is used as the AWS profile and as the key sub-directory.

        Parameters
        ----------
        config : dict[str, Any]
            Full configuration from YAML
        environment : str | None
            Environment name, or None to use the configured default

        Returns
        -------
        dict[str, Any]
            Merged settings (built-in defaults + YAML defaults + environment)
        """
        merged = copy.deepcopy(self.BUILT_IN_DEFAULTS)

        for key, value in (config.get("defaults") or {}).items():
            merged[key] = value

        if environment is not None:
            merged["environment"] = environment

        env_name = merged.get("environment")
        environments = config.get("environments") or {}

        if env_name is not None and env_name in environments:
            for key, value in (environments[env_name] or {}).items():
                merged[key] = value

        if merged.get("profile") is None and env_name is not None:
            merged["profile"] = env_name

        return merged

    def validate_config(self, config: dict[str, Any]) -> None:
        """Validate merged settings have correct types.

        Parameters
        ----------
        config : dict[str, Any]
            Settings to validate

        Raises
        ------
        ValueError
            If configuration is invalid
        """
        string_fields = (
            "region",
            "environment",
            "profile",
            "key_root",
            "key_path",
            "key_name",
            "username",
            "rdp_client",
            "ssh_client",
        )

        for field in string_fields:
            value = config.get(field)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{field} must be a string")

        terminal = config.get("terminal")
        if terminal is not None:
            if not isinstance(terminal, list) or not all(
                isinstance(item, str) for item in terminal
            ):
                raise ValueError("terminal must be a list of strings")

        protocol = config.get("protocol")
        if protocol is not None and not isinstance(protocol, Protocol):
            valid = [p.value for p in Protocol]
            if not isinstance(protocol, str) or protocol.upper() not in valid:
                raise ValueError(f"protocol must be one of {valid}, got '{protocol}'")

        port = config.get("port")
        if port is not None:
            if isinstance(port, bool) or not isinstance(port, int):
                raise ValueError("port must be an integer")

            if not (MIN_VALID_PORT <= port <= MAX_VALID_PORT):
                raise ValueError(
                    f"port must be between {MIN_VALID_PORT} and {MAX_VALID_PORT}"
                )


def get_effective_region(config: dict[str, Any]) -> str:
    """Get region from settings, the AWS environment, or the built-in default.

    Parameters
    ----------
    config : dict[str, Any]
        Merged settings

    Returns
    -------
    str
        Effective AWS region
    """
    return (
        config.get("region")
        or os.environ.get("AWS_REGION")
        or os.environ.get("AWS_DEFAULT_REGION")
        or DEFAULT_REGION
    )


def resolve_key_directory(config: dict[str, Any]) -> Path:
    """Compute the directory scanned for private keys.

    An explicit ``key_path`` wins. Otherwise the directory is
    ``<key_root>/<environment>``, or ``key_root`` itself without an environment.

    Parameters
    ----------
    config : dict[str, Any]
        Merged settings

    Returns
    -------
    Path
        Expanded key directory
    """
    if config.get("key_path"):
        return Path(config["key_path"]).expanduser()

    key_root = Path(config.get("key_root") or DEFAULT_KEY_ROOT).expanduser()
    environment = config.get("environment")

    if environment:
        return key_root / environment

    return key_root
