#!/usr/bin/env python3
"""ec2remote - open RDP or SSH sessions to EC2 instances by ID."""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

for _boto_module in ["botocore", "boto3", "urllib3", "paramiko"]:
    logging.getLogger(_boto_module).setLevel(logging.WARNING)

from ec2remote.cli.main import main  # noqa: E402
from ec2remote.cli.parsing import apply_cli_overrides, parse_instance_ids  # noqa: E402
from ec2remote.constants import OutcomeStatus  # noqa: E402
from ec2remote.core.config import (  # noqa: E402
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_FILE,
    ConfigLoader,
    get_effective_region,
    resolve_key_directory,
)
from ec2remote.core.dispatcher import Dispatcher  # noqa: E402
from ec2remote.core.keys import list_keys  # noqa: E402
from ec2remote.core.models import ConnectionOutcome, ConnectionRequest  # noqa: E402
from ec2remote.core.session import ConnectionSession  # noqa: E402
from ec2remote.providers.aws.inventory import AWSInventory  # noqa: E402
from ec2remote.providers.aws.resolver import InstanceResolver  # noqa: E402
from ec2remote.providers.aws.session import (  # noqa: E402
    ConnectivityContext,
    bootstrap_connectivity,
)
from ec2remote.services.launchers import RDPLauncher, SSHLauncher  # noqa: E402
from ec2remote.templates import CONFIG_TEMPLATE  # noqa: E402
from ec2remote.utils import log_and_print_error  # noqa: E402

logger = logging.getLogger(__name__)


class EC2Remote:
    """Main CLI interface for ec2remote."""

    def __init__(
        self,
        session_factory: Callable[..., Any] | None = None,
        spawner: Callable[..., int | None] | None = None,
        command_runner: Callable[..., Any] | None = None,
    ) -> None:
        """Initialize EC2Remote with optional dependency injection.

        Parameters
        ----------
        session_factory : Callable[..., Any] | None
            Factory for boto3 sessions (default: boto3.Session)
        spawner : Callable[..., int | None] | None
            Function starting detached client processes
        command_runner : Callable[..., Any] | None
            Function running blocking helper commands such as cmdkey
        """
        self._config_loader = ConfigLoader()
        self._session_factory = session_factory
        self._spawner = spawner
        self._command_runner = command_runner

    def _load_settings(
        self,
        env: str | None = None,
        key_name: str | None = None,
        key_path: str | None = None,
        username: str | None = None,
        region: str | None = None,
        protocol: str | None = None,
        port: str | int | None = None,
    ) -> dict[str, Any]:
        config = self._config_loader.load_config()
        settings = self._config_loader.get_environment_config(
            config, None if env is None else str(env)
        )
        self._config_loader.validate_config(settings)
        apply_cli_overrides(
            settings,
            key_name=key_name,
            key_path=key_path,
            username=username,
            region=region,
            protocol=protocol,
            port=port,
        )
        return settings

    def _build_requests(
        self, instance_ids: tuple[Any, ...], settings: dict[str, Any]
    ) -> list[ConnectionRequest]:
        key_directory = resolve_key_directory(settings)

        return [
            ConnectionRequest(
                instance_id=instance_id,
                key_directory=key_directory,
                environment=settings.get("environment"),
                key_name=settings.get("key_name"),
                username=settings.get("username"),
                region=settings.get("region"),
                protocol=settings.get("protocol"),
                port=settings.get("port"),
            )
            for instance_id in parse_instance_ids(instance_ids)
        ]

    def _bootstrap(self, settings: dict[str, Any]) -> ConnectivityContext:
        return bootstrap_connectivity(
            region=get_effective_region(settings),
            profile=settings.get("profile"),
            session_factory=self._session_factory,
        )

    def _create_session(self, settings: dict[str, Any]) -> ConnectionSession:
        context = self._bootstrap(settings)
        inventory = AWSInventory(context.client("ec2"))

        dispatcher = Dispatcher(
            inventory=inventory,
            rdp_launcher=RDPLauncher(
                client=settings.get("rdp_client"),
                spawner=self._spawner,
                runner=self._command_runner,
            ),
            ssh_launcher=SSHLauncher(
                client=settings.get("ssh_client") or "ssh",
                terminal=settings.get("terminal"),
                spawner=self._spawner,
            ),
        )

        return ConnectionSession(resolver=InstanceResolver(inventory), dispatcher=dispatcher)

    def _run(
        self,
        instance_ids: tuple[Any, ...],
        launch: bool,
        verbose: bool,
        **overrides: Any,
    ) -> list[ConnectionOutcome]:
        if verbose:
            logging.getLogger().setLevel(logging.DEBUG)

        settings = self._load_settings(**overrides)
        requests = self._build_requests(instance_ids, settings)
        session = self._create_session(settings)

        return session.connect_all(requests, launch=launch)

    def connect(
        self,
        *instance_ids: str,
        env: str | None = None,
        key_name: str | None = None,
        key_path: str | None = None,
        username: str | None = None,
        region: str | None = None,
        protocol: str | None = None,
        port: int | None = None,
        verbose: bool = False,
    ) -> list[dict[str, Any]]:
        """Resolve each instance and open an RDP or SSH session to it.

        Parameters
        ----------
        *instance_ids : str
            One or more EC2 instance IDs
        env : str | None
            Environment name (AWS profile and key sub-directory)
        key_name : str | None
            Key name hint; defaults to the instance key pair name
        key_path : str | None
            Directory holding private keys
        username : str | None
            Login user for Windows instances
        region : str | None
            AWS region override
        protocol : str | None
            RDP or SSH for Windows instances
        port : int | None
            Port for Windows instances
        verbose : bool
            Enable debug logging

        Returns
        -------
        list[dict[str, Any]]
            One outcome per instance, in input order
        """
        outcomes = self._run(
            instance_ids,
            launch=True,
            verbose=verbose,
            env=env,
            key_name=key_name,
            key_path=key_path,
            username=username,
            region=region,
            protocol=protocol,
            port=port,
        )
        return [outcome.to_dict() for outcome in outcomes]

    def plan(
        self,
        *instance_ids: str,
        env: str | None = None,
        key_name: str | None = None,
        key_path: str | None = None,
        username: str | None = None,
        region: str | None = None,
        protocol: str | None = None,
        port: int | None = None,
        json_output: bool = False,
        verbose: bool = False,
    ) -> list[dict[str, Any]] | str:
        """Show how each instance would be reached without launching anything.

        Takes the same arguments as ``connect``. No password is decrypted.
        """
        outcomes = self._run(
            instance_ids,
            launch=False,
            verbose=verbose,
            env=env,
            key_name=key_name,
            key_path=key_path,
            username=username,
            region=region,
            protocol=protocol,
            port=port,
        )
        results = [outcome.to_dict() for outcome in outcomes]

        if json_output:
            return json.dumps(results, indent=2)

        return results

    def keys(self, env: str | None = None, key_path: str | None = None) -> list[str]:
        """List private-key files available for an environment."""
        settings = self._load_settings(env=env, key_path=key_path)
        key_directory = resolve_key_directory(settings)
        found = list_keys(key_directory)

        if not found:
            logger.warning("No private keys found in %s", key_directory)

        return [str(path) for path in found]

    def init(self, force: bool = False) -> None:
        """Create a default ec2remote.yaml configuration file."""
        config_path = os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE)
        config_file = Path(config_path).expanduser()

        if config_file.exists() and not force:
            log_and_print_error(
                "%s already exists. Use --force to overwrite.",
                config_path,
            )
            sys.exit(1)

        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, "w") as f:
            f.write(CONFIG_TEMPLATE)

        print(f"Created {config_path} configuration file.")


def count_failures(results: list[dict[str, Any]]) -> int:
    """Count failed outcomes in a list returned by ``connect`` or ``plan``."""
    return sum(1 for result in results if result["status"] == OutcomeStatus.FAILED.value)


if __name__ == "__main__":
    main()
