"""Launch external remote-session clients."""

from __future__ import annotations

import logging
import platform
import subprocess
from collections.abc import Callable, Sequence
from typing import Any

from ec2remote.constants import RDP_DEFAULT_PORT, Protocol
from ec2remote.core.models import (
    InstanceConnectionPlan,
    KeyMaterial,
    LaunchResult,
    LoginCredential,
)
from ec2remote.providers.exceptions import LaunchFailed

logger = logging.getLogger(__name__)

REDACTED = "********"

Spawner = Callable[..., int | None]


def spawn_detached(argv: Sequence[str], inherit_stdio: bool = False) -> int | None:
    """Start a process without waiting for it.

    The child gets its own console on Windows and its own session elsewhere,
    so it outlives the batch and is never supervised.

    Parameters
    ----------
    argv : Sequence[str]
        Command line
    inherit_stdio : bool
        Keep the parent's standard streams instead of /dev/null

    Returns
    -------
    int | None
        Process ID of the child

    Raises
    ------
    LaunchFailed
        If the executable cannot be started
    """
    kwargs: dict[str, Any] = {}

    if not inherit_stdio:
        kwargs.update(
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    if platform.system() == "Windows":
        kwargs["creationflags"] = getattr(subprocess, "CREATE_NEW_CONSOLE", 0)
    else:
        kwargs["start_new_session"] = True

    try:
        process = subprocess.Popen(list(argv), **kwargs)
    except OSError as e:
        raise LaunchFailed(f"Failed to start {argv[0]}: {e}") from e

    logger.debug("Spawned %s with pid %s", argv[0], process.pid)
    return process.pid


class RDPLauncher:
    """Start a graphical Remote Desktop client in full-screen mode.

    On Windows the password is stored with ``cmdkey`` for the target and
    ``mstsc`` is started; elsewhere the client (``xfreerdp`` by default)
    receives the credentials on its command line.

    Parameters
    ----------
    client : str | None
        Client executable; defaults to mstsc on Windows and xfreerdp elsewhere
    spawner : Spawner | None
        Function starting the detached process (default: spawn_detached)
    runner : Callable[..., Any] | None
        Function running blocking helper commands (default: subprocess.run)
    system : str | None
        Host OS name as returned by platform.system()
    """

    def __init__(
        self,
        client: str | None = None,
        spawner: Spawner | None = None,
        runner: Callable[..., Any] | None = None,
        system: str | None = None,
    ) -> None:
        self.system = system or platform.system()
        self.is_windows = self.system == "Windows"
        self.client = client or ("mstsc" if self.is_windows else "xfreerdp")
        self.spawner = spawner or spawn_detached
        self.runner = runner or subprocess.run

    def build_argv(
        self, plan: InstanceConnectionPlan, credential: LoginCredential
    ) -> list[str]:
        """Build the client command line.

        Parameters
        ----------
        plan : InstanceConnectionPlan
            Resolved plan
        credential : LoginCredential
            Decrypted login

        Returns
        -------
        list[str]
            Command line; for mstsc the password is passed through cmdkey
            instead
        """
        target = plan.address
        if plan.port != RDP_DEFAULT_PORT:
            target = f"{plan.address}:{plan.port}"

        if self.is_windows:
            return [self.client, f"/v:{target}", "/f"]

        return [
            self.client,
            f"/v:{target}",
            f"/u:{credential.username}",
            f"/p:{credential.password}",
            "/f",
        ]

    def store_credential(
        self, plan: InstanceConnectionPlan, credential: LoginCredential
    ) -> None:
        """Register the login with the Windows credential manager."""
        try:
            self.runner(
                [
                    "cmdkey",
                    f"/generic:TERMSRV/{plan.address}",
                    f"/user:{credential.username}",
                    f"/pass:{credential.password}",
                ],
                check=True,
                capture_output=True,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            raise LaunchFailed(
                f"Failed to store credentials for {plan.address} with cmdkey: {e}"
            ) from e

    def launch(
        self, plan: InstanceConnectionPlan, credential: LoginCredential
    ) -> LaunchResult:
        """Launch the RDP client for a plan."""
        if self.is_windows:
            self.store_credential(plan, credential)

        argv = self.build_argv(plan, credential)
        pid = self.spawner(argv)

        return LaunchResult(
            instance_id=plan.instance_id,
            protocol=Protocol.RDP,
            argv=tuple(redact_password(argv, credential.password)),
            pid=pid,
        )


class SSHLauncher:
    """Start an OpenSSH client authenticating with the located key file.

    Parameters
    ----------
    client : str
        ssh executable
    terminal : Sequence[str] | None
        Optional terminal emulator prefix, e.g. ``["x-terminal-emulator", "-e"]``
    spawner : Spawner | None
        Function starting the detached process (default: spawn_detached)
    """

    def __init__(
        self,
        client: str = "ssh",
        terminal: Sequence[str] | None = None,
        spawner: Spawner | None = None,
    ) -> None:
        self.client = client
        self.terminal = list(terminal or [])
        self.spawner = spawner or spawn_detached

    def build_argv(self, plan: InstanceConnectionPlan, key: KeyMaterial) -> list[str]:
        """Build ``ssh -i <key> <user>@<address> -p <port>``."""
        return [
            *self.terminal,
            self.client,
            "-i",
            str(key.path),
            f"{plan.username}@{plan.address}",
            "-p",
            str(plan.port),
        ]

    def launch(self, plan: InstanceConnectionPlan, key: KeyMaterial) -> LaunchResult:
        """Launch the SSH client for a plan."""
        argv = self.build_argv(plan, key)
        pid = self.spawner(argv, inherit_stdio=not self.terminal)

        return LaunchResult(
            instance_id=plan.instance_id,
            protocol=Protocol.SSH,
            argv=tuple(argv),
            pid=pid,
        )


def redact_password(argv: Sequence[str], password: str) -> list[str]:
    """Replace every occurrence of a password in a command line."""
    if not password:
        return list(argv)
    return [arg.replace(password, REDACTED) for arg in argv]

