"""External client launchers."""

from ec2remote.services.launchers import RDPLauncher, SSHLauncher, spawn_detached

__all__ = ["RDPLauncher", "SSHLauncher", "spawn_detached"]
