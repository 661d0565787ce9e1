"""Protocol-specific dispatch of a resolved connection plan."""

from __future__ import annotations

import logging
from typing import Any

from ec2remote.constants import Protocol
from ec2remote.core.models import (
    InstanceConnectionPlan,
    KeyMaterial,
    LaunchResult,
    LoginCredential,
)
from ec2remote.services.launchers import RDPLauncher, SSHLauncher

logger = logging.getLogger(__name__)


class Dispatcher:
    """Launch exactly one client per plan.

    RDP plans first decrypt the initial password; SSH plans hand the key
    file to the client and never touch the password service.

    Parameters
    ----------
    inventory : Any
        Object exposing ``get_decrypted_password(instance_id, key_file)``
    rdp_launcher : RDPLauncher
        Launcher for graphical sessions
    ssh_launcher : SSHLauncher
        Launcher for shell sessions
    """

    def __init__(
        self,
        inventory: Any,
        rdp_launcher: RDPLauncher,
        ssh_launcher: SSHLauncher,
    ) -> None:
        self.inventory = inventory
        self.rdp_launcher = rdp_launcher
        self.ssh_launcher = ssh_launcher

    def dispatch(
        self, plan: InstanceConnectionPlan, key: KeyMaterial, instance_id: str
    ) -> LaunchResult:
        """Launch the client selected by the plan.

        Parameters
        ----------
        plan : InstanceConnectionPlan
            Resolved plan
        key : KeyMaterial
            Located private key
        instance_id : str
            EC2 instance ID used for password retrieval

        Returns
        -------
        LaunchResult
            The spawned process

        Raises
        ------
        CredentialDecryptionFailed
            If the RDP password cannot be obtained
        LaunchFailed
            If the client cannot be started
        """
        if plan.protocol == Protocol.RDP:
            password = self.inventory.get_decrypted_password(instance_id, key.path)
            credential = LoginCredential(username=plan.username, password=password)
            logger.info(
                "Opening remote desktop to %s:%s as %s",
                plan.address,
                plan.port,
                plan.username,
                extra={"instance_id": instance_id},
            )
            return self.rdp_launcher.launch(plan, credential)

        logger.info(
            "Opening SSH session to %s@%s:%s with %s",
            plan.username,
            plan.address,
            plan.port,
            key.path.name,
            extra={"instance_id": instance_id},
        )
        return self.ssh_launcher.launch(plan, key)
