"""Connection plan policy.

Non-windows instances never serve RDP, so their protocol, port and login
user are always derived from the platform and any user-supplied value is
discarded. Windows instances honour every override.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ec2remote.constants import (
    GENERIC_LINUX_USERNAME,
    RDP_DEFAULT_PORT,
    SSH_DEFAULT_PORT,
    UBUNTU_USERNAME,
    WINDOWS_DEFAULT_USERNAME,
    OSFamily,
    PlatformFamily,
    Protocol,
)
from ec2remote.core.models import (
    ConnectionRequest,
    InstanceConnectionPlan,
    InstanceDescriptor,
)
from ec2remote.providers.exceptions import KeyNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlatformPolicy:
    """Protocol, port and username decided for a platform."""

    protocol: Protocol
    port: int
    username: str


def default_port(protocol: Protocol) -> int:
    """Return the well-known port of a protocol."""
    return RDP_DEFAULT_PORT if protocol == Protocol.RDP else SSH_DEFAULT_PORT


def derive_policy_for_platform(
    descriptor: InstanceDescriptor,
    protocol: Protocol | None = None,
    port: int | None = None,
    username: str | None = None,
) -> PlatformPolicy:
    """Apply the platform override policy to the requested values.

    Parameters
    ----------
    descriptor : InstanceDescriptor
        Resolved instance facts
    protocol : Protocol | None
        Requested protocol
    port : int | None
        Requested port
    username : str | None
        Requested login user

    Returns
    -------
    PlatformPolicy
        Effective protocol, port and username
    """
    if descriptor.platform == PlatformFamily.WINDOWS:
        effective_protocol = protocol or Protocol.RDP
        return PlatformPolicy(
            protocol=effective_protocol,
            port=port if port is not None else default_port(effective_protocol),
            username=username or WINDOWS_DEFAULT_USERNAME,
        )

    if descriptor.os_family == OSFamily.UBUNTU:
        forced_username = UBUNTU_USERNAME
    else:
        forced_username = GENERIC_LINUX_USERNAME

    policy = PlatformPolicy(
        protocol=Protocol.SSH,
        port=SSH_DEFAULT_PORT,
        username=forced_username,
    )

    for label, requested, forced in (
        ("protocol", protocol, policy.protocol),
        ("port", port, policy.port),
        ("username", username, policy.username),
    ):
        if requested is not None and requested != forced:
            logger.debug(
                "Ignoring requested %s %r for non-windows instance %s, using %r",
                label,
                requested.value if isinstance(requested, Protocol) else requested,
                descriptor.instance_id,
                forced.value if isinstance(forced, Protocol) else forced,
            )

    return policy


def build_plan(
    descriptor: InstanceDescriptor, request: ConnectionRequest
) -> InstanceConnectionPlan:
    """Build the connection plan for a resolved instance.

    Parameters
    ----------
    descriptor : InstanceDescriptor
        Resolved instance facts
    request : ConnectionRequest
        User request with overrides

    Returns
    -------
    InstanceConnectionPlan
        Plan consumed by key discovery and dispatch

    Raises
    ------
    KeyNotFound
        If no key name was requested and the instance has no key pair
    """
    policy = derive_policy_for_platform(
        descriptor,
        protocol=request.protocol,
        port=request.port,
        username=request.username,
    )

    key_name = request.key_name or descriptor.key_pair_name
    if not key_name:
        raise KeyNotFound(
            f"Instance {descriptor.instance_id} was launched without a key pair "
            "and no --key_name was given"
        )

    return InstanceConnectionPlan(
        instance_id=descriptor.instance_id,
        address=descriptor.address,
        protocol=policy.protocol,
        port=policy.port,
        username=policy.username,
        key_name=key_name,
    )
