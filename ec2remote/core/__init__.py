"""Core ec2remote functionality."""

from __future__ import annotations

from ec2remote.core.models import (
    ConnectionOutcome,
    ConnectionRequest,
    InstanceConnectionPlan,
    InstanceDescriptor,
    KeyMaterial,
    LaunchResult,
    LoginCredential,
)

__all__ = [
    "ConnectionOutcome",
    "ConnectionRequest",
    "InstanceConnectionPlan",
    "InstanceDescriptor",
    "KeyMaterial",
    "LaunchResult",
    "LoginCredential",
]
