"""Value objects passed between the connection pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ec2remote.constants import OSFamily, OutcomeStatus, PlatformFamily, Protocol


@dataclass(frozen=True)
class ConnectionRequest:
    """One instance to connect to, with the user's overrides.

    Attributes
    ----------
    instance_id : str
        EC2 instance identifier
    key_directory : Path
        Directory scanned for private keys, fixed when the request is built
    environment : str | None
        Environment name, also used as the AWS profile by default
    key_name : str | None
        Key name hint; inferred from the instance key pair when None
    username : str | None
        Requested login user (ignored for non-windows instances)
    region : str | None
        AWS region override
    protocol : Protocol | None
        Requested protocol (ignored for non-windows instances)
    port : int | None
        Requested port (ignored for non-windows instances)
    """

    instance_id: str
    key_directory: Path
    environment: str | None = None
    key_name: str | None = None
    username: str | None = None
    region: str | None = None
    protocol: Protocol | None = None
    port: int | None = None

    def __post_init__(self) -> None:
        if not self.instance_id or not self.instance_id.strip():
            raise ValueError("Instance identifier must not be empty")


@dataclass(frozen=True)
class InstanceDescriptor:
    """Facts about one instance, fetched fresh for every request."""

    instance_id: str
    address: str
    platform: PlatformFamily
    os_family: OSFamily | None = None
    image_id: str | None = None
    image_name: str | None = None
    key_pair_name: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class InstanceConnectionPlan:
    """Post-policy connection parameters for one instance."""

    instance_id: str
    address: str
    protocol: Protocol
    port: int
    username: str
    key_name: str

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable view of the plan."""
        return {
            "instance_id": self.instance_id,
            "address": self.address,
            "protocol": self.protocol.value,
            "port": self.port,
            "username": self.username,
            "key_name": self.key_name,
        }


@dataclass(frozen=True)
class KeyMaterial:
    """Private-key file located for an instance."""

    path: Path
    key_name: str


@dataclass(frozen=True)
class LoginCredential:
    """Decrypted initial Windows login."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class LaunchResult:
    """Client process spawned for an instance.

    ``argv`` never contains the plain-text password.
    """

    instance_id: str
    protocol: Protocol
    argv: tuple[str, ...]
    pid: int | None = None


@dataclass(frozen=True)
class ConnectionOutcome:
    """Result of processing one instance in a batch."""

    instance_id: str
    status: OutcomeStatus
    plan: InstanceConnectionPlan | None = None
    key: KeyMaterial | None = None
    launch: LaunchResult | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.status != OutcomeStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable view of the outcome."""
        result: dict[str, Any] = {
            "instance_id": self.instance_id,
            "status": self.status.value,
        }
        if self.plan is not None:
            result.update(self.plan.to_dict())
        if self.key is not None:
            result["key_file"] = str(self.key.path)
        if self.launch is not None:
            result["pid"] = self.launch.pid
        if self.error is not None:
            result["error"] = str(self.error)
            result["error_type"] = type(self.error).__name__
            error_code = getattr(self.error, "error_code", None)
            if error_code:
                result["error_code"] = error_code
        return result
