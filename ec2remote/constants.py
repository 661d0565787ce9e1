"""Global constants for ec2remote.

This module contains application-wide constants shared by the resolver,
the plan builder and the launchers.
"""

from enum import Enum

DEFAULT_REGION = "us-east-1"
"""Default AWS region used when neither CLI, config nor environment set one."""

RDP_DEFAULT_PORT = 3389
"""Default port for Remote Desktop connections."""

SSH_DEFAULT_PORT = 22
"""Default port for SSH connections.

Non-windows instances are always reached on this port.
"""

WINDOWS_DEFAULT_USERNAME = "Administrator"
"""Built-in administrator account created on every Windows AMI."""

UBUNTU_USERNAME = "ubuntu"
"""Default login user on Canonical Ubuntu images."""

GENERIC_LINUX_USERNAME = "ec2-user"
"""Default login user on Amazon Linux and most other non-windows images."""

WINDOWS_PLATFORM_MARKER = "windows"
"""Value of the EC2 ``Platform`` attribute for Windows instances."""

UBUNTU_IMAGE_PATTERN = "ubuntu*"
"""Shell-style pattern matched case-insensitively against AMI names."""

PRIVATE_KEY_EXTENSIONS = (".pem", ".ppk", ".key")
"""File extensions treated as private-key material during key discovery."""

DEFAULT_KEY_ROOT = "~/Documents/pem"
"""Directory holding one sub-directory of key files per environment."""

MIN_VALID_PORT = 1
"""Minimum valid TCP port number."""

MAX_VALID_PORT = 65535
"""Maximum valid TCP port number."""

EXIT_SUCCESS = 0
"""Exit code when every requested instance was processed successfully."""

EXIT_ERROR = 1
"""Exit code when at least one instance failed or an unexpected error occurred."""

EXIT_CONFIG_ERROR = 2
"""Exit code for invalid arguments or configuration."""


class Protocol(str, Enum):
    """Remote session protocols."""

    RDP = "RDP"
    SSH = "SSH"


class PlatformFamily(str, Enum):
    """Operating system family reported by the instance metadata."""

    WINDOWS = "windows"
    NON_WINDOWS = "non-windows"


class OSFamily(str, Enum):
    """Finer OS family inferred from the image name of non-windows instances."""

    UBUNTU = "ubuntu"
    GENERIC_LINUX = "generic-linux"


class OutcomeStatus(str, Enum):
    """Per-instance result of a batch."""

    LAUNCHED = "launched"
    PLANNED = "planned"
    FAILED = "failed"
