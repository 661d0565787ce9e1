"""CLI argument parsing and parameter conversion utilities."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from ec2remote.constants import MAX_VALID_PORT, MIN_VALID_PORT, Protocol


def parse_instance_ids(instance_ids: Iterable[Any]) -> list[str]:
    """Flatten positional instance identifiers.

    Fire passes each positional argument separately, but a single argument may
    also hold a comma-separated list or, when written as ``[a,b]``, a tuple.

    Parameters
    ----------
    instance_ids : Iterable[Any]
        Raw positional arguments

    Returns
    -------
    list[str]
        Instance IDs in the order given, duplicates removed

    Raises
    ------
    ValueError
        If no identifier was given
    """
    result: list[str] = []

    for value in instance_ids:
        if isinstance(value, (list, tuple)):
            items = [str(item) for item in value]
        else:
            items = str(value).split(",")

        for item in items:
            item = item.strip()
            if item and item not in result:
                result.append(item)

    if not result:
        raise ValueError("At least one instance ID is required")

    return result


def parse_protocol(protocol: str | Protocol) -> Protocol:
    """Parse protocol parameter.

    Parameters
    ----------
    protocol : str | Protocol
        ``RDP`` or ``SSH``, case-insensitive

    Returns
    -------
    Protocol
        Parsed protocol

    Raises
    ------
    ValueError
        If the value is not a supported protocol
    """
    if isinstance(protocol, Protocol):
        return protocol

    try:
        return Protocol(str(protocol).strip().upper())
    except ValueError:
        valid = ", ".join(p.value for p in Protocol)
        raise ValueError(f"Invalid protocol: '{protocol}'. Must be one of {valid}") from None


def parse_port_parameter(port: str | int) -> int:
    """Parse port parameter into an integer with validation.

    Parameters
    ----------
    port : str | int
        Port number

    Returns
    -------
    int
        Port number

    Raises
    ------
    ValueError
        If the value is not numeric or outside valid range (1-65535)
    """
    if isinstance(port, bool):
        raise ValueError(f"Invalid port value: '{port}' is not numeric")

    try:
        value = int(str(port).strip())
    except ValueError:
        raise ValueError(f"Invalid port value: '{port}' is not numeric") from None

    if value < MIN_VALID_PORT or value > MAX_VALID_PORT:
        raise ValueError(
            f"Invalid port value: {value}. Port must be between "
            f"{MIN_VALID_PORT} and {MAX_VALID_PORT}"
        )

    return value


def apply_cli_overrides(
    config: dict[str, Any],
    key_name: str | None,
    key_path: str | None,
    username: str | None,
    region: str | None,
    protocol: str | None,
    port: str | int | None,
) -> None:
    """Apply CLI option overrides to merged configuration.

    Parameters
    ----------
    config : dict[str, Any]
        Configuration dictionary to modify in-place
    key_name : str | None
        Key name hint
    key_path : str | None
        Directory holding private keys
    username : str | None
        Login user
    region : str | None
        AWS region
    protocol : str | None
        RDP or SSH
    port : str | int | None
        Remote port
    """
    if key_name is not None:
        config["key_name"] = str(key_name)

    if key_path is not None:
        config["key_path"] = str(key_path)

    if username is not None:
        config["username"] = str(username)

    if region is not None:
        config["region"] = str(region)

    if protocol is not None:
        config["protocol"] = parse_protocol(protocol)
    elif config.get("protocol") is not None:
        config["protocol"] = parse_protocol(config["protocol"])

    if port is not None:
        config["port"] = parse_port_parameter(port)


__all__ = [
    "parse_instance_ids",
    "parse_protocol",
    "parse_port_parameter",
    "apply_cli_overrides",
]
