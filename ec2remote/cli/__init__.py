"""CLI argument parsing and handling."""

from __future__ import annotations

from ec2remote.cli.parsing import (
    apply_cli_overrides,
    parse_instance_ids,
    parse_port_parameter,
    parse_protocol,
)

__all__ = [
    "apply_cli_overrides",
    "parse_instance_ids",
    "parse_port_parameter",
    "parse_protocol",
]
