"""Logging helpers for console output."""

from ec2remote.logging.filters import StreamRoutingFilter
from ec2remote.logging.formatters import StreamFormatter

__all__ = ["StreamFormatter", "StreamRoutingFilter"]
