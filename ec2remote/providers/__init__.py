"""Cloud provider access.

Only AWS EC2 is supported; provider errors share the ``RemoteError`` base so
the batch loop can report them per instance.
"""

from __future__ import annotations

from ec2remote.providers.exceptions import (
    AmbiguousKeyMatch,
    ConnectivityBootstrapFailed,
    CredentialDecryptionFailed,
    ExternalQueryFailed,
    KeyNotFound,
    LaunchFailed,
    MissingNetworkAddress,
    ProviderCredentialsError,
    RemoteError,
)

__all__ = [
    "RemoteError",
    "ConnectivityBootstrapFailed",
    "ExternalQueryFailed",
    "ProviderCredentialsError",
    "MissingNetworkAddress",
    "KeyNotFound",
    "AmbiguousKeyMatch",
    "CredentialDecryptionFailed",
    "LaunchFailed",
]
