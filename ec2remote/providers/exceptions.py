"""Exceptions raised while resolving and dispatching remote connections."""

from __future__ import annotations


class RemoteError(Exception):
    """Base class for every per-instance connection failure."""


class ConnectivityBootstrapFailed(RemoteError):
    """Raised when the AWS profile or region cannot be established."""


class ExternalQueryFailed(RemoteError):
    """Raised when an AWS metadata query fails.

    Parameters
    ----------
    message : str
        Human readable description of the failure
    error_code : str | None
        AWS error code (e.g. ``InvalidInstanceID.NotFound``) when available
    """

    def __init__(self, message: str, error_code: str | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code


class ProviderCredentialsError(ExternalQueryFailed):
    """Raised when no usable AWS credentials are available."""


class MissingNetworkAddress(RemoteError):
    """Raised when an instance has no private network address."""


class KeyNotFound(RemoteError):
    """Raised when no private-key file matches the requested key name."""


class AmbiguousKeyMatch(RemoteError):
    """Raised when several private-key files match the requested key name.

    Parameters
    ----------
    key_name : str
        Key name hint used for matching
    candidates : list[str]
        Matching file paths, sorted
    """

    def __init__(self, key_name: str, candidates: list[str]) -> None:
        super().__init__(
            f"Key name '{key_name}' matches {len(candidates)} files: "
            f"{', '.join(candidates)}. Pass --key_name or --key_path to pick one."
        )
        self.key_name = key_name
        self.candidates = candidates


class CredentialDecryptionFailed(RemoteError):
    """Raised when the initial Windows password cannot be decrypted."""


class LaunchFailed(RemoteError):
    """Raised when the remote-session client process cannot be started."""


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
