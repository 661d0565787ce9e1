"""CLI entry point for ec2remote."""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Callable
from typing import Any

import fire

from ec2remote.constants import EXIT_CONFIG_ERROR, EXIT_ERROR
from ec2remote.logging import StreamFormatter, StreamRoutingFilter
from ec2remote.providers.aws.utils import get_aws_credentials_error_message
from ec2remote.providers.exceptions import ProviderCredentialsError, RemoteError

DEBUG_ENV_VAR = "EC2REMOTE_DEBUG"

UNAUTHORIZED_ERROR_CODE = "UnauthorizedOperation"
EXPIRED_ERROR_CODES = {"ExpiredToken", "RequestExpired", "ExpiredTokenException"}


def get_ec2remote_base_class() -> type:
    """Get EC2Remote base class on-demand to avoid circular imports.

    Returns
    -------
    type
        EC2Remote base class
    """
    from ec2remote.__main__ import EC2Remote

    return EC2Remote


class EC2RemoteCLI:
    """CLI wrapper that turns per-instance failures into a process exit code.

    This is defined as a factory that creates a subclass of EC2Remote
    at runtime to avoid circular import issues.

    Parameters
    ----------
    session_factory : Callable[..., Any] | None
        Optional factory for boto3 sessions
    spawner : Callable[..., int | None] | None
        Optional function starting client processes
    """

    _cached_class: type | None = None

    def __new__(
        cls,
        session_factory: Callable[..., Any] | None = None,
        spawner: Callable[..., int | None] | None = None,
    ) -> Any:
        """Create CLI instance with optional dependency injection.

        Parameters
        ----------
        session_factory : Callable[..., Any] | None
            Optional factory for boto3 sessions
        spawner : Callable[..., int | None] | None
            Optional function starting client processes

        Returns
        -------
        Any
            Instance of dynamically created EC2RemoteCLI subclass
        """
        if cls._cached_class is None:
            EC2Remote = get_ec2remote_base_class()
            from ec2remote.__main__ import count_failures

            class EC2RemoteCLIImpl(EC2Remote):
                """CLI wrapper implementation for EC2Remote."""

                def connect(
                    self,
                    *instance_ids: str,
                    env: str | None = None,
                    key_name: str | None = None,
                    key_path: str | None = None,
                    username: str | None = None,
                    region: str | None = None,
                    protocol: str | None = None,
                    port: int | None = None,
                    verbose: bool = False,
                ) -> None:
                    """Resolve each instance and open an RDP or SSH session to it.

                    Parameters
                    ----------
                    *instance_ids : str
                        One or more EC2 instance IDs
                    env : str | None
                        Environment name (AWS profile and key sub-directory)
                    key_name : str | None
                        Key name hint; defaults to the instance key pair name
                    key_path : str | None
                        Directory holding private keys
                    username : str | None
                        Login user for Windows instances
                    region : str | None
                        AWS region override
                    protocol : str | None
                        RDP or SSH for Windows instances
                    port : int | None
                        Port for Windows instances
                    verbose : bool
                        Enable debug logging
                    """
                    results = super().connect(
                        *instance_ids,
                        env=env,
                        key_name=key_name,
                        key_path=key_path,
                        username=username,
                        region=region,
                        protocol=protocol,
                        port=port,
                        verbose=verbose,
                    )

                    if count_failures(results):
                        print_error_hints(results)
                        sys.exit(EXIT_ERROR)

                def plan(
                    self,
                    *instance_ids: str,
                    env: str | None = None,
                    key_name: str | None = None,
                    key_path: str | None = None,
                    username: str | None = None,
                    region: str | None = None,
                    protocol: str | None = None,
                    port: int | None = None,
                    json_output: bool = False,
                    verbose: bool = False,
                ) -> None:
                    """Show how each instance would be reached without launching anything.

                    Takes the arguments of ``connect``; ``json_output`` prints
                    the plans as a JSON array.
                    """
                    results = super().plan(
                        *instance_ids,
                        env=env,
                        key_name=key_name,
                        key_path=key_path,
                        username=username,
                        region=region,
                        protocol=protocol,
                        port=port,
                        verbose=verbose,
                    )

                    if json_output:
                        print(json.dumps(results, indent=2))
                    else:
                        for result in results:
                            print(format_plan_line(result))

                    if count_failures(results):
                        print_error_hints(results)
                        sys.exit(EXIT_ERROR)

            cls._cached_class = EC2RemoteCLIImpl

        return cls._cached_class(session_factory=session_factory, spawner=spawner)


def format_plan_line(result: dict[str, Any]) -> str:
    """Render one ``plan`` outcome as a single line."""
    if result["status"] == "failed":
        return f"{result['instance_id']}: FAILED {result.get('error_type')}: {result.get('error')}"

    return (
        f"{result['instance_id']}: {result['protocol']} "
        f"{result['username']}@{result['address']}:{result['port']} "
        f"key={result.get('key_file')}"
    )


def print_error_hints(results: list[dict[str, Any]]) -> None:
    """Print remediation advice for AWS failures found in a batch.

    Each hint is printed once, however many instances hit the same problem.

    Parameters
    ----------
    results : list[dict[str, Any]]
        Outcomes returned by ``connect`` or ``plan``
    """
    failed = [result for result in results if result["status"] == "failed"]
    error_types = {result.get("error_type") for result in failed}
    error_codes = {result.get("error_code") for result in failed}

    if ProviderCredentialsError.__name__ in error_types:
        print(get_aws_credentials_error_message(), file=sys.stderr)

    if UNAUTHORIZED_ERROR_CODE in error_codes:
        print("Insufficient IAM permissions\n", file=sys.stderr)
        print("Your AWS credentials need:", file=sys.stderr)
        print("  - ec2:DescribeInstances", file=sys.stderr)
        print("  - ec2:DescribeImages", file=sys.stderr)
        print("  - ec2:GetPasswordData (Windows instances)", file=sys.stderr)

    if error_codes & EXPIRED_ERROR_CODES:
        print("AWS credentials have expired\n", file=sys.stderr)
        print("Fix it:", file=sys.stderr)
        print("  aws sso login --profile <environment>", file=sys.stderr)


def handle_remote_error(error: RemoteError, debug_mode: bool) -> None:
    """Handle an error raised before any instance was processed.

    Parameters
    ----------
    error : RemoteError
        The error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    RemoteError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(f"Error: {error}", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def handle_value_error(error: ValueError, debug_mode: bool) -> None:
    """Handle invalid arguments or configuration.

    Parameters
    ----------
    error : ValueError
        The value error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ValueError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(f"Configuration error: {error}", file=sys.stderr)
    sys.exit(EXIT_CONFIG_ERROR)


def handle_runtime_error(error: RuntimeError, debug_mode: bool) -> None:
    """Handle unexpected runtime error.

    Parameters
    ----------
    error : RuntimeError
        The runtime error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    RuntimeError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(f"Unexpected error: {error}", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def configure_logging() -> None:
    """Send informational lines to stdout and warnings and errors to stderr."""
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(StreamFormatter("%(message)s"))
    stdout_handler.addFilter(StreamRoutingFilter("stdout"))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(StreamFormatter("%(levelname)s: %(message)s"))
    stderr_handler.addFilter(StreamRoutingFilter("stderr"))

    logging.basicConfig(
        level=logging.INFO,
        handlers=[stdout_handler, stderr_handler],
    )


def main() -> None:
    """Entry point for Fire CLI with graceful error handling.

    Fire maps the public methods of EC2RemoteCLI (``connect``, ``plan``,
    ``keys``, ``init``) to sub-commands. Per-instance failures are reported
    by the batch itself; errors caught here abort the whole invocation.
    """
    configure_logging()

    debug_mode = os.environ.get(DEBUG_ENV_VAR) == "1"

    try:
        fire.Fire(EC2RemoteCLI())
    except RemoteError as e:
        handle_remote_error(e, debug_mode)
    except ValueError as e:
        handle_value_error(e, debug_mode)
    except RuntimeError as e:
        handle_runtime_error(e, debug_mode)
