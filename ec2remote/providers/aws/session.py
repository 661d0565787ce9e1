"""AWS profile and region bootstrap."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ProfileNotFound

from ec2remote.providers.exceptions import ConnectivityBootstrapFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectivityContext:
    """Process-wide AWS session shared read-only by every instance in a batch.

    Attributes
    ----------
    session : Any
        boto3 session used to create clients
    region : str
        Effective AWS region
    profile : str | None
        Profile actually in use, None for the default credential chain
    bootstrap_error : ConnectivityBootstrapFailed | None
        Error raised while selecting the requested profile, if any
    """

    session: Any
    region: str
    profile: str | None = None
    bootstrap_error: ConnectivityBootstrapFailed | None = None

    def client(self, service_name: str) -> Any:
        """Create a boto3 client bound to the context region."""
        return self.session.client(service_name, region_name=self.region)


def bootstrap_connectivity(
    region: str,
    profile: str | None = None,
    session_factory: Callable[..., Any] | None = None,
) -> ConnectivityContext:
    """Establish the AWS session once before processing a batch.

    A profile that cannot be loaded is reported and the default credential
    chain is used instead, so resolution is still attempted for every
    instance.

    Parameters
    ----------
    region : str
        AWS region
    profile : str | None
        Named profile from the shared AWS config, or None
    session_factory : Callable[..., Any] | None
        Factory for boto3 sessions (default: boto3.Session)

    Returns
    -------
    ConnectivityContext
        Context threaded into every subsequent query

    Raises
    ------
    ConnectivityBootstrapFailed
        If the default credential chain cannot be initialized either
    """
    factory = session_factory or boto3.Session

    if profile:
        try:
            session = factory(profile_name=profile, region_name=region)
            logger.debug("Using AWS profile %s in %s", profile, region)
            return ConnectivityContext(session=session, region=region, profile=profile)
        except (ProfileNotFound, BotoCoreError) as e:
            error = ConnectivityBootstrapFailed(
                f"Could not initialize AWS profile '{profile}': {e}"
            )
            error.__cause__ = e
            logger.error("%s. Falling back to default credentials.", error)
            return ConnectivityContext(
                session=_default_session(factory, region),
                region=region,
                bootstrap_error=error,
            )

    return ConnectivityContext(session=_default_session(factory, region), region=region)


def _default_session(factory: Callable[..., Any], region: str) -> Any:
    try:
        return factory(region_name=region)
    except (ProfileNotFound, BotoCoreError) as e:
        raise ConnectivityBootstrapFailed(
            f"Could not initialize the default AWS credentials: {e}"
        ) from e
