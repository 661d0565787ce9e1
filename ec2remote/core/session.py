"""Sequential per-instance connection pipeline."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError

from ec2remote.constants import OutcomeStatus
from ec2remote.core.dispatcher import Dispatcher
from ec2remote.core.keys import find_key
from ec2remote.core.models import ConnectionOutcome, ConnectionRequest, KeyMaterial
from ec2remote.core.policy import build_plan
from ec2remote.providers.aws.resolver import InstanceResolver
from ec2remote.providers.exceptions import RemoteError

logger = logging.getLogger(__name__)

KeyFinder = Callable[[Path, str], KeyMaterial]


class ConnectionSession:
    """Run Resolve, BuildPlan, FindKey and Dispatch for each request.

    A failure ends processing for that instance only; the next request is
    always attempted.

    Parameters
    ----------
    resolver : InstanceResolver
        Instance metadata resolver
    dispatcher : Dispatcher | None
        Client dispatcher; required unless every call is a dry run
    key_finder : KeyFinder | None
        Key discovery function (default: find_key)
    """

    def __init__(
        self,
        resolver: InstanceResolver,
        dispatcher: Dispatcher | None = None,
        key_finder: KeyFinder | None = None,
    ) -> None:
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.key_finder = key_finder or find_key

    def process(self, request: ConnectionRequest, launch: bool = True) -> ConnectionOutcome:
        """Process one request.

        Parameters
        ----------
        request : ConnectionRequest
            Instance and overrides
        launch : bool
            Dispatch the client; False stops after key discovery

        Returns
        -------
        ConnectionOutcome
            Launched, planned or failed outcome; never raises for
            per-instance errors
        """
        instance_id = request.instance_id
        extra = {"instance_id": instance_id}
        plan = None
        key = None

        if launch and self.dispatcher is None:
            raise RuntimeError("ConnectionSession has no dispatcher configured")

        try:
            descriptor = self.resolver.resolve(instance_id)
            plan = build_plan(descriptor, request)
            family = descriptor.os_family or descriptor.platform
            logger.info(
                "Resolved %s%s: %s, %s via %s on port %s",
                descriptor.address,
                f" ({descriptor.name})" if descriptor.name else "",
                family.value,
                plan.username,
                plan.protocol.value,
                plan.port,
                extra=extra,
            )

            key = self.key_finder(request.key_directory, plan.key_name)
            logger.debug("Using key file %s", key.path, extra=extra)

            if not launch:
                return ConnectionOutcome(
                    instance_id=instance_id,
                    status=OutcomeStatus.PLANNED,
                    plan=plan,
                    key=key,
                )

            result = self.dispatcher.dispatch(plan, key, instance_id)
        except (RemoteError, ClientError, BotoCoreError) as e:
            cause = e.__cause__
            if cause is not None:
                logger.error("%s (cause: %r)", e, cause, extra=extra)
            else:
                logger.error("%s", e, extra=extra)
            return ConnectionOutcome(
                instance_id=instance_id,
                status=OutcomeStatus.FAILED,
                plan=plan,
                key=key,
                error=e,
            )
        except Exception as e:
            logger.error("Unexpected error: %s", e, extra=extra, exc_info=True)
            return ConnectionOutcome(
                instance_id=instance_id,
                status=OutcomeStatus.FAILED,
                plan=plan,
                key=key,
                error=e,
            )

        return ConnectionOutcome(
            instance_id=instance_id,
            status=OutcomeStatus.LAUNCHED,
            plan=plan,
            key=key,
            launch=result,
        )

    def connect_all(
        self, requests: Iterable[ConnectionRequest], launch: bool = True
    ) -> list[ConnectionOutcome]:
        """Process requests in order.

        Parameters
        ----------
        requests : Iterable[ConnectionRequest]
            Requests to process
        launch : bool
            Dispatch clients; False produces plans only

        Returns
        -------
        list[ConnectionOutcome]
            One outcome per request, in input order
        """
        outcomes = []

        for request in requests:
            action = "Connecting to" if launch else "Planning connection to"
            logger.info(
                "%s %s", action, request.instance_id, extra={"instance_id": request.instance_id}
            )
            outcomes.append(self.process(request, launch=launch))

        failed = [outcome.instance_id for outcome in outcomes if not outcome.succeeded]
        if failed:
            logger.warning(
                "%d of %d instance(s) failed: %s",
                len(failed),
                len(outcomes),
                ", ".join(failed),
            )

        return outcomes
