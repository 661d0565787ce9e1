"""Instance descriptor resolution from EC2 metadata."""

from __future__ import annotations

import fnmatch
import logging
from typing import Any

from ec2remote.constants import (
    UBUNTU_IMAGE_PATTERN,
    WINDOWS_PLATFORM_MARKER,
    OSFamily,
    PlatformFamily,
)
from ec2remote.core.models import InstanceDescriptor
from ec2remote.providers.exceptions import MissingNetworkAddress

logger = logging.getLogger(__name__)


def classify_platform(platform_tag: str | None) -> PlatformFamily:
    """Map the EC2 ``Platform`` attribute to a platform family."""
    if (platform_tag or "").strip().lower() == WINDOWS_PLATFORM_MARKER:
        return PlatformFamily.WINDOWS
    return PlatformFamily.NON_WINDOWS


def classify_image_name(image_name: str | None) -> OSFamily:
    """Infer the OS family of a non-windows image from its name.

    Parameters
    ----------
    image_name : str | None
        AMI name, e.g. ``ubuntu/images/hvm-ssd/ubuntu-jammy-22.04-amd64-server``

    Returns
    -------
    OSFamily
        UBUNTU when the name matches ``ubuntu*`` ignoring case,
        GENERIC_LINUX otherwise
    """
    if image_name and fnmatch.fnmatch(image_name.lower(), UBUNTU_IMAGE_PATTERN):
        return OSFamily.UBUNTU
    return OSFamily.GENERIC_LINUX


class InstanceResolver:
    """Resolve the connection-relevant facts of an instance.

    Parameters
    ----------
    inventory : Any
        Object exposing ``get_instance`` and ``get_image``
    """

    def __init__(self, inventory: Any) -> None:
        self.inventory = inventory

    def resolve(self, instance_id: str) -> InstanceDescriptor:
        """Fetch fresh metadata for an instance.

        Parameters
        ----------
        instance_id : str
            EC2 instance ID

        Returns
        -------
        InstanceDescriptor
            Address, platform family and, for non-windows instances, OS family

        Raises
        ------
        MissingNetworkAddress
            If the instance has no private IP address (e.g. terminated)
        ExternalQueryFailed
            If a metadata query fails
        """
        instance = self.inventory.get_instance(instance_id)

        address = (instance.get("address") or "").strip()
        if not address:
            state = instance.get("state")
            state_msg = f" (state: {state})" if state else ""
            raise MissingNetworkAddress(
                f"Instance {instance_id} has no private IP address{state_msg}"
            )

        platform = classify_platform(instance.get("platform"))

        if platform == PlatformFamily.WINDOWS:
            return InstanceDescriptor(
                instance_id=instance_id,
                address=address,
                platform=platform,
                image_id=instance.get("image_id"),
                key_pair_name=instance.get("key_pair_name"),
                name=instance.get("name"),
            )

        image_id = instance.get("image_id")
        image_name = None
        if image_id:
            image = self.inventory.get_image(image_id)
            if image is None:
                logger.warning(
                    "Image %s of %s is no longer available; assuming generic Linux",
                    image_id,
                    instance_id,
                )
            else:
                image_name = image.get("name")

        os_family = classify_image_name(image_name)
        logger.debug(
            "Instance %s image %s (%s) classified as %s",
            instance_id,
            image_id,
            image_name,
            os_family.value,
        )

        return InstanceDescriptor(
            instance_id=instance_id,
            address=address,
            platform=platform,
            os_family=os_family,
            image_id=image_id,
            image_name=image_name,
            key_pair_name=instance.get("key_pair_name"),
            name=instance.get("name"),
        )
