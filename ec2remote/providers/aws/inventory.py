"""Read-only EC2 metadata queries used to resolve connections."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from ec2remote.providers.aws.errors import handle_aws_errors
from ec2remote.providers.aws.password import decrypt_password_data
from ec2remote.providers.aws.utils import extract_instance_from_response, get_tag_value
from ec2remote.providers.exceptions import (
    CredentialDecryptionFailed,
    ExternalQueryFailed,
    ProviderCredentialsError,
)

logger = logging.getLogger(__name__)


class AWSInventory:
    """Query instance, image and password data from EC2.

    Every call is attempted exactly once; failures surface as
    ``ExternalQueryFailed``.

    Parameters
    ----------
    ec2_client : Any
        Boto3 EC2 client
    """

    def __init__(self, ec2_client: Any) -> None:
        self.ec2_client = ec2_client

    def get_instance(self, instance_id: str) -> dict[str, Any]:
        """Describe one instance.

        Parameters
        ----------
        instance_id : str
            EC2 instance ID

        Returns
        -------
        dict[str, Any]
            Mapping with ``address``, ``platform``, ``image_id``,
            ``key_pair_name``, ``name`` and ``state`` keys

        Raises
        ------
        ExternalQueryFailed
            If the instance does not exist or the API call fails
        """
        with handle_aws_errors(f"DescribeInstances {instance_id}"):
            response = self.ec2_client.describe_instances(InstanceIds=[instance_id])

        try:
            instance = extract_instance_from_response(response)
        except ValueError as e:
            raise ExternalQueryFailed(f"Instance {instance_id} not found: {e}") from e

        return {
            "address": instance.get("PrivateIpAddress") or "",
            "platform": instance.get("Platform") or "",
            "image_id": instance.get("ImageId"),
            "key_pair_name": instance.get("KeyName"),
            "name": get_tag_value(instance, "Name"),
            "state": instance.get("State", {}).get("Name"),
        }

    def get_image(self, image_id: str) -> dict[str, Any] | None:
        """Describe one image.

        Parameters
        ----------
        image_id : str
            AMI ID

        Returns
        -------
        dict[str, Any] | None
            Mapping with a ``name`` key, or None if the image is no longer
            visible (deregistered or not shared with the account)

        Raises
        ------
        ExternalQueryFailed
            If the API call fails for any other reason
        """
        try:
            with handle_aws_errors(f"DescribeImages {image_id}"):
                response = self.ec2_client.describe_images(ImageIds=[image_id])
        except ExternalQueryFailed as e:
            if e.error_code in ("InvalidAMIID.NotFound", "InvalidAMIID.Unavailable"):
                return None
            raise

        images = response.get("Images", [])
        if not images:
            return None

        return {"name": images[0].get("Name") or ""}

    def get_decrypted_password(self, instance_id: str, key_file: Path) -> str:
        """Retrieve and decrypt the initial administrator password.

        Parameters
        ----------
        instance_id : str
            EC2 instance ID
        key_file : Path
            Private key of the instance key pair

        Returns
        -------
        str
            Plain-text password

        Raises
        ------
        ProviderCredentialsError
            If no AWS credentials are available
        CredentialDecryptionFailed
            If the password cannot be retrieved or decrypted
        """
        try:
            with handle_aws_errors(f"GetPasswordData {instance_id}"):
                response = self.ec2_client.get_password_data(InstanceId=instance_id)
        except ProviderCredentialsError:
            raise
        except ExternalQueryFailed as e:
            raise CredentialDecryptionFailed(str(e)) from e

        logger.debug("Decrypting password data for %s with %s", instance_id, key_file)
        return decrypt_password_data(response.get("PasswordData", ""), key_file)
