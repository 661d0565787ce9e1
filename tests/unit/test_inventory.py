import base64
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError, NoCredentialsError
from cryptography.hazmat.primitives.asymmetric import padding
from moto import mock_aws

from ec2remote.constants import OSFamily, PlatformFamily
from ec2remote.providers.aws.inventory import AWSInventory
from ec2remote.providers.aws.resolver import InstanceResolver
from ec2remote.providers.exceptions import (
    CredentialDecryptionFailed,
    ExternalQueryFailed,
    ProviderCredentialsError,
)


@pytest.fixture
def ec2_client(aws_credentials):
    with mock_aws():
        yield boto3.client("ec2", region_name="us-east-1")


@pytest.fixture
def launch_instance(ec2_client):
    """Return a helper launching an instance from a freshly registered AMI."""

    def _launch(image_name: str, key_name: str = "devkey") -> str:
        ec2_client.create_key_pair(KeyName=key_name)
        image = ec2_client.register_image(
            Name=image_name,
            Description="Test AMI",
            Architecture="x86_64",
            RootDeviceName="/dev/sda1",
            VirtualizationType="hvm",
        )
        response = ec2_client.run_instances(
            ImageId=image["ImageId"],
            MinCount=1,
            MaxCount=1,
            InstanceType="t3.micro",
            KeyName=key_name,
        )
        return response["Instances"][0]["InstanceId"]

    return _launch


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, operation)


def test_get_instance_returns_connection_attributes(ec2_client, launch_instance) -> None:
    instance_id = launch_instance("ubuntu-20.04")

    instance = AWSInventory(ec2_client).get_instance(instance_id)

    assert instance["address"]
    assert instance["platform"] == ""
    assert instance["image_id"].startswith("ami-")
    assert instance["key_pair_name"] == "devkey"


def test_get_instance_unknown_id_raises(ec2_client) -> None:
    with pytest.raises(ExternalQueryFailed) as exc_info:
        AWSInventory(ec2_client).get_instance("i-1234567890abcdef0")

    assert exc_info.value.error_code == "InvalidInstanceID.NotFound"


def test_get_image_returns_name(ec2_client, launch_instance) -> None:
    instance_id = launch_instance("amzn2-ami-hvm-2.0")
    inventory = AWSInventory(ec2_client)

    image_id = inventory.get_instance(instance_id)["image_id"]

    assert inventory.get_image(image_id) == {"name": "amzn2-ami-hvm-2.0"}


def test_get_image_not_found_returns_none() -> None:
    client = MagicMock()
    client.describe_images.side_effect = client_error(
        "InvalidAMIID.NotFound", "DescribeImages"
    )

    assert AWSInventory(client).get_image("ami-12345678") is None


def test_get_image_other_error_raises() -> None:
    client = MagicMock()
    client.describe_images.side_effect = client_error(
        "UnauthorizedOperation", "DescribeImages"
    )

    with pytest.raises(ExternalQueryFailed) as exc_info:
        AWSInventory(client).get_image("ami-12345678")

    assert exc_info.value.error_code == "UnauthorizedOperation"


def test_get_instance_without_credentials_raises() -> None:
    client = MagicMock()
    client.describe_instances.side_effect = NoCredentialsError()

    with pytest.raises(ProviderCredentialsError):
        AWSInventory(client).get_instance("i-1")


def test_resolver_classifies_ubuntu_instance_end_to_end(ec2_client, launch_instance) -> None:
    instance_id = launch_instance("ubuntu-20.04")

    descriptor = InstanceResolver(AWSInventory(ec2_client)).resolve(instance_id)

    assert descriptor.platform == PlatformFamily.NON_WINDOWS
    assert descriptor.os_family == OSFamily.UBUNTU
    assert descriptor.key_pair_name == "devkey"


def test_get_decrypted_password(rsa_private_key, rsa_key_file) -> None:
    ciphertext = rsa_private_key.public_key().encrypt(b"S3cret!pw", padding.PKCS1v15())
    client = MagicMock()
    client.get_password_data.return_value = {
        "InstanceId": "i-111",
        "PasswordData": base64.b64encode(ciphertext).decode("ascii"),
    }

    password = AWSInventory(client).get_decrypted_password("i-111", rsa_key_file)

    assert password == "S3cret!pw"
    client.get_password_data.assert_called_once_with(InstanceId="i-111")


def test_get_decrypted_password_api_error_is_decryption_failure(rsa_key_file) -> None:
    client = MagicMock()
    client.get_password_data.side_effect = client_error(
        "InvalidInstanceID.NotFound", "GetPasswordData"
    )

    with pytest.raises(CredentialDecryptionFailed) as exc_info:
        AWSInventory(client).get_decrypted_password("i-111", rsa_key_file)

    assert isinstance(exc_info.value.__cause__, ExternalQueryFailed)


def test_get_decrypted_password_without_credentials_raises(rsa_key_file) -> None:
    client = MagicMock()
    client.get_password_data.side_effect = NoCredentialsError()

    with pytest.raises(ProviderCredentialsError):
        AWSInventory(client).get_decrypted_password("i-111", rsa_key_file)
