"""AWS EC2 provider."""

from ec2remote.providers.aws.inventory import AWSInventory
from ec2remote.providers.aws.resolver import InstanceResolver
from ec2remote.providers.aws.session import ConnectivityContext, bootstrap_connectivity

__all__ = [
    "AWSInventory",
    "InstanceResolver",
    "ConnectivityContext",
    "bootstrap_connectivity",
]
