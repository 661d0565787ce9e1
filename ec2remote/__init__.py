"""ec2remote - open RDP or SSH sessions to EC2 instances by ID."""

__version__ = "0.1.0"
