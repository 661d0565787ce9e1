"""Test doubles for ec2remote collaborators."""
