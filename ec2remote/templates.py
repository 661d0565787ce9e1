"""Configuration file template written by ``ec2remote init``."""

CONFIG_TEMPLATE = """\
# ec2remote configuration
#
# Values under `defaults` apply to every environment. Each entry under
# `environments` is selected with --env=<name>; its name is also used as the
# AWS profile and as the key sub-directory unless overridden.

vars:
  pem_root: ~/Documents/pem

defaults:
  # region: us-east-1
  key_root: ${pem_root}
  ssh_client: ssh
  # rdp_client: xfreerdp
  # Open each SSH session in its own terminal window:
  # terminal: ["x-terminal-emulator", "-e"]
  terminal: []

environments:
  dev:
    profile: dev
    # region: eu-west-1
    # key_name: devkey
  # prod:
  #   profile: production
  #   key_path: ${pem_root}/production
"""
