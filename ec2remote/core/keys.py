"""Private-key file discovery."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ec2remote.constants import PRIVATE_KEY_EXTENSIONS
from ec2remote.core.models import KeyMaterial
from ec2remote.providers.exceptions import AmbiguousKeyMatch, KeyNotFound

logger = logging.getLogger(__name__)


def list_keys(key_directory: Path) -> list[Path]:
    """List private-key files directly inside a directory.

    Parameters
    ----------
    key_directory : Path
        Directory to scan (not recursive)

    Returns
    -------
    list[Path]
        Key files sorted by name; empty if the directory does not exist

    Raises
    ------
    KeyNotFound
        If the directory cannot be read
    """
    if not key_directory.is_dir():
        return []

    try:
        return sorted(
            path
            for path in key_directory.iterdir()
            if path.is_file() and path.suffix.lower() in PRIVATE_KEY_EXTENSIONS
        )
    except OSError as e:
        raise KeyNotFound(f"Cannot read key directory {key_directory}: {e}") from e


def find_key(key_directory: Path, key_name_hint: str) -> KeyMaterial:
    """Locate the private key whose file name contains the key name.

    Matching ignores case. When several files match, a file whose stem equals
    the key name wins; any other tie is reported rather than guessed.

    Parameters
    ----------
    key_directory : Path
        Directory holding private keys
    key_name_hint : str
        Key pair name, or a fragment of the file name

    Returns
    -------
    KeyMaterial
        The selected key file

    Raises
    ------
    KeyNotFound
        If the directory is missing or unreadable, or no readable file matches
    AmbiguousKeyMatch
        If several files match and none is an exact name match
    """
    if not key_name_hint:
        raise KeyNotFound("No key name to search for")

    if not key_directory.is_dir():
        raise KeyNotFound(f"Key directory {key_directory} does not exist")

    hint = key_name_hint.lower()
    matches = [path for path in list_keys(key_directory) if hint in path.name.lower()]
    logger.debug(
        "Key name %r matched %d file(s) in %s", key_name_hint, len(matches), key_directory
    )

    if not matches:
        raise KeyNotFound(
            f"No private key matching '{key_name_hint}' in {key_directory}"
        )

    if len(matches) > 1:
        exact = [path for path in matches if path.stem.lower() == hint]
        if len(exact) != 1:
            raise AmbiguousKeyMatch(key_name_hint, [str(path) for path in matches])
        matches = exact

    selected = matches[0]
    if not selected.exists():
        raise KeyNotFound(f"Key file {selected} disappeared before use")

    if not os.access(selected, os.R_OK):
        raise KeyNotFound(f"Key file {selected} is not readable")

    return KeyMaterial(path=selected, key_name=key_name_hint)
