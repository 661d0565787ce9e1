"""Decryption of the initial Windows administrator password."""

from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path

import paramiko
from cryptography.hazmat.primitives.asymmetric import padding

from ec2remote.providers.exceptions import CredentialDecryptionFailed

logger = logging.getLogger(__name__)


def load_rsa_key(key_file: Path) -> paramiko.RSAKey:
    """Load an unencrypted RSA private key.

    Parameters
    ----------
    key_file : Path
        PEM encoded private key

    Returns
    -------
    paramiko.RSAKey
        Loaded key

    Raises
    ------
    CredentialDecryptionFailed
        If the file is unreadable, passphrase protected or not an RSA key
    """
    try:
        return paramiko.RSAKey.from_private_key_file(str(key_file))
    except paramiko.PasswordRequiredException as e:
        raise CredentialDecryptionFailed(
            f"Key file {key_file} is passphrase protected"
        ) from e
    except (paramiko.SSHException, OSError) as e:
        raise CredentialDecryptionFailed(
            f"Cannot load RSA private key from {key_file}: {e}"
        ) from e


def decrypt_password_data(password_data: str, key_file: Path) -> str:
    """Decrypt the ``PasswordData`` returned by EC2 ``GetPasswordData``.

    EC2 encrypts the generated password with the public half of the launch
    key pair using PKCS#1 v1.5 padding and returns it base64 encoded.

    Parameters
    ----------
    password_data : str
        Base64 encoded ciphertext
    key_file : Path
        Private key of the instance key pair

    Returns
    -------
    str
        Plain-text password

    Raises
    ------
    CredentialDecryptionFailed
        If the password is not available yet or cannot be decrypted
    """
    password_data = (password_data or "").strip()
    if not password_data:
        raise CredentialDecryptionFailed(
            "Password data is not available yet. Windows instances need a few "
            "minutes after launch before the password can be retrieved."
        )

    rsa_key = load_rsa_key(key_file)

    try:
        ciphertext = base64.b64decode(password_data)
        plaintext = rsa_key.key.decrypt(ciphertext, padding.PKCS1v15())
        return plaintext.decode("utf-8")
    except (binascii.Error, ValueError) as e:
        logger.debug("Password decryption with %s failed: %s", key_file, e)
        raise CredentialDecryptionFailed(
            f"Could not decrypt password with {key_file.name}; "
            "is it the key pair the instance was launched with?"
        ) from e
