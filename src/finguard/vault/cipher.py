"""Credential vault — AES-256-GCM with per-principal derived keys.

Ciphertext format::

    v<key_version>.<urlsafe-b64(nonce || ciphertext_with_tag)>

The 32-byte key is HKDF-SHA256(master_secret, salt, info=principal_id) and the
principal id is also bound as associated data, so a value written for one
principal never decrypts for another.
"""

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from finguard.common.config import FinguardSettings

logger = logging.getLogger(__name__)

_NONCE_SIZE = 12
_KEY_SALT = b"finguard-credential-vault"


class CredentialVault:
    def __init__(self, settings: FinguardSettings):
        self.settings = settings

    def _derive_key(self, version: int, principal_id: str) -> bytes | None:
        secret = self.settings.vault_keyring.get(version)
        if secret is None:
            return None
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=_KEY_SALT,
            info=principal_id.encode(),
        )
        return hkdf.derive(secret.encode())

    def encrypt(self, plaintext: str | None, principal_id: str) -> str | None:
        """Encrypt a secret for ``principal_id``. Empty input stores nothing."""
        if not plaintext:
            return None
        version = self.settings.current_vault_version
        key = self._derive_key(version, principal_id)
        nonce = os.urandom(_NONCE_SIZE)
        sealed = AESGCM(key).encrypt(nonce, plaintext.encode(), principal_id.encode())
        token = base64.urlsafe_b64encode(nonce + sealed).decode()
        return f"v{version}.{token}"

    def decrypt(self, ciphertext: str | None, principal_id: str) -> str | None:
        """Decrypt a stored secret, or None on any failure."""
        if not ciphertext:
            return None
        try:
            prefix, _, token = ciphertext.partition(".")
            if not prefix.startswith("v") or not token:
                raise ValueError("malformed ciphertext")
            key = self._derive_key(int(prefix[1:]), principal_id)
            if key is None:
                raise ValueError("unknown key version")
            blob = base64.urlsafe_b64decode(token.encode())
            if len(blob) <= _NONCE_SIZE:
                raise ValueError("truncated ciphertext")
            plaintext = AESGCM(key).decrypt(
                blob[:_NONCE_SIZE], blob[_NONCE_SIZE:], principal_id.encode()
            )
            return plaintext.decode()
        except (ValueError, InvalidTag, binascii.Error, UnicodeDecodeError) as exc:
            logger.debug(
                "Credential decryption failed: %s", type(exc).__name__,
                extra={"principal_id": principal_id},
            )
            return None


def mask_secret(value: str | None) -> str | None:
    """Display form of a secret: first and last four characters only."""
    if not value:
        return None
    if len(value) <= 8:
        return "****"
    return value[:4] + "****" + value[-4:]
