# encryption.py
# Description: Encryption of the API key settings field before it is synced
#
# The key is derived from the user's uid with PBKDF2, so the stored value can
# only be decrypted for the same account. A SHA-256 digest of the plaintext is
# synced next to the ciphertext so a changed key can be detected without
# decrypting.
#
# Imports
import base64
import functools
import hashlib
import os
#
# 3rd-Party Imports
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from loguru import logger
#
# Local Imports
from quizdeck.Constants import API_KEY_KDF_ITERATIONS, API_KEY_SALT
#
########################################################################################################################
#
# Functions:

IV_LENGTH = 12


class EncryptionError(Exception):
    pass


@functools.lru_cache(maxsize=8)
def derive_key(user_id: str) -> bytes:
    """Derives a 256-bit AES key from the user id (PBKDF2-HMAC-SHA256, static salt)."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=API_KEY_SALT,
        iterations=API_KEY_KDF_ITERATIONS,
    )
    return kdf.derive(user_id.encode("utf-8"))


def encrypt_api_key(api_key: str, user_id: str) -> str:
    """
    Encrypts `api_key` with AES-GCM.

    Output is base64 of [12-byte IV][ciphertext+tag]. An empty key encrypts to "".
    """
    if not api_key:
        return ""
    try:
        iv = os.urandom(IV_LENGTH)
        ciphertext = AESGCM(derive_key(user_id)).encrypt(iv, api_key.encode("utf-8"), None)
    except Exception as e:
        logger.error(f"Encryption error: {e}")
        raise EncryptionError("Failed to encrypt API key") from e
    return base64.b64encode(iv + ciphertext).decode("ascii")


def decrypt_api_key(encrypted: str, user_id: str) -> str:
    if not encrypted:
        return ""
    try:
        combined = base64.b64decode(encrypted.encode("ascii"), validate=True)
        iv, ciphertext = combined[:IV_LENGTH], combined[IV_LENGTH:]
        return AESGCM(derive_key(user_id)).decrypt(iv, ciphertext, None).decode("utf-8")
    except (InvalidTag, ValueError, UnicodeError) as e:
        logger.error(f"Decryption error: {e!r}")
        raise EncryptionError("Failed to decrypt API key") from e


def hash_api_key(api_key: str) -> str:
    """One-way SHA-256 hex digest; "" for an empty key."""
    if not api_key:
        return ""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


class ApiKeyCipher:
    """The encryption collaborator handed to the settings sync code."""

    def encrypt(self, plaintext: str, user_id: str) -> str:
        return encrypt_api_key(plaintext, user_id)

    def decrypt(self, ciphertext: str, user_id: str) -> str:
        return decrypt_api_key(ciphertext, user_id)

    def hash(self, plaintext: str) -> str:
        return hash_api_key(plaintext)

#
# End of encryption.py
########################################################################################################################
