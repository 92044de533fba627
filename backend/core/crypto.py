"""
Encryption utilities for stored credentials (server and VM passwords).

Uses Fernet symmetric encryption. Values are encrypted at rest by the
database backend and decrypted only when a record is read back.
"""

import logging
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken

log = logging.getLogger("inventory.crypto")


def get_fernet(key: Optional[str]) -> Optional[Fernet]:
    """Get a Fernet instance for the configured key, or None when unset."""
    if not key:
        return None
    try:
        return Fernet(key.encode())
    except (ValueError, TypeError) as exc:
        log.error("Encryption key is set but invalid, cannot initialize Fernet")
        raise RuntimeError("Invalid encryption key. Expected a url-safe base64 32-byte Fernet key.") from exc


def generate_key() -> str:
    """Generate a new encryption key. Run once and save to .env."""
    return Fernet.generate_key().decode()


def encrypt(plaintext: Optional[str], fernet: Optional[Fernet]) -> Optional[str]:
    """Encrypt a string. Without a Fernet instance the value is stored as-is."""
    if not plaintext or fernet is None:
        return plaintext
    return fernet.encrypt(plaintext.encode()).decode()


def decrypt(ciphertext: Optional[str], fernet: Optional[Fernet]) -> Optional[str]:
    """
    Decrypt a string. Returns plaintext.
    Returns original string if decryption fails (might be unencrypted).
    """
    if not ciphertext or fernet is None:
        return ciphertext

    try:
        return fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        # Might be an old unencrypted value, return as-is
        return ciphertext


def is_encrypted(value: Optional[str]) -> bool:
    """Check if a value appears to be Fernet-encrypted."""
    if not value:
        return False
    # Fernet tokens are base64 and start with 'gAAAAA'
    return value.startswith('gAAAAA') and len(value) > 50

