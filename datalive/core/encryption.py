"""
Encryption utilities for stored API credentials.

Uses Fernet symmetric encryption. The key is derived from ENCRYPTION_KEY
(or JWT_SECRET when no dedicated key is set) using HKDF.
"""

import base64
from functools import lru_cache

import structlog
from cryptography.fernet import Fernet
from cryptography.hazmat.primitives.hashes import SHA256
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from datalive.core.config import settings

logger = structlog.get_logger()

_DEVELOPMENT_KEY = "datalive-development-fallback-key-do-not-use-in-production"


@lru_cache(maxsize=1)
def _get_fernet() -> Fernet:
    """Get Fernet instance with encryption key.

    In production/staging, refuses to start without a configured key.
    """
    key_source = settings.encryption_key or settings.jwt_secret

    if not key_source:
        if settings.environment in ("production", "staging"):
            logger.critical(
                "encryption_no_key",
                msg="ENCRYPTION_KEY or JWT_SECRET must be set in production/staging.",
            )
            raise RuntimeError(
                "ENCRYPTION_KEY or JWT_SECRET must be set in production/staging environments."
            )
        logger.warning(
            "encryption_no_key",
            msg="No ENCRYPTION_KEY set. Using development fallback key.",
        )
        key_source = _DEVELOPMENT_KEY

    hkdf = HKDF(
        algorithm=SHA256(),
        length=32,
        salt=None,
        info=b"datalive-credential-encryption",
    )
    key_bytes = hkdf.derive(key_source.encode())
    return Fernet(base64.urlsafe_b64encode(key_bytes))


def encrypt_secret(plaintext: str) -> str:
    """Encrypt a secret. Empty input stays empty."""
    if not plaintext:
        return ""
    return _get_fernet().encrypt(plaintext.encode()).decode()


def decrypt_secret(ciphertext: str) -> str:
    """Decrypt a secret.

    Raises:
        cryptography.fernet.InvalidToken: If decryption fails
    """
    if not ciphertext:
        return ""
    return _get_fernet().decrypt(ciphertext.encode()).decode()
