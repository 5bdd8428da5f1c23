"""Package encryption — Key derivation, settings and re-keying.

Security Note (Threat Model):
    A migration package is only as strong as its encryption secret; the
    PBKDF2 work factor slows down offline guessing but cannot compensate
    for a weak secret. Use ``generate_secret()`` where possible. Decrypted
    secrets exist in process memory during export and import; this is an
    accepted limitation.
"""

from .crypto import (
    PackageCipher,
    SCHEMES,
    DEFAULT_SCHEME,
    encrypt_bytes,
    decrypt_bytes,
    generate_secret,
)
from .config import ExportSettings, ImportSettings, MigrationConfig
from .key_rotation import rotate_package_secret

__all__ = [
    "PackageCipher",
    "SCHEMES",
    "DEFAULT_SCHEME",
    "encrypt_bytes",
    "decrypt_bytes",
    "generate_secret",
    "ExportSettings",
    "ImportSettings",
    "MigrationConfig",
    "rotate_package_secret",
]
