"""Errors raised while building or importing a migration package."""


class MigrationError(Exception):
    """Base class for migration package errors."""


class PackageIOError(MigrationError, OSError):
    """A certificate file referenced by a managed certificate could not be read.

    Fatal for the export: no partial package is produced.
    """


class CryptoError(MigrationError):
    """Encryption or decryption of a payload failed.

    Raised for wrong secrets, tampered or truncated ciphertext and
    unknown cipher schemes.
    """


class FormatError(MigrationError):
    """The package is malformed or has an unsupported format version."""


class CertificateValidationError(MigrationError):
    """A decrypted certificate file failed to parse or validate."""
