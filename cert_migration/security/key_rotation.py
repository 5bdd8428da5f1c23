"""
Package Re-keying — Re-encryption of a package under a new secret or scheme.

Every certificate file and credential secret is decrypted with the old
secret and encrypted again with the new one. The source package is left
untouched; a new package is returned. Items that cannot be decrypted are
carried over unchanged and counted as errors, so the importer reports them
as failed items later.

Security Note:
    Plaintext exists in memory only during re-encryption of each item.
    Never log plaintext or ciphertext values.
"""
import base64
import binascii
import logging
from typing import Optional

from ..exceptions import CryptoError
from ..models import CredentialRecord, EncryptedBlob, MigrationPackage
from ..serialization import PackageSource, loads_package
from .crypto import DEFAULT_SCHEME, PackageCipher

logger = logging.getLogger("cert_migration.rotation")


def _rekey_secret(secret: str, old: PackageCipher, new: PackageCipher) -> str:
    try:
        encrypted = base64.b64decode(secret.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as err:
        raise CryptoError(f"Credential secret is not valid base64: {err}") from err
    plaintext = old.decrypt(encrypted)
    return base64.b64encode(new.encrypt(plaintext)).decode("ascii")


def rotate_package_secret(
    package: PackageSource,
    old_secret: str,
    new_secret: str,
    scheme: Optional[str] = None,
    iterations: Optional[int] = None,
) -> tuple[MigrationPackage, dict]:
    """Re-encrypt all package payloads from ``old_secret`` to ``new_secret``.

    Args:
        package: Package to re-key (or its serialized form).
        old_secret: Secret the package was exported with.
        new_secret: Secret to encrypt with from now on.
        scheme: Cipher scheme for the new ciphertexts (default ``"Default"``).
        iterations: PBKDF2 rounds for the new ciphertexts.

    Returns:
        Tuple of (new package, stats dict with keys: total, rotated,
        errors, skipped).

    Raises:
        FormatError: If the package cannot be decoded.
        CryptoError: If either secret is empty or the scheme is unknown.
    """
    package = loads_package(package)
    old = PackageCipher(old_secret)
    new = PackageCipher(new_secret, scheme=scheme or DEFAULT_SCHEME, iterations=iterations)
    stats = {"total": 0, "rotated": 0, "errors": 0, "skipped": 0}

    logger.info(
        "Re-keying package from source=%s to scheme=%s",
        package.source_name, new.scheme,
    )

    blobs: list[EncryptedBlob] = []
    for blob in package.content.certificate_files:
        stats["total"] += 1
        try:
            plaintext = old.decrypt(blob.cipher_bytes)
        except CryptoError as err:
            logger.error("Error re-keying certificate file %s: %s", blob.filename, err)
            stats["errors"] += 1
            blobs.append(blob)
            continue
        blobs.append(
            blob.model_copy(
                update={"cipher_bytes": new.encrypt(plaintext), "scheme": new.scheme}
            )
        )
        stats["rotated"] += 1

    credentials: list[CredentialRecord] = []
    for credential in package.content.credentials:
        stats["total"] += 1
        if not credential.secret:
            stats["skipped"] += 1
            credentials.append(credential)
            continue
        try:
            secret = _rekey_secret(credential.secret, old, new)
        except CryptoError as err:
            logger.error(
                "Error re-keying credential key=%s: %s", credential.storage_key, err
            )
            stats["errors"] += 1
            credentials.append(credential)
            continue
        credentials.append(credential.model_copy(update={"secret": secret}))
        stats["rotated"] += 1

    content = package.content.model_copy(
        update={"certificate_files": blobs, "credentials": credentials}
    )
    logger.info("Package re-key complete: %s", stats)
    return package.model_copy(update={"content": content}), stats
