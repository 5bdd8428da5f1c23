"""
PackageImporter — Previews or applies a migration package.

An import runs four phases in order, each reported as one top-level
``ActionStep`` whose substeps follow package order:

1. stored credentials (decrypt, then persist to the vault)
2. managed certificates (persist to the item store)
3. certificate files (decrypt, decode, validate, then install)
4. certificate authorities (persist to the authority store)

Preview mode performs the same decryption, decoding and validation as apply
mode but no persistence call, so both modes report identical titles, keys
and decode/validation outcomes.

Security Note:
    Decrypted secrets are held in memory only for the duration of the
    import. Never log plaintext or ciphertext values.
"""
import base64
import binascii
import logging
from typing import Optional
from datetime import datetime
from collections.abc import Callable

from .builder import utc_now
from .certificates import LoadedCertificate, load_certificate_file, validate_certificate
from .exceptions import CertificateValidationError, CryptoError, MigrationError
from .models import (
    ActionStep,
    AuthorityRecord,
    CertificateRecord,
    CredentialRecord,
    EncryptedBlob,
)
from .serialization import PackageSource, loads_package
from .security.config import ImportSettings
from .security.crypto import PackageCipher, scheme_of
from .stores import AuthorityStore, CredentialVault, ItemStore

logger = logging.getLogger("cert_migration.import")

IMPORT_CATEGORY = "Import"


def _failed(title: str, key: str, err: Exception) -> ActionStep:
    return ActionStep(title=title, key=key, has_error=True, description=str(err))


def decrypt_secret(secret: Optional[str], cipher: PackageCipher) -> str:
    """Decode a credential secret carried in a package.

    Raises:
        CryptoError: If the secret is missing, not base64, or fails to decrypt.
    """
    if not secret:
        raise CryptoError("Credential carries no secret")
    try:
        encrypted = base64.b64decode(secret.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as err:
        raise CryptoError(f"Credential secret is not valid base64: {err}") from err
    plaintext = cipher.decrypt(encrypted)
    try:
        return plaintext.decode("utf-8").rstrip("\0")
    except UnicodeDecodeError as err:
        raise CryptoError("Decrypted credential secret is not UTF-8") from err


class PackageImporter:
    """Imports packages produced by :class:`~cert_migration.builder.PackageBuilder`."""

    def __init__(
        self,
        item_store: ItemStore,
        credential_vault: CredentialVault,
        authority_store: Optional[AuthorityStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._items = item_store
        self._vault = credential_vault
        self._authorities = authority_store
        self._clock = clock or utc_now

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _import_credentials(
        self,
        credentials: list[CredentialRecord],
        cipher: PackageCipher,
        unlocked: dict[str, str],
        is_preview: bool,
    ) -> ActionStep:
        steps = []
        for credential in credentials:
            title, key = credential.title, credential.storage_key
            try:
                plaintext = decrypt_secret(credential.secret, cipher)
            except CryptoError as err:
                logger.error("Cannot decrypt credential key=%s: %s", key, err)
                steps.append(_failed(title, key, err))
                continue
            unlocked[key] = plaintext
            if not is_preview:
                try:
                    await self._vault.persist(
                        credential.model_copy(update={"secret": plaintext})
                    )
                except Exception as err:
                    logger.error("Failed to store credential key=%s: %s", key, err)
                    steps.append(_failed(title, key, err))
                    continue
            steps.append(ActionStep(title=title, key=key))
        return ActionStep(
            title="Import Stored Credentials",
            category=IMPORT_CATEGORY,
            key="StoredCredentials",
            substeps=steps,
        )

    async def _import_certificates(
        self,
        certificates: list[CertificateRecord],
        is_preview: bool,
    ) -> ActionStep:
        steps = []
        for cert in certificates:
            if not is_preview:
                try:
                    await self._items.persist(cert)
                except Exception as err:
                    logger.error("Failed to store managed certificate id=%s: %s", cert.id, err)
                    steps.append(_failed(cert.name, cert.id, err))
                    continue
            steps.append(ActionStep(title=cert.name, key=cert.id))
        return ActionStep(
            title="Import Managed Certificates",
            category=IMPORT_CATEGORY,
            key="ManagedCerts",
            substeps=steps,
        )

    def _decode_certificate_file(
        self,
        blob: EncryptedBlob,
        cipher: PackageCipher,
        password: Optional[str],
        settings: ImportSettings,
    ) -> tuple[bytes, LoadedCertificate]:
        if blob.scheme != scheme_of(blob.cipher_bytes):
            raise CryptoError(
                f"Blob scheme {blob.scheme!r} does not match its ciphertext"
            )
        data = cipher.decrypt(blob.cipher_bytes)
        loaded = load_certificate_file(data, password)
        validate_certificate(
            loaded, now=self._clock(), allow_expired=settings.allow_expired
        )
        return data, loaded

    async def _import_certificate_files(
        self,
        blobs: list[EncryptedBlob],
        certificates: list[CertificateRecord],
        cipher: PackageCipher,
        unlocked: dict[str, str],
        settings: ImportSettings,
        is_preview: bool,
    ) -> ActionStep:
        owners = {
            cert.certificate_path: cert for cert in certificates if cert.certificate_path
        }
        steps = []
        for blob in blobs:
            key = blob.filename
            owner = owners.get(key)
            password = None
            if owner is not None and owner.certificate_password_credential_id:
                password = unlocked.get(owner.certificate_password_credential_id)
            try:
                data, loaded = self._decode_certificate_file(
                    blob, cipher, password, settings
                )
            except (CryptoError, CertificateValidationError) as err:
                logger.error("Certificate file %s failed to import: %s", key, err)
                steps.append(_failed(f"Importing PFX {key}", key, err))
                continue
            title = f"Importing PFX {loaded.subject}, expiring {loaded.not_after}"
            if not is_preview:
                try:
                    await self._items.install_certificate(key, data)
                except Exception as err:
                    logger.error("Failed to install certificate file %s: %s", key, err)
                    steps.append(_failed(title, key, err))
                    continue
            steps.append(ActionStep(title=title, key=key))
        return ActionStep(
            title="Import Certificate Files",
            category=IMPORT_CATEGORY,
            key="CertFiles",
            substeps=steps,
        )

    async def _import_authorities(
        self,
        authorities: list[AuthorityRecord],
        is_preview: bool,
    ) -> ActionStep:
        steps = []
        for authority in authorities:
            title, key = authority.title, authority.id
            if not is_preview:
                try:
                    if self._authorities is None:
                        raise MigrationError("No certificate authority store configured")
                    await self._authorities.persist(authority)
                except Exception as err:
                    logger.error("Failed to store certificate authority id=%s: %s", key, err)
                    steps.append(_failed(title, key, err))
                    continue
            steps.append(ActionStep(title=title, key=key))
        return ActionStep(
            title="Import Certificate Authorities",
            category=IMPORT_CATEGORY,
            key="CertificateAuthorities",
            substeps=steps,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def perform_import(
        self,
        package: PackageSource,
        settings: ImportSettings,
        is_preview: bool = True,
    ) -> list[ActionStep]:
        """Preview or apply an import.

        Args:
            package: A package, or its serialized/parsed JSON form.
            settings: Decryption secret and validation options.
            is_preview: When True, decode and validate only; persist nothing.

        Returns:
            One top-level step per phase; failed items are marked with
            ``has_error`` in their substep.

        Raises:
            FormatError: If the package cannot be decoded or its format
                version is unsupported. Raised before any phase runs.
        """
        package = loads_package(package)
        content = package.content
        cipher = PackageCipher(settings.encryption_secret.get_secret_value())
        unlocked: dict[str, str] = {}
        mode = "preview" if is_preview else "apply"
        logger.info(
            "Starting import (%s) of package from source=%s exported=%s",
            mode, package.source_name, package.exported_at,
        )

        steps = [
            await self._import_credentials(
                content.credentials, cipher, unlocked, is_preview
            ),
            await self._import_certificates(content.certificates, is_preview),
            await self._import_certificate_files(
                content.certificate_files,
                content.certificates,
                cipher,
                unlocked,
                settings,
                is_preview,
            ),
            await self._import_authorities(content.authorities, is_preview),
        ]
        failures = sum(1 for step in steps for _ in step.failures())
        logger.info("Import (%s) complete: %d failed item(s)", mode, failures)
        return steps
