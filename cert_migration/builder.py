"""
PackageBuilder — Assembles an encrypted migration package.

Steps, in order:
- fetch managed certificates matching a filter from the item store
- read and encrypt each referenced certificate file
- select the stored credentials the certificates use (or all of them)
- unlock each selected credential and re-encrypt its secret
- collect certificate authority definitions
- stamp provenance and format version

Security Note:
    Never log plaintext secrets or file contents. A credential's plaintext
    only exists between vault unlock and re-encryption.
"""
import asyncio
import base64
import logging
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone
from collections.abc import Callable

from .conf import FORMAT_VERSION, SOURCE_NAME
from .exceptions import PackageIOError
from .models import (
    CertificateFilter,
    CertificateRecord,
    CredentialRecord,
    EncryptedBlob,
    MigrationContent,
    MigrationPackage,
)
from .selection import select_used_credentials
from .security.config import ExportSettings
from .security.crypto import PackageCipher
from .stores import AuthorityStore, CredentialVault, FileReader, ItemStore

logger = logging.getLogger("cert_migration.export")


async def read_local_file(path: str) -> bytes:
    """Read a file without blocking the event loop."""
    return await asyncio.to_thread(Path(path).read_bytes)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PackageBuilder:
    """Builds ``MigrationPackage`` instances from the live stores.

    Provenance inputs (``source_name`` and ``clock``) are injected so a
    build is reproducible in tests.
    """

    def __init__(
        self,
        item_store: ItemStore,
        credential_vault: CredentialVault,
        authority_store: Optional[AuthorityStore] = None,
        read_file: Optional[FileReader] = None,
        source_name: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._items = item_store
        self._vault = credential_vault
        self._authorities = authority_store
        self._read_file = read_file or read_local_file
        self._source_name = source_name or SOURCE_NAME
        self._clock = clock or utc_now

    async def _encrypt_certificate_files(
        self,
        certificates: list[CertificateRecord],
        cipher: PackageCipher,
    ) -> list[EncryptedBlob]:
        blobs: list[EncryptedBlob] = []
        for cert in certificates:
            path = cert.certificate_path
            if not path:
                continue
            try:
                data = await self._read_file(path)
            except OSError as err:
                logger.error(
                    "Cannot read certificate file for id=%s path=%s: %s",
                    cert.id, path, err,
                )
                raise PackageIOError(
                    f"Certificate file {path} for {cert.id} is unreadable: {err}"
                ) from err
            blobs.append(
                EncryptedBlob(
                    filename=path,
                    cipher_bytes=cipher.encrypt(data),
                    scheme=cipher.scheme,
                )
            )
            logger.debug("Encrypted certificate file for id=%s", cert.id)
        return blobs

    async def _encrypt_credentials(
        self,
        credentials: list[CredentialRecord],
        cipher: PackageCipher,
    ) -> list[CredentialRecord]:
        exported: list[CredentialRecord] = []
        for credential in credentials:
            plaintext = await self._vault.get_unlocked_secret(credential.storage_key)
            if plaintext is None:
                logger.warning(
                    "Credential key=%s could not be unlocked, omitting it",
                    credential.storage_key,
                )
                continue
            encrypted = cipher.encrypt(plaintext.encode("utf-8"))
            exported.append(
                credential.model_copy(
                    update={"secret": base64.b64encode(encrypted).decode("ascii")}
                )
            )
        return exported

    async def build(
        self,
        filter: Optional[CertificateFilter],
        settings: ExportSettings,
    ) -> MigrationPackage:
        """Export managed certificates and related settings.

        Args:
            filter: Selection of certificates to export (``None`` for all).
            settings: Encryption secret and export options.

        Returns:
            A complete package whose certificate files and credential
            secrets are encrypted.

        Raises:
            PackageIOError: If a referenced certificate file is unreadable.
        """
        filter = filter or CertificateFilter()
        cipher = PackageCipher(
            settings.encryption_secret.get_secret_value(),
            scheme=settings.scheme,
            iterations=settings.kdf_iterations,
        )

        certificates = list(await self._items.get_all(filter))
        certificate_files = await self._encrypt_certificate_files(certificates, cipher)

        all_credentials = list(await self._vault.get_all_credentials())
        used = select_used_credentials(
            certificates,
            all_credentials,
            export_all=settings.export_all_stored_credentials,
        )
        credentials = await self._encrypt_credentials(used, cipher)

        authorities = []
        if self._authorities is not None:
            authorities = list(await self._authorities.get_all())

        package = MigrationPackage(
            format_version=FORMAT_VERSION,
            description=settings.description,
            source_name=self._source_name,
            exported_at=self._clock(),
            content=MigrationContent(
                certificates=certificates,
                certificate_files=certificate_files,
                credentials=credentials,
                authorities=authorities,
            ),
        )
        logger.info(
            "Export package built: %d certificate(s), %d file(s), "
            "%d credential(s), %d authority record(s)",
            len(certificates), len(certificate_files),
            len(credentials), len(authorities),
        )
        return package
