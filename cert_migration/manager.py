"""
MigrationManager — Export and import of managed certificates and settings.

Wires the package builder and importer to one set of collaborators:
- ``get_export_package(filter, settings)`` — build an encrypted package
- ``perform_import(package, settings, is_preview)`` — preview or apply it
"""
from typing import Optional
from datetime import datetime
from collections.abc import Callable

from .builder import PackageBuilder
from .importer import PackageImporter
from .models import ActionStep, CertificateFilter, MigrationPackage
from .serialization import PackageSource
from .security.config import ExportSettings, ImportSettings, MigrationConfig
from .stores import AuthorityStore, CredentialVault, FileReader, ItemStore


class MigrationManager:
    """Perform/preview import and export."""

    def __init__(
        self,
        item_store: ItemStore,
        credential_vault: CredentialVault,
        authority_store: Optional[AuthorityStore] = None,
        config: Optional[MigrationConfig] = None,
        read_file: Optional[FileReader] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config or MigrationConfig.from_env()
        self._builder = PackageBuilder(
            item_store,
            credential_vault,
            authority_store=authority_store,
            read_file=read_file,
            source_name=self.config.source_name,
            clock=clock,
        )
        self._importer = PackageImporter(
            item_store,
            credential_vault,
            authority_store=authority_store,
            clock=clock,
        )

    def export_settings(
        self,
        encryption_secret: str,
        export_all_stored_credentials: bool = False,
    ) -> ExportSettings:
        """Export settings carrying the configured scheme and KDF rounds."""
        return self.config.export_settings(
            encryption_secret,
            export_all_stored_credentials=export_all_stored_credentials,
        )

    async def get_export_package(
        self,
        filter: Optional[CertificateFilter],
        settings: ExportSettings,
    ) -> MigrationPackage:
        """Export the managed certificates and related settings for the given filter.

        Raises:
            PackageIOError: If a referenced certificate file is unreadable.
        """
        return await self._builder.build(filter, settings)

    async def perform_import(
        self,
        package: PackageSource,
        settings: ImportSettings,
        is_preview: bool = True,
    ) -> list[ActionStep]:
        """Preview (``is_preview=True``) or apply an import.

        Raises:
            FormatError: If the package is malformed or has an unsupported
                format version.
        """
        return await self._importer.perform_import(package, settings, is_preview)
