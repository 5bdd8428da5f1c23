"""End-to-end export and import through MigrationManager."""
import pytest

from cert_migration import MigrationManager
from cert_migration.security.config import ImportSettings, MigrationConfig
from cert_migration.security.crypto import MIN_KDF_ITERATIONS
from cert_migration.serialization import dumps_package

from tests.mocks.collaborators import (
    CREDENTIAL_SECRETS,
    FIXED_NOW,
    InMemoryAuthorityStore,
    InMemoryCredentialVault,
    InMemoryItemStore,
)


@pytest.fixture
def config():
    return MigrationConfig(kdf_iterations=MIN_KDF_ITERATIONS, source_name="old-server")


@pytest.fixture
def source(item_store, vault, authority_store, files, config):
    return MigrationManager(
        item_store,
        vault,
        authority_store=authority_store,
        config=config,
        read_file=files,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def target():
    return InMemoryItemStore(), InMemoryCredentialVault(), InMemoryAuthorityStore()


@pytest.fixture
def destination(target, config):
    item_store, vault, authorities = target
    return MigrationManager(
        item_store,
        vault,
        authority_store=authorities,
        config=config,
        clock=lambda: FIXED_NOW,
    )


@pytest.mark.unit
class TestMigration:

    @pytest.mark.asyncio
    async def test_export_then_import(self, source, destination, target, files):
        settings = source.export_settings("migration secret")
        package = await source.get_export_package(None, settings)
        assert package.source_name == "old-server"

        data = dumps_package(package)
        import_settings = ImportSettings(encryption_secret="migration secret")
        preview = await destination.perform_import(data, import_settings)
        applied = await destination.perform_import(data, import_settings, is_preview=False)

        assert all(step.succeeded for step in preview)
        assert all(step.succeeded for step in applied)
        item_store, vault, authorities = target
        assert item_store.installed == files.files
        assert [a.id for a in authorities.persisted] == ["ca-1"]
        assert {c.storage_key: c.secret for c in vault.persisted} == {
            k: CREDENTIAL_SECRETS[k] for k in ("cred-a", "cred-b", "cred-c")
        }

    def test_export_settings_use_config(self, source):
        settings = source.export_settings("s", export_all_stored_credentials=True)
        assert settings.kdf_iterations == MIN_KDF_ITERATIONS
        assert settings.export_all_stored_credentials is True

    def test_config_from_env(self, monkeypatch, item_store, vault):
        monkeypatch.setenv("MIGRATION_SOURCE_NAME", "env-host")
        manager = MigrationManager(item_store, vault)
        assert manager.config.source_name == "env-host"
