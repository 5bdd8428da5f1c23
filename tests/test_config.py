"""Tests for export/import settings and environment configuration."""
import pytest
from pydantic import ValidationError

from cert_migration.conf import DEFAULT_DESCRIPTION
from cert_migration.security.config import ExportSettings, ImportSettings, MigrationConfig


@pytest.mark.unit
class TestExportSettings:

    def test_defaults(self):
        settings = ExportSettings(encryption_secret="s")
        assert settings.export_all_stored_credentials is False
        assert settings.scheme == "Default"
        assert settings.kdf_iterations is None
        assert settings.description == DEFAULT_DESCRIPTION

    def test_secret_is_masked(self):
        settings = ExportSettings(encryption_secret="hunter2")
        assert "hunter2" not in repr(settings)
        assert "hunter2" not in str(settings)
        assert settings.encryption_secret.get_secret_value() == "hunter2"

    def test_empty_secret_rejected(self):
        with pytest.raises(ValidationError, match="cannot be empty"):
            ExportSettings(encryption_secret="")

    def test_unknown_scheme_rejected(self):
        with pytest.raises(ValidationError, match="Unsupported cipher scheme"):
            ExportSettings(encryption_secret="s", scheme="Rot13")

    @pytest.mark.parametrize("iterations", [999, 10_000_001])
    def test_iterations_bounds(self, iterations):
        with pytest.raises(ValidationError):
            ExportSettings(encryption_secret="s", kdf_iterations=iterations)


@pytest.mark.unit
class TestImportSettings:

    def test_defaults(self):
        settings = ImportSettings(encryption_secret="s")
        assert settings.allow_expired is False

    def test_empty_secret_rejected(self):
        with pytest.raises(ValidationError):
            ImportSettings(encryption_secret="")


@pytest.mark.unit
class TestMigrationConfig:

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("MIGRATION_KDF_ITERATIONS", "2000")
        monkeypatch.setenv("MIGRATION_CIPHER_SCHEME", "ChaCha20Poly1305")
        monkeypatch.setenv("MIGRATION_SOURCE_NAME", "build-host")
        config = MigrationConfig.from_env()
        assert config.kdf_iterations == 2000
        assert config.scheme == "ChaCha20Poly1305"
        assert config.source_name == "build-host"

    def test_from_env_defaults(self, monkeypatch):
        for name in (
            "MIGRATION_KDF_ITERATIONS", "MIGRATION_CIPHER_SCHEME", "MIGRATION_SOURCE_NAME",
        ):
            monkeypatch.delenv(name, raising=False)
        config = MigrationConfig.from_env()
        assert config == MigrationConfig()

    def test_from_env_invalid_scheme(self, monkeypatch):
        monkeypatch.setenv("MIGRATION_CIPHER_SCHEME", "Rot13")
        with pytest.raises(ValidationError):
            MigrationConfig.from_env()

    def test_export_settings_carry_defaults(self):
        config = MigrationConfig(kdf_iterations=5000, scheme="ChaCha20Poly1305")
        settings = config.export_settings("s", export_all_stored_credentials=True)
        assert settings.kdf_iterations == 5000
        assert settings.scheme == "ChaCha20Poly1305"
        assert settings.export_all_stored_credentials is True
