"""
Migration Configuration — Validated export/import settings.

Defaults for new packages come from environment variables:
    MIGRATION_KDF_ITERATIONS = <integer>
    MIGRATION_CIPHER_SCHEME = Default | ChaCha20Poly1305
    MIGRATION_SOURCE_NAME = <host identity>

Security Note:
    Never log encryption secrets. Settings render the secret masked.
"""
import os
import logging
from typing import Optional

from pydantic import BaseModel, Field, SecretStr, field_validator

from ..conf import (
    DEFAULT_DESCRIPTION,
    KDF_ITERATIONS,
    CIPHER_SCHEME,
    SOURCE_NAME,
)
from .crypto import (
    SCHEMES,
    MIN_KDF_ITERATIONS,
    MAX_KDF_ITERATIONS,
)

logger = logging.getLogger("cert_migration.config")


def _validate_scheme(v: str) -> str:
    if v not in SCHEMES:
        raise ValueError(
            f"Unsupported cipher scheme: {v} (available: {sorted(SCHEMES)})"
        )
    return v


def _validate_secret(v: SecretStr) -> SecretStr:
    if not v.get_secret_value():
        raise ValueError("encryption_secret cannot be empty")
    return v


class ExportSettings(BaseModel):
    """Options for building a migration package."""

    encryption_secret: SecretStr
    export_all_stored_credentials: bool = False
    scheme: str = Field(default=CIPHER_SCHEME)
    kdf_iterations: Optional[int] = Field(
        default=None, ge=MIN_KDF_ITERATIONS, le=MAX_KDF_ITERATIONS
    )
    description: str = DEFAULT_DESCRIPTION

    @field_validator("encryption_secret")
    @classmethod
    def validate_secret(cls, v: SecretStr) -> SecretStr:
        """Reject an empty encryption secret."""
        return _validate_secret(v)

    @field_validator("scheme")
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        """Validate cipher scheme is supported."""
        return _validate_scheme(v)


class ImportSettings(BaseModel):
    """Options for previewing or applying a migration package."""

    encryption_secret: SecretStr
    allow_expired: bool = False

    @field_validator("encryption_secret")
    @classmethod
    def validate_secret(cls, v: SecretStr) -> SecretStr:
        """Reject an empty encryption secret."""
        return _validate_secret(v)


class MigrationConfig(BaseModel):
    """Validated process-wide defaults for new packages."""

    kdf_iterations: int = Field(
        default=KDF_ITERATIONS, ge=MIN_KDF_ITERATIONS, le=MAX_KDF_ITERATIONS
    )
    scheme: str = Field(default=CIPHER_SCHEME)
    source_name: str = SOURCE_NAME

    @field_validator("scheme")
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        """Validate cipher scheme is supported."""
        return _validate_scheme(v)

    @classmethod
    def from_env(cls) -> "MigrationConfig":
        """Create MigrationConfig by loading values from environment.

        Returns:
            Populated MigrationConfig instance.
        """
        values = {}
        if "MIGRATION_KDF_ITERATIONS" in os.environ:
            values["kdf_iterations"] = int(os.environ["MIGRATION_KDF_ITERATIONS"])
        if "MIGRATION_CIPHER_SCHEME" in os.environ:
            values["scheme"] = os.environ["MIGRATION_CIPHER_SCHEME"]
        if os.environ.get("MIGRATION_SOURCE_NAME"):
            values["source_name"] = os.environ["MIGRATION_SOURCE_NAME"]
        config = cls(**values)
        logger.debug(
            "Loaded migration config: scheme=%s iterations=%d",
            config.scheme, config.kdf_iterations,
        )
        return config

    def export_settings(
        self,
        encryption_secret: str,
        export_all_stored_credentials: bool = False,
    ) -> ExportSettings:
        """Build ExportSettings carrying these defaults."""
        return ExportSettings(
            encryption_secret=encryption_secret,
            export_all_stored_credentials=export_all_stored_credentials,
            scheme=self.scheme,
            kdf_iterations=self.kdf_iterations,
        )
