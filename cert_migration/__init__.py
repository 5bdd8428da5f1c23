"""Cert Migration.

Export managed certificates, their certificate files, stored credentials
and certificate authorities into one encrypted package, and preview or
apply that package on another machine.
"""
from .version import __version__
from .exceptions import (
    MigrationError,
    PackageIOError,
    CryptoError,
    FormatError,
    CertificateValidationError,
)
from .models import (
    ActionStep,
    AuthorityRecord,
    CertificateFilter,
    CertificateRecord,
    CredentialRecord,
    DeploymentTask,
    EncryptedBlob,
    MigrationContent,
    MigrationPackage,
)
from .security import (
    ExportSettings,
    ImportSettings,
    MigrationConfig,
    generate_secret,
    rotate_package_secret,
)
from .selection import select_used_credentials
from .serialization import dumps_package, loads_package
from .builder import PackageBuilder
from .importer import PackageImporter
from .manager import MigrationManager

__all__ = [
    "__version__",
    "MigrationError",
    "PackageIOError",
    "CryptoError",
    "FormatError",
    "CertificateValidationError",
    "ActionStep",
    "AuthorityRecord",
    "CertificateFilter",
    "CertificateRecord",
    "CredentialRecord",
    "DeploymentTask",
    "EncryptedBlob",
    "MigrationContent",
    "MigrationPackage",
    "ExportSettings",
    "ImportSettings",
    "MigrationConfig",
    "generate_secret",
    "rotate_package_secret",
    "select_used_credentials",
    "dumps_package",
    "loads_package",
    "PackageBuilder",
    "PackageImporter",
    "MigrationManager",
]
