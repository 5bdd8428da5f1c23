"""
Collaborator interfaces consumed by the package builder and importer.

Each is a narrow async capability set; any object exposing these coroutines
can be used (a database-backed store, a remote API client, or an in-memory
fake in tests). Calls are awaited one at a time.
"""
from typing import Optional, Protocol, runtime_checkable
from collections.abc import Awaitable, Callable

from .models import (
    AuthorityRecord,
    CertificateFilter,
    CertificateRecord,
    CredentialRecord,
)


@runtime_checkable
class ItemStore(Protocol):
    """Managed certificate store."""

    async def get_all(self, filter: CertificateFilter) -> list[CertificateRecord]:
        ...

    async def persist(self, record: CertificateRecord) -> None:
        ...

    async def install_certificate(self, filename: str, data: bytes) -> None:
        ...


@runtime_checkable
class CredentialVault(Protocol):
    """Stored credential vault."""

    async def get_all_credentials(self) -> list[CredentialRecord]:
        ...

    async def get_unlocked_secret(self, storage_key: str) -> Optional[str]:
        ...

    async def persist(self, record: CredentialRecord) -> None:
        ...


@runtime_checkable
class AuthorityStore(Protocol):
    """Custom certificate authority definitions."""

    async def get_all(self) -> list[AuthorityRecord]:
        ...

    async def persist(self, record: AuthorityRecord) -> None:
        ...


FileReader = Callable[[str], Awaitable[bytes]]
