"""In-memory collaborators for unit tests."""

from .collaborators import (
    InMemoryAuthorityStore,
    InMemoryCredentialVault,
    InMemoryFiles,
    InMemoryItemStore,
)

__all__ = [
    "InMemoryAuthorityStore",
    "InMemoryCredentialVault",
    "InMemoryFiles",
    "InMemoryItemStore",
]
