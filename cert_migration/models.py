"""
Migration package data model.

Every model serializes with camelCase field names (``formatVersion``,
``certificateFiles``, ``cipherBytes``...) and accepts either the camelCase
alias or the Python attribute name on input.

Security Note:
    ``CredentialRecord.secret`` holds ciphertext (base64) while inside a
    package. Plaintext secrets only exist between vault unlock and
    re-encryption on export, and between decryption and vault persistence
    on import.
"""
import base64
import binascii
from typing import Any, Optional
from datetime import datetime
from collections.abc import Iterator

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

from .conf import FORMAT_VERSION, DEFAULT_DESCRIPTION


class CamelModel(BaseModel):
    """Base model using camelCase aliases on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class DeploymentTask(CamelModel):
    """A pre/post-request task attached to a managed certificate."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    task_name: Optional[str] = None
    task_type_id: Optional[str] = None
    challenge_credential_key: Optional[str] = None
    parameters: list[dict[str, Any]] = Field(default_factory=list)


class CertificateRecord(CamelModel):
    """Managed certificate metadata.

    Never carries private key material: that travels only inside the
    ``EncryptedBlob`` whose ``filename`` equals ``certificate_path``.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    certificate_path: Optional[str] = None
    certificate_password_credential_id: Optional[str] = None
    pre_request_tasks: list[DeploymentTask] = Field(default_factory=list)
    post_request_tasks: list[DeploymentTask] = Field(default_factory=list)

    @property
    def tasks(self) -> list[DeploymentTask]:
        """Pre-request tasks followed by post-request tasks."""
        return [*self.pre_request_tasks, *self.post_request_tasks]


class CredentialRecord(CamelModel):
    """A stored credential as held by the credential vault."""

    model_config = ConfigDict(extra="allow")

    storage_key: str
    title: str = ""
    provider_type: Optional[str] = None
    secret: Optional[str] = None
    date_created: Optional[datetime] = None

    def __repr__(self) -> str:
        # secret is never rendered
        return (
            f'<CredentialRecord storage_key={self.storage_key!r} '
            f'title={self.title!r}>'
        )

    __str__ = __repr__


class AuthorityRecord(CamelModel):
    """A custom certificate authority definition."""

    model_config = ConfigDict(extra="allow")

    id: str
    title: str = ""


class EncryptedBlob(CamelModel):
    """An encrypted certificate file.

    ``cipher_bytes`` is opaque outside the cipher adapter; on the wire it is
    encoded as base64.
    """

    model_config = ConfigDict(frozen=True)

    filename: str
    cipher_bytes: bytes
    scheme: str = "Default"

    @field_validator("cipher_bytes", mode="before")
    @classmethod
    def decode_cipher_bytes(cls, v: Any) -> Any:
        """Accept base64 text as produced by the JSON serializer."""
        if isinstance(v, str):
            try:
                return base64.b64decode(v.encode("ascii"), validate=True)
            except (binascii.Error, UnicodeEncodeError) as err:
                raise ValueError(f"cipherBytes is not valid base64: {err}") from err
        return v

    @field_serializer("cipher_bytes", when_used="json")
    def encode_cipher_bytes(self, v: bytes) -> str:
        return base64.b64encode(v).decode("ascii")


class MigrationContent(CamelModel):
    """Items carried by a migration package, in export order."""

    model_config = ConfigDict(frozen=True)

    certificates: list[CertificateRecord] = Field(default_factory=list)
    certificate_files: list[EncryptedBlob] = Field(default_factory=list)
    credentials: list[CredentialRecord] = Field(default_factory=list)
    authorities: list[AuthorityRecord] = Field(default_factory=list)


class MigrationPackage(CamelModel):
    """A complete, immutable export of certificate manager settings."""

    model_config = ConfigDict(frozen=True)

    format_version: int = FORMAT_VERSION
    description: str = DEFAULT_DESCRIPTION
    source_name: str = ""
    exported_at: datetime
    content: MigrationContent = Field(default_factory=MigrationContent)


class CertificateFilter(CamelModel):
    """Selection criteria handed to the item store on export."""

    id: Optional[str] = None
    name: Optional[str] = None
    keyword: Optional[str] = None
    max_results: int = Field(default=0, ge=0)


class ActionStep(CamelModel):
    """One node of an import report.

    A failed item carries ``has_error=True`` and the error text in
    ``description``.
    """

    title: str
    category: str = ""
    key: str = ""
    description: Optional[str] = None
    has_error: bool = False
    substeps: list["ActionStep"] = Field(default_factory=list)

    def failures(self) -> Iterator["ActionStep"]:
        """Yield this step and its descendants that are marked as failed."""
        if self.has_error:
            yield self
        for step in self.substeps:
            yield from step.failures()

    @property
    def succeeded(self) -> bool:
        return next(self.failures(), None) is None
