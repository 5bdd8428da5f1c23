"""Shared pytest fixtures for cert_migration tests.

Builds a small scenario: three managed certificates with PFX files, four
stored credentials (three referenced, one unused) and one certificate
authority, all held by in-memory collaborators.
"""
import pytest

from cert_migration.models import (
    AuthorityRecord,
    CertificateRecord,
    CredentialRecord,
    DeploymentTask,
)
from cert_migration.security import crypto
from cert_migration.security.config import ExportSettings, ImportSettings

from tests.mocks.collaborators import (
    CREDENTIAL_SECRETS,
    SECRET,
    InMemoryAuthorityStore,
    InMemoryCredentialVault,
    InMemoryFiles,
    InMemoryItemStore,
    make_pfx,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    """Use the minimum PBKDF2 work factor so tests run quickly."""
    monkeypatch.setattr(crypto, "KDF_ITERATIONS", crypto.MIN_KDF_ITERATIONS)


@pytest.fixture
def credentials():
    return [
        CredentialRecord(
            storage_key=key,
            title=f"Credential {key[-1].upper()}",
            provider_type="Test",
        )
        for key in CREDENTIAL_SECRETS
    ]


@pytest.fixture
def certificates():
    """Password refs {A, B} and task refs {B, C}; cert-3 references nothing."""
    return [
        CertificateRecord(
            id="cert-1",
            name="www.example.com",
            certificate_path="/certs/www.pfx",
            certificate_password_credential_id="cred-a",
            pre_request_tasks=[
                DeploymentTask(id="t1", task_name="DNS", challenge_credential_key="cred-b"),
            ],
        ),
        CertificateRecord(
            id="cert-2",
            name="api.example.com",
            certificate_path="/certs/api.pfx",
            certificate_password_credential_id="cred-b",
            post_request_tasks=[
                DeploymentTask(id="t2", task_name="Deploy", challenge_credential_key="cred-c"),
            ],
        ),
        CertificateRecord(
            id="cert-3",
            name="mail.example.com",
            certificate_path="/certs/mail.pfx",
        ),
    ]


@pytest.fixture
def files():
    return InMemoryFiles({
        "/certs/www.pfx": make_pfx("www.example.com", password=CREDENTIAL_SECRETS["cred-a"]),
        "/certs/api.pfx": make_pfx("api.example.com", password=CREDENTIAL_SECRETS["cred-b"]),
        "/certs/mail.pfx": make_pfx("mail.example.com"),
    })


@pytest.fixture
def item_store(certificates):
    return InMemoryItemStore(certificates)


@pytest.fixture
def vault(credentials):
    return InMemoryCredentialVault(credentials, CREDENTIAL_SECRETS)


@pytest.fixture
def authority_store():
    return InMemoryAuthorityStore([
        AuthorityRecord(id="ca-1", title="Internal CA", directory_uri="https://ca.internal/acme"),
    ])


@pytest.fixture
def export_settings():
    return ExportSettings(encryption_secret=SECRET)


@pytest.fixture
def import_settings():
    return ImportSettings(encryption_secret=SECRET)
