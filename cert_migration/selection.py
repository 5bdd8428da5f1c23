"""Selection of the stored credentials an export has to carry."""
import logging
from collections.abc import Iterable, Iterator

from .models import CertificateRecord, CredentialRecord

logger = logging.getLogger("cert_migration.selection")


def _referenced_keys(certificates: Iterable[CertificateRecord]) -> Iterator[str]:
    """Storage keys referenced by certificates, in reference order."""
    for cert in certificates:
        if cert.certificate_password_credential_id:
            yield cert.certificate_password_credential_id
        for task in cert.tasks:
            if task.challenge_credential_key:
                yield task.challenge_credential_key


def select_used_credentials(
    certificates: Iterable[CertificateRecord],
    all_credentials: Iterable[CredentialRecord],
    export_all: bool = False,
) -> list[CredentialRecord]:
    """Compute the stored credentials to include in a package.

    Args:
        certificates: Certificates being exported.
        all_credentials: Every credential known to the vault.
        export_all: Return every credential instead of only the used ones.

    Returns:
        Credentials deduplicated by storage key. With ``export_all`` the
        order is that of ``all_credentials``; otherwise it is the order in
        which certificates reference them (password credential first, then
        pre-request and post-request task credentials). References to
        unknown storage keys are skipped.
    """
    by_key: dict[str, CredentialRecord] = {}
    for credential in all_credentials:
        by_key.setdefault(credential.storage_key, credential)

    if export_all:
        return list(by_key.values())

    selected: dict[str, CredentialRecord] = {}
    for key in _referenced_keys(certificates):
        if key in selected:
            continue
        credential = by_key.get(key)
        if credential is None:
            logger.debug("Skipping reference to unknown credential key=%s", key)
            continue
        selected[key] = credential
    return list(selected.values())
