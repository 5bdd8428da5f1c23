"""
Decoding and structural validation of imported certificate files.

Certificate files travel as PKCS#12 (PFX) containers; PEM bundles holding
the certificate, its chain and optionally a private key are accepted too.
"""
import re
import logging
from typing import Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from .exceptions import CertificateValidationError

logger = logging.getLogger("cert_migration.certificates")

_PEM_CERT = re.compile(
    rb"-----BEGIN CERTIFICATE-----.+?-----END CERTIFICATE-----", re.DOTALL
)
_PEM_KEY = re.compile(
    rb"-----BEGIN ([A-Z ]*)PRIVATE KEY-----.+?-----END \1PRIVATE KEY-----",
    re.DOTALL,
)


@dataclass
class LoadedCertificate:
    """A decoded certificate file.

    Attributes:
        certificate: The leaf certificate.
        private_key: Private key bundled with the certificate, if any.
        chain: Additional certificates shipped in the container.
        container: ``"pkcs12"`` or ``"pem"``.
    """
    certificate: x509.Certificate
    private_key: Optional[object] = None
    chain: list[x509.Certificate] = field(default_factory=list)
    container: str = "pkcs12"

    @property
    def subject(self) -> str:
        return self.certificate.subject.rfc4514_string()

    @property
    def not_after(self) -> datetime:
        return self.certificate.not_valid_after_utc

    @property
    def not_before(self) -> datetime:
        return self.certificate.not_valid_before_utc


def _load_pkcs12(data: bytes, password: Optional[str]) -> LoadedCertificate:
    candidates = [password.encode("utf-8"), None] if password else [None]
    error: Optional[Exception] = None
    for candidate in candidates:
        try:
            key, cert, additional = pkcs12.load_key_and_certificates(data, candidate)
        except (ValueError, TypeError, UnsupportedAlgorithm) as err:
            error = err
            continue
        if cert is None:
            raise CertificateValidationError("PFX container holds no certificate")
        return LoadedCertificate(
            certificate=cert,
            private_key=key,
            chain=list(additional or []),
            container="pkcs12",
        )
    raise CertificateValidationError(f"Unable to read PFX container: {error}") from error


def _load_pem(data: bytes, password: Optional[str]) -> LoadedCertificate:
    blocks = _PEM_CERT.findall(data)
    if not blocks:
        raise CertificateValidationError("PEM data holds no certificate")
    try:
        certs = [x509.load_pem_x509_certificate(block) for block in blocks]
    except ValueError as err:
        raise CertificateValidationError(f"Invalid PEM certificate: {err}") from err
    key = None
    match = _PEM_KEY.search(data)
    if match:
        try:
            key = serialization.load_pem_private_key(
                match.group(0),
                password.encode("utf-8") if password else None,
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as err:
            raise CertificateValidationError(
                f"Unable to read PEM private key: {err}"
            ) from err
    return LoadedCertificate(
        certificate=certs[0],
        private_key=key,
        chain=certs[1:],
        container="pem",
    )


def load_certificate_file(data: bytes, password: Optional[str] = None) -> LoadedCertificate:
    """Parse a certificate file.

    Args:
        data: PKCS#12 or PEM bytes.
        password: Container password, if the file is protected.

    Raises:
        CertificateValidationError: If the data cannot be decoded.
    """
    if not data:
        raise CertificateValidationError("Certificate file is empty")
    if data.lstrip().startswith(b"-----BEGIN"):
        loaded = _load_pem(data, password)
    else:
        loaded = _load_pkcs12(data, password)
    logger.debug(
        "Decoded %s certificate %s (%d chain certificate(s))",
        loaded.container, loaded.subject, len(loaded.chain),
    )
    return loaded


def _public_der(key) -> bytes:
    return key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _verify_link(child: x509.Certificate, issuer: x509.Certificate) -> None:
    try:
        child.verify_directly_issued_by(issuer)
    except (ValueError, TypeError, InvalidSignature) as err:
        raise CertificateValidationError(
            f"Certificate {child.subject.rfc4514_string()} is not validly "
            f"signed by {issuer.subject.rfc4514_string()}"
        ) from err


def validate_certificate(
    loaded: LoadedCertificate,
    now: Optional[datetime] = None,
    allow_expired: bool = False,
) -> None:
    """Check a decoded certificate file for structural consistency.

    Verifies the validity window, that a bundled private key matches the
    certificate, and each signature along the bundled chain (ending in a
    self-signed root when one is present).

    Raises:
        CertificateValidationError: On the first failed check.
    """
    cert = loaded.certificate
    if loaded.not_after <= loaded.not_before:
        raise CertificateValidationError(
            f"Certificate {loaded.subject} has an empty validity period"
        )
    if not allow_expired:
        now = now or datetime.now(timezone.utc)
        if now > loaded.not_after:
            raise CertificateValidationError(
                f"Certificate {loaded.subject} expired {loaded.not_after.isoformat()}"
            )
        if now < loaded.not_before:
            raise CertificateValidationError(
                f"Certificate {loaded.subject} not valid before "
                f"{loaded.not_before.isoformat()}"
            )

    if loaded.private_key is not None:
        if _public_der(loaded.private_key.public_key()) != _public_der(cert.public_key()):
            raise CertificateValidationError(
                f"Private key does not match certificate {loaded.subject}"
            )

    current = cert
    remaining = list(loaded.chain)
    while current.issuer != current.subject:
        issuer = next((c for c in remaining if c.subject == current.issuer), None)
        if issuer is None:
            # chain continues outside the container
            return
        _verify_link(current, issuer)
        remaining.remove(issuer)
        current = issuer
    _verify_link(current, current)
