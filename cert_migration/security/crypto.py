"""
Package Crypto Core — Key derivation and authenticated encryption of payloads.

Every certificate file and credential secret in a migration package is
encrypted with a key derived from the operator-supplied encryption secret:

    PBKDF2-HMAC-SHA256(secret, salt, iterations) → AEAD → ciphertext

Ciphertext is self-describing:

    [scheme_id 1B][iterations 4B uint32 BE][salt 16B][nonce 12B][payload + tag 16B]

The 21-byte header is authenticated as associated data, so tampering with
any byte fails decryption.

Security Note:
    Never log plaintext, ciphertext, derived keys or the secret itself.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import struct
import secrets
import logging
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..conf import KDF_ITERATIONS
from ..exceptions import CryptoError

logger = logging.getLogger("cert_migration.crypto")

NONCE_SIZE = 12  # 96-bit nonce
SALT_SIZE = 16
KEY_LENGTH = 32  # AES-256
TAG_SIZE = 16
MIN_KDF_ITERATIONS = 1000
MAX_KDF_ITERATIONS = 10_000_000

_HEADER = struct.Struct("!BI")
HEADER_SIZE = _HEADER.size + SALT_SIZE

DEFAULT_SCHEME = "Default"

# scheme name -> (wire id, AEAD class)
SCHEMES: dict[str, tuple[int, type]] = {
    DEFAULT_SCHEME: (1, AESGCM),
    "ChaCha20Poly1305": (2, ChaCha20Poly1305),
}
_SCHEME_BY_ID = {scheme_id: name for name, (scheme_id, _) in SCHEMES.items()}


def _check_iterations(iterations: int) -> int:
    if not MIN_KDF_ITERATIONS <= iterations <= MAX_KDF_ITERATIONS:
        raise CryptoError(
            f"KDF iteration count {iterations} outside accepted range "
            f"[{MIN_KDF_ITERATIONS}, {MAX_KDF_ITERATIONS}]"
        )
    return iterations


def resolve_scheme(scheme: str) -> tuple[int, type]:
    """Return ``(scheme_id, cipher_cls)`` for a scheme name.

    Raises:
        CryptoError: If the scheme is unknown.
    """
    try:
        return SCHEMES[scheme]
    except KeyError:
        raise CryptoError(f"Unsupported cipher scheme: {scheme!r}") from None


def scheme_of(ciphertext: bytes) -> str:
    """Return the scheme name recorded in a ciphertext header."""
    if not ciphertext:
        raise CryptoError("ciphertext is empty")
    try:
        return _SCHEME_BY_ID[ciphertext[0]]
    except KeyError:
        raise CryptoError(
            f"Unsupported cipher scheme id: {ciphertext[0]}"
        ) from None


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(secret: str, salt: bytes, iterations: Optional[int] = None) -> bytes:
    """Derive a 32-byte encryption key from a secret using PBKDF2-HMAC-SHA256.

    Args:
        secret: Operator-supplied encryption secret.
        salt: Random salt stored in the ciphertext header.
        iterations: PBKDF2 rounds (defaults to ``KDF_ITERATIONS``).

    Returns:
        32-byte derived key.
    """
    if not secret:
        raise CryptoError("An encryption secret is required")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=_check_iterations(iterations or KDF_ITERATIONS),
    )
    return kdf.derive(secret.encode("utf-8"))


# ---------------------------------------------------------------------------
# Cipher adapter
# ---------------------------------------------------------------------------

class PackageCipher:
    """Encrypts and decrypts payloads under a single encryption secret.

    One instance is used per export: the salt is drawn once, so the (slow)
    key derivation runs once for the whole package. Decryption reads salt,
    iterations and scheme from each ciphertext header and caches derived
    keys per ``(salt, iterations)``.
    """

    def __init__(
        self,
        secret: str,
        scheme: str = DEFAULT_SCHEME,
        iterations: Optional[int] = None,
        salt: Optional[bytes] = None,
    ):
        if not secret:
            raise CryptoError("An encryption secret is required")
        resolve_scheme(scheme)
        self._secret = secret
        self.scheme = scheme
        self.iterations = _check_iterations(iterations or KDF_ITERATIONS)
        self._salt = salt or os.urandom(SALT_SIZE)
        if len(self._salt) != SALT_SIZE:
            raise CryptoError(f"salt must be {SALT_SIZE} bytes")
        self._keys: dict[tuple[bytes, int], bytes] = {}

    def _key(self, salt: bytes, iterations: int) -> bytes:
        cache_key = (salt, iterations)
        if cache_key not in self._keys:
            self._keys[cache_key] = derive_key(self._secret, salt, iterations)
        return self._keys[cache_key]

    def encrypt(self, plaintext: bytes) -> bytes:
        """Encrypt ``plaintext`` into a self-describing ciphertext."""
        scheme_id, cipher_cls = resolve_scheme(self.scheme)
        header = _HEADER.pack(scheme_id, self.iterations) + self._salt
        cipher = cipher_cls(self._key(self._salt, self.iterations))
        nonce = os.urandom(NONCE_SIZE)
        ct = cipher.encrypt(nonce, plaintext, header)
        return header + nonce + ct

    def decrypt(self, ciphertext: bytes) -> bytes:
        """Decrypt a ciphertext produced by :meth:`encrypt`.

        Raises:
            CryptoError: On truncated input, unknown scheme, out of range
                iteration count, wrong secret or tampered data.
        """
        _min = HEADER_SIZE + NONCE_SIZE + TAG_SIZE
        if len(ciphertext) < _min:
            raise CryptoError(
                f"ciphertext too short: {len(ciphertext)} bytes "
                f"(minimum {_min})"
            )
        scheme = scheme_of(ciphertext)
        _, cipher_cls = resolve_scheme(scheme)
        _, iterations = _HEADER.unpack_from(ciphertext)
        _check_iterations(iterations)
        header = ciphertext[:HEADER_SIZE]
        salt = header[_HEADER.size:]
        nonce = ciphertext[HEADER_SIZE:HEADER_SIZE + NONCE_SIZE]
        ct = ciphertext[HEADER_SIZE + NONCE_SIZE:]
        cipher = cipher_cls(self._key(salt, iterations))
        try:
            return cipher.decrypt(nonce, ct, header)
        except InvalidTag as err:
            raise CryptoError(
                "Decryption failed: wrong secret or corrupted data"
            ) from err


def encrypt_bytes(
    plaintext: bytes,
    secret: str,
    *,
    scheme: str = DEFAULT_SCHEME,
    iterations: Optional[int] = None,
) -> bytes:
    """Encrypt ``plaintext`` with a key derived from ``secret``.

    Args:
        plaintext: Data to encrypt.
        secret: Encryption secret.
        scheme: Cipher scheme name (see ``SCHEMES``).
        iterations: PBKDF2 rounds (defaults to ``KDF_ITERATIONS``).

    Returns:
        Self-describing ciphertext bytes.
    """
    return PackageCipher(secret, scheme=scheme, iterations=iterations).encrypt(plaintext)


def decrypt_bytes(ciphertext: bytes, secret: str) -> bytes:
    """Decrypt ciphertext produced by :func:`encrypt_bytes`.

    Raises:
        CryptoError: If the data was not produced with this secret or was
            modified.
    """
    return PackageCipher(secret).decrypt(ciphertext)


def generate_secret(nbytes: int = 32) -> str:
    """Generate a random URL-safe encryption secret for operators."""
    return secrets.token_urlsafe(nbytes)
