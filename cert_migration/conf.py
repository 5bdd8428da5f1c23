"""
Cert Migration settings read from the environment.

    MIGRATION_KDF_ITERATIONS = <int>   PBKDF2 rounds used for new packages
    MIGRATION_CIPHER_SCHEME = <name>   cipher scheme used for new packages
    MIGRATION_SOURCE_NAME = <str>      host identity stamped on exports
"""
import os
import socket

## Package format
FORMAT_VERSION = 1
SUPPORTED_FORMAT_VERSIONS = frozenset({1})
DEFAULT_DESCRIPTION = "Certificate Manager - Exported App Settings"

## Encryption
KDF_ITERATIONS = int(os.environ.get("MIGRATION_KDF_ITERATIONS", 600_000))
CIPHER_SCHEME = os.environ.get("MIGRATION_CIPHER_SCHEME", "Default")

## Provenance
SOURCE_NAME = os.environ.get("MIGRATION_SOURCE_NAME") or socket.gethostname()
