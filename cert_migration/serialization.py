"""
Wire format for migration packages.

A package is exchanged as a JSON document::

    {"formatVersion": 1, "description": ..., "sourceName": ...,
     "exportedAt": ..., "content": {"certificates": [...],
     "certificateFiles": [...], "credentials": [...], "authorities": [...]}}

``certificateFiles[].cipherBytes`` is base64 so bytes round-trip exactly.
"""
import logging
from typing import Any, Union
from collections.abc import Mapping

import orjson
from pydantic import ValidationError

from .conf import SUPPORTED_FORMAT_VERSIONS
from .exceptions import FormatError
from .models import MigrationPackage

logger = logging.getLogger("cert_migration.serialization")

PackageSource = Union[MigrationPackage, Mapping[str, Any], bytes, str]


def check_format_version(version: Any) -> int:
    """Return ``version`` if this library can decode it.

    Raises:
        FormatError: If the version is missing, not an integer, or unsupported.
    """
    if version is None:
        raise FormatError("Package has no formatVersion")
    if isinstance(version, bool) or not isinstance(version, int):
        raise FormatError(f"Invalid formatVersion: {version!r}")
    if version not in SUPPORTED_FORMAT_VERSIONS:
        raise FormatError(
            f"Unsupported package formatVersion {version} "
            f"(supported: {sorted(SUPPORTED_FORMAT_VERSIONS)})"
        )
    return version


def dumps_package(package: MigrationPackage) -> bytes:
    """Serialize a package to JSON bytes."""
    return orjson.dumps(package.model_dump(mode="json", by_alias=True))


def loads_package(data: PackageSource) -> MigrationPackage:
    """Decode and validate a package.

    Args:
        data: Serialized JSON (bytes or str), an already parsed mapping, or
            a ``MigrationPackage``.

    Raises:
        FormatError: If the document is malformed or its format version
            is not supported.
    """
    if isinstance(data, MigrationPackage):
        check_format_version(data.format_version)
        return data
    if isinstance(data, (bytes, bytearray, memoryview, str)):
        try:
            data = orjson.loads(data)
        except orjson.JSONDecodeError as err:
            raise FormatError(f"Package is not valid JSON: {err}") from err
    if not isinstance(data, Mapping):
        raise FormatError(
            f"Package must be a JSON object, got {type(data).__name__}"
        )
    check_format_version(data.get("formatVersion", data.get("format_version")))
    try:
        package = MigrationPackage.model_validate(dict(data))
    except ValidationError as err:
        raise FormatError(f"Malformed package: {err}") from err
    logger.debug(
        "Decoded package from source=%s exported=%s",
        package.source_name, package.exported_at,
    )
    return package
