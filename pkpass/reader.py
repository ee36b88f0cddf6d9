"""
Verifying .pkpass reader.

Archives are untrusted input. The manifest is recomputed and compared before
the signature is checked, and pass.json is only deserialized once both checks
pass; nothing is returned for an archive that fails any step.
"""

import logging
import os
import zlib
from collections import Counter
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, Optional, Union
from zipfile import BadZipFile, LargeZipFile, ZipFile

from cryptography import x509

from .assets import MANIFEST_JSON, PASS_JSON, RESERVED_NAMES, SIGNATURE, validate_asset_name
from .exceptions import (
    ArchiveFormatError,
    InvalidAssetNameError,
    ManifestMismatchError,
    ValidationError,
)
from .manifest import Manifest, generate
from .models import Pass
from .verifier import verify

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, str, os.PathLike, BinaryIO]


@dataclass(frozen=True)
class ReadArchive:
    pass_obj: Pass
    assets: Dict[str, bytes]
    manifest: Manifest
    signature: bytes
    signer_cert: x509.Certificate


def _format_error(message: str) -> ArchiveFormatError:
    logger.error(f"Rejected archive: {message}")
    return ArchiveFormatError(message)


def _source_bytes(source: Source) -> bytes:
    try:
        if isinstance(source, (bytes, bytearray)):
            return bytes(source)
        if isinstance(source, (str, os.PathLike)):
            return Path(source).read_bytes()
        data = source.read()
    except OSError as e:
        raise _format_error(f"could not read archive: {e}") from e
    if not isinstance(data, bytes):
        raise _format_error("archive source must be opened in binary mode")
    return data


def _extract_entries(data: bytes) -> Dict[str, bytes]:
    try:
        with ZipFile(BytesIO(data)) as archive:
            infos = [info for info in archive.infolist() if not info.is_dir()]

            duplicates = sorted(name for name, count in Counter(i.filename for i in infos).items() if count > 1)
            if duplicates:
                raise _format_error(f"duplicate entries: {', '.join(duplicates)}")

            for info in infos:
                if info.filename in RESERVED_NAMES:
                    continue
                try:
                    validate_asset_name(info.filename)
                except InvalidAssetNameError as e:
                    raise _format_error(f"unsafe entry name: {e}") from e

            return {info.filename: archive.read(info) for info in infos}
    except (BadZipFile, LargeZipFile, zlib.error, ValueError, EOFError) as e:
        raise _format_error(f"corrupt archive: {e}") from e


def read_archive(source: Source, trust_roots: Optional[Iterable[x509.Certificate]] = None) -> ReadArchive:
    """Parse and verify an archive.

    Raises ArchiveFormatError, ManifestMismatchError or SignatureInvalidError.
    """
    entries = _extract_entries(_source_bytes(source))

    missing = [name for name in RESERVED_NAMES if name not in entries]
    if missing:
        raise _format_error(f"missing required entries: {', '.join(missing)}")

    manifest_bytes = entries[MANIFEST_JSON]
    signature = entries[SIGNATURE]
    try:
        embedded = Manifest.from_json_bytes(manifest_bytes)
    except (UnicodeDecodeError, ValueError) as e:
        raise _format_error(f"manifest.json is malformed: {e}") from e

    covered = {name: data for name, data in entries.items() if name not in (MANIFEST_JSON, SIGNATURE)}
    recomputed = generate(covered)
    differences = embedded.differences(recomputed)
    if differences:
        logger.error(f"Manifest mismatch in archive: {'; '.join(differences)}")
        raise ManifestMismatchError(differences)

    signer_cert = verify(manifest_bytes, signature, trust_roots)

    try:
        pass_obj = Pass.from_json_bytes(entries[PASS_JSON])
    except (ValidationError, TypeError, KeyError, AttributeError) as e:
        raise _format_error(f"pass.json is invalid: {e}") from e

    assets = {name: data for name, data in sorted(covered.items()) if name != PASS_JSON}
    logger.info(f"Verified pass {pass_obj.serial_number} signed by {signer_cert.subject.rfc4514_string()}")
    return ReadArchive(
        pass_obj=pass_obj,
        assets=assets,
        manifest=embedded,
        signature=signature,
        signer_cert=signer_cert,
    )
