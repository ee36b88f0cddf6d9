"""
Deterministic .pkpass archive assembly.

Entry order is fixed (pass.json, manifest.json, signature, then assets sorted
by name) and every entry gets the same timestamp and permissions, so identical
input produces byte-identical archives.
"""

import logging
import os
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Dict, Mapping, Optional, Union
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

from cryptography import x509

from .assets import MANIFEST_JSON, PASS_JSON, SIGNATURE, ImageKind, image_name, validate_asset_name
from .exceptions import MissingAssetError, PassSerializationError, SinkWriteError
from .manifest import AssetSource, Manifest, generate, read_bytes
from .models import Pass
from .signer import SignatureEngine

logger = logging.getLogger(__name__)

# Earliest timestamp a ZIP entry can carry
FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
UNIX_SYSTEM = 3
ENTRY_PERMISSIONS = 0o644

Sink = Union[str, os.PathLike, BinaryIO]


@dataclass(frozen=True)
class WrittenArchive:
    data: bytes
    manifest: Manifest
    signature: bytes


def _zip_entry(name: str) -> ZipInfo:
    info = ZipInfo(name, date_time=FIXED_DATE_TIME)
    info.compress_type = ZIP_DEFLATED
    info.create_system = UNIX_SYSTEM
    info.external_attr = ENTRY_PERMISSIONS << 16
    return info


def build_archive(pass_obj: Pass, assets: Mapping[str, AssetSource],
                  signer_cert: x509.Certificate, signer_key, intermediate_cert: x509.Certificate,
                  require_icon: bool = False, engine: Optional[SignatureEngine] = None) -> WrittenArchive:
    """Serialize, hash, sign and zip a pass in memory"""
    for name in assets:
        validate_asset_name(name)

    try:
        pass_bytes = pass_obj.to_json_bytes()
    except (TypeError, ValueError) as e:
        logger.error(f"Could not serialize pass {pass_obj.serial_number}: {e}")
        raise PassSerializationError(f"Could not serialize pass.json: {e}") from e
    contents: Dict[str, bytes] = {name: read_bytes(name, assets[name]) for name in sorted(assets)}

    icon = image_name(ImageKind.ICON)
    if icon not in contents:
        if require_icon:
            raise MissingAssetError(f"{icon} is required but not part of the package")
        logger.warning(f"Pass {pass_obj.serial_number} has no {icon}; wallet apps may refuse it")

    manifest = generate({PASS_JSON: pass_bytes, **contents})
    manifest_bytes = manifest.to_json_bytes()
    signature = (engine or SignatureEngine()).sign(
        manifest_bytes, signer_cert, signer_key, intermediate_cert
    )

    buffer = BytesIO()
    with ZipFile(buffer, "w") as archive:
        archive.writestr(_zip_entry(PASS_JSON), pass_bytes)
        archive.writestr(_zip_entry(MANIFEST_JSON), manifest_bytes)
        archive.writestr(_zip_entry(SIGNATURE), signature)
        for name, data in contents.items():
            archive.writestr(_zip_entry(name), data)

    return WrittenArchive(data=buffer.getvalue(), manifest=manifest, signature=signature)


def write_sink(sink: Sink, data: bytes) -> None:
    """Write ``data`` to a path or binary file object in one call"""
    try:
        if isinstance(sink, (str, os.PathLike)):
            Path(sink).write_bytes(data)
        else:
            sink.write(data)
    except (OSError, TypeError) as e:
        logger.error(f"Could not write archive: {e}")
        raise SinkWriteError(f"Could not write archive: {e}") from e


def write_archive(sink: Sink, pass_obj: Pass, assets: Mapping[str, AssetSource],
                  signer_cert: x509.Certificate, signer_key, intermediate_cert: x509.Certificate,
                  require_icon: bool = False, engine: Optional[SignatureEngine] = None) -> WrittenArchive:
    written = build_archive(pass_obj, assets, signer_cert, signer_key, intermediate_cert,
                            require_icon=require_icon, engine=engine)
    write_sink(sink, written.data)
    logger.info(f"Wrote pass {pass_obj.serial_number} ({len(written.data)} bytes, "
                f"{len(written.manifest)} manifest entries)")
    return written
