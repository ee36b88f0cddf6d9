"""
Package: one pass plus its assets, written to or read from a .pkpass archive.
"""

import logging
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional

from cryptography import x509

from .assets import (
    STRINGS_FILE,
    ImageKind,
    decode_strings,
    encode_strings,
    image_name,
    localized,
    validate_asset_name,
)
from .manifest import AssetSource, Manifest, read_bytes
from .models import Pass
from .reader import Source, read_archive
from .signer import SignatureEngine, SigningMaterial
from .writer import Sink, build_archive, write_archive

logger = logging.getLogger(__name__)


class Package:
    """An assembled pass: the Pass model and the files shipped with it.

    After ``write()`` or ``read()`` the manifest and signature of the archive
    are available as ``manifest`` and ``signature``.
    """

    def __init__(self, pass_obj: Pass, assets: Optional[Mapping[str, AssetSource]] = None):
        self.pass_obj = pass_obj
        self._assets: Dict[str, AssetSource] = {}
        self.manifest: Optional[Manifest] = None
        self.signature: Optional[bytes] = None
        self.signer_cert: Optional[x509.Certificate] = None
        for name, data in (assets or {}).items():
            self.add_asset(name, data)

    def __repr__(self):
        return f"Package(serial_number={self.pass_obj.serial_number!r}, assets={sorted(self._assets)!r})"

    def __eq__(self, other):
        if not isinstance(other, Package):
            return NotImplemented
        return self.pass_obj == other.pass_obj and dict(self._assets) == dict(other._assets)

    @property
    def assets(self) -> Mapping[str, AssetSource]:
        return MappingProxyType(self._assets)

    def add_asset(self, name: str, data: AssetSource) -> None:
        """Add or replace a file under its archive-relative name.

        File objects are read right away, so every later write ships the same
        bytes. Paths are read each time the package is written.
        """
        validate_asset_name(name)
        if hasattr(data, "read"):
            data = read_bytes(name, data)
        if name in self._assets:
            logger.debug(f"Replacing asset {name}")
        self._assets[name] = data

    def remove_asset(self, name: str) -> None:
        del self._assets[name]

    def add_image(self, kind: ImageKind, data: AssetSource, scale: int = 1,
                  locale: Optional[str] = None) -> str:
        name = image_name(kind, scale, locale)
        self.add_asset(name, data)
        return name

    def add_localization(self, locale: str, strings: Mapping[str, str]) -> str:
        """Store a pass.strings table for ``locale`` (``en``, ``pt-BR``, ...)"""
        name = localized(STRINGS_FILE, locale)
        self.add_asset(name, encode_strings(strings))
        return name

    def localizations(self) -> Dict[str, Dict[str, str]]:
        """Decoded pass.strings tables keyed by locale (byte assets only)"""
        tables = {}
        suffix = f".lproj/{STRINGS_FILE}"
        for name, data in self._assets.items():
            if name.endswith(suffix) and isinstance(data, (bytes, bytearray)):
                tables[name[:-len(suffix)]] = decode_strings(bytes(data))
        return tables

    def to_bytes(self, signer_cert: x509.Certificate, signer_key, intermediate_cert: x509.Certificate,
                 require_icon: bool = False, include_signing_time: bool = False) -> bytes:
        """Build the signed archive in memory and return its bytes"""
        written = build_archive(self.pass_obj, self._assets, signer_cert, signer_key, intermediate_cert,
                                require_icon=require_icon,
                                engine=SignatureEngine(include_signing_time=include_signing_time))
        self.manifest = written.manifest
        self.signature = written.signature
        return written.data

    def write(self, sink: Sink, signer_cert: x509.Certificate, signer_key,
              intermediate_cert: x509.Certificate, require_icon: bool = False,
              include_signing_time: bool = False) -> None:
        """Sign the package and write the archive to a path or binary file object.

        Raises a PackagingError subclass on failure; the sink should then be
        discarded by the caller.
        """
        written = write_archive(sink, self.pass_obj, self._assets, signer_cert, signer_key,
                                intermediate_cert, require_icon=require_icon,
                                engine=SignatureEngine(include_signing_time=include_signing_time))
        self.manifest = written.manifest
        self.signature = written.signature

    def write_with(self, sink: Sink, material: SigningMaterial, **kwargs) -> None:
        self.write(sink, material.signer_cert, material.signer_key, material.intermediate_cert, **kwargs)

    @classmethod
    def read(cls, source: Source, trust_roots: Optional[Iterable[x509.Certificate]] = None) -> "Package":
        """Read and verify an archive.

        Raises an UnpackingError subclass; no Package is returned for an
        archive that fails verification.
        """
        result = read_archive(source, trust_roots)
        package = cls(result.pass_obj, result.assets)
        package.manifest = result.manifest
        package.signature = result.signature
        package.signer_cert = result.signer_cert
        return package
