"""
manifest.json generation: a SHA-1 digest for every file in a pass archive.

Each file is hashed independently on a worker thread; the results are
combined by name so completion order never affects the output.
"""

import hashlib
import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from types import MappingProxyType
from typing import BinaryIO, Dict, Iterator, Mapping, Optional, Union

from .exceptions import AssetReadError
from .serialization import canonical_json

logger = logging.getLogger(__name__)

AssetSource = Union[bytes, bytearray, memoryview, str, os.PathLike, BinaryIO]

_READ_CHUNK = 64 * 1024


class Manifest(Mapping):
    """Immutable mapping of archive-relative file name to lowercase hex SHA-1"""

    def __init__(self, digests: Mapping[str, str]):
        self._digests = MappingProxyType(dict(sorted(digests.items())))

    def __getitem__(self, name: str) -> str:
        return self._digests[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._digests)

    def __len__(self) -> int:
        return len(self._digests)

    def __eq__(self, other) -> bool:
        if isinstance(other, Manifest):
            return dict(self._digests) == dict(other._digests)
        if isinstance(other, Mapping):
            return dict(self._digests) == dict(other)
        return NotImplemented

    def __hash__(self):
        return hash(tuple(self._digests.items()))

    def __repr__(self) -> str:
        return f"Manifest({dict(self._digests)!r})"

    def to_json_bytes(self) -> bytes:
        """Canonical manifest.json bytes (sorted keys, no whitespace)"""
        return canonical_json(dict(self._digests))

    def differences(self, other: Mapping[str, str]) -> list:
        """Describe every entry that is missing, extra or different in ``other``"""
        problems = []
        for name in sorted(set(self) | set(other)):
            if name not in other:
                problems.append(f"'{name}' is listed in the manifest but missing from the archive")
            elif name not in self:
                problems.append(f"'{name}' is in the archive but not listed in the manifest")
            elif self[name] != other[name]:
                problems.append(f"digest mismatch for '{name}'")
        return problems

    @classmethod
    def from_json_bytes(cls, payload: bytes) -> "Manifest":
        data = json.loads(payload.decode("utf-8"))
        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise ValueError("manifest.json must map file names to digest strings")
        return cls({name: digest.lower() for name, digest in data.items()})


def sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def _digest_source(name: str, source: AssetSource) -> str:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return sha1_hex(bytes(source))

    digest = hashlib.sha1()
    try:
        if isinstance(source, (str, os.PathLike)):
            with open(Path(source), "rb") as f:
                for chunk in iter(lambda: f.read(_READ_CHUNK), b""):
                    digest.update(chunk)
        elif hasattr(source, "read"):
            for chunk in iter(lambda: source.read(_READ_CHUNK), b""):
                if not isinstance(chunk, bytes):
                    raise AssetReadError(name, "file object must be opened in binary mode")
                digest.update(chunk)
        else:
            raise AssetReadError(name, f"unsupported source type {type(source).__name__}")
    except OSError as e:
        raise AssetReadError(name, str(e)) from e
    return digest.hexdigest()


def generate(files: Mapping[str, AssetSource], max_workers: Optional[int] = None) -> Manifest:
    """Hash every file in ``files`` and return the Manifest.

    Raises AssetReadError naming the first unreadable file (by name order);
    no manifest is produced in that case.
    """
    names = sorted(files)
    if not names:
        return Manifest({})

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {name: executor.submit(_digest_source, name, files[name]) for name in names}

    digests: Dict[str, str] = {}
    for name in names:
        try:
            digests[name] = futures[name].result()
        except AssetReadError as e:
            logger.error(f"Manifest generation aborted: {e}")
            raise

    logger.debug(f"Hashed {len(digests)} files for manifest")
    return Manifest(digests)


def read_bytes(name: str, source: AssetSource) -> bytes:
    """Materialize an asset source as bytes (used by the archive writer)"""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    try:
        if isinstance(source, (str, os.PathLike)):
            return Path(source).read_bytes()
        if hasattr(source, "read"):
            data = source.read()
            if not isinstance(data, bytes):
                raise AssetReadError(name, "file object must be opened in binary mode")
            return data
    except OSError as e:
        raise AssetReadError(name, str(e)) from e
    raise AssetReadError(name, f"unsupported source type {type(source).__name__}")
