"""
Asset naming for pass archives: image kinds and scales, locale directories
and pass.strings localization tables.
"""

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Dict, Mapping, Optional

from .exceptions import InvalidAssetNameError

logger = logging.getLogger(__name__)

PASS_JSON = "pass.json"
MANIFEST_JSON = "manifest.json"
SIGNATURE = "signature"
RESERVED_NAMES = (PASS_JSON, MANIFEST_JSON, SIGNATURE)

STRINGS_FILE = "pass.strings"
SCALES = (1, 2, 3)

# Language tags like "en" or "pt-BR", plus Xcode's base localization
_LOCALE = re.compile(r"^(?:Base|[A-Za-z]{2,3}(?:[-_][A-Za-z0-9]{2,8})*)$")


class ImageKind(Enum):
    BACKGROUND = "background"
    FOOTER = "footer"
    ICON = "icon"
    LOGO = "logo"
    STRIP = "strip"
    THUMBNAIL = "thumbnail"


def locale_directory(locale: str) -> str:
    if not isinstance(locale, str) or not _LOCALE.match(locale):
        raise InvalidAssetNameError(f"{locale}.lproj", "invalid locale identifier")
    return f"{locale}.lproj"


def localized(name: str, locale: Optional[str] = None) -> str:
    if locale is None:
        return name
    return f"{locale_directory(locale)}/{name}"


def image_name(kind: ImageKind, scale: int = 1, locale: Optional[str] = None) -> str:
    """File name for an image, e.g. ``logo@2x.png`` or ``de.lproj/strip.png``"""
    if scale not in SCALES:
        raise InvalidAssetNameError(f"{kind.value}@{scale}x.png", "scale must be 1, 2 or 3")
    suffix = "" if scale == 1 else f"@{scale}x"
    return localized(f"{kind.value}{suffix}.png", locale)


def validate_asset_name(name: str) -> str:
    """Check that ``name`` can be stored in an archive and return it.

    Allowed shapes are ``file`` and ``<locale>.lproj/file``: relative, no
    hidden files, no reserved entry names.
    """
    if not isinstance(name, str) or not name:
        raise InvalidAssetNameError(str(name), "name must be a non-empty string")
    if "\\" in name or name.startswith("/"):
        raise InvalidAssetNameError(name, "name must be a relative POSIX path")

    parts = name.split("/")
    if len(parts) > 2 or any(not part for part in parts):
        raise InvalidAssetNameError(name, "expected 'file' or '<locale>.lproj/file'")
    if any(part in (".", "..") or part.startswith(".") for part in parts):
        raise InvalidAssetNameError(name, "hidden files and relative segments are not allowed")
    if len(parts) == 2:
        directory = parts[0]
        if not directory.endswith(".lproj") or not _LOCALE.match(directory[:-len(".lproj")]):
            raise InvalidAssetNameError(name, "only <locale>.lproj directories are allowed")
    elif name in RESERVED_NAMES:
        raise InvalidAssetNameError(name, "reserved archive entry")
    return name


def _escape(text: str) -> str:
    return (text.replace("\\", "\\\\").replace('"', '\\"')
            .replace("\n", "\\n").replace("\t", "\\t"))


_STRINGS_LINE = re.compile(r'^\s*"((?:[^"\\]|\\.)*)"\s*=\s*"((?:[^"\\]|\\.)*)"\s*;\s*$')
_UNESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\"}


def _unescape(text: str) -> str:
    return re.sub(r"\\(.)", lambda m: _UNESCAPES.get(m.group(1), m.group(1)), text)


def encode_strings(strings: Mapping[str, str]) -> bytes:
    """Render a pass.strings table (UTF-8, one ``"key" = "value";`` per line)"""
    lines = [f'"{_escape(key)}" = "{_escape(value)}";' for key, value in sorted(strings.items())]
    return ("\n".join(lines) + "\n").encode("utf-8")


def decode_strings(data: bytes) -> Dict[str, str]:
    """Parse a pass.strings table written as UTF-8 or UTF-16 (with BOM)"""
    if data.startswith((b"\xff\xfe", b"\xfe\xff")):
        text = data.decode("utf-16")
    else:
        text = data.decode("utf-8-sig")
    text = re.sub(r"/\*.*?\*/", "", text, flags=re.DOTALL)

    strings = {}
    for line in text.splitlines():
        if not line.strip() or line.strip().startswith("//"):
            continue
        match = _STRINGS_LINE.match(line)
        if match is None:
            raise ValueError(f"Malformed pass.strings line: {line.strip()!r}")
        strings[_unescape(match.group(1))] = _unescape(match.group(2))
    return strings


def discover_assets(directory: Path) -> Dict[str, Path]:
    """Collect the asset files of an unpacked pass directory.

    Picks up top-level files and files inside ``*.lproj`` directories; skips
    hidden files and the reserved entries (pass.json, manifest.json, signature).
    """
    directory = Path(directory)
    assets: Dict[str, Path] = {}
    for path in sorted(directory.iterdir()):
        if path.name.startswith("."):
            continue
        if path.is_file():
            if path.name in RESERVED_NAMES:
                continue
            assets[validate_asset_name(path.name)] = path
        elif path.is_dir() and path.name.endswith(".lproj"):
            for item in sorted(path.iterdir()):
                if item.is_file() and not item.name.startswith("."):
                    assets[validate_asset_name(f"{path.name}/{item.name}")] = item
        else:
            logger.warning(f"Skipping {path}: not an asset file or .lproj directory")
    return assets
