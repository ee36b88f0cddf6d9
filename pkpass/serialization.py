"""
Canonical JSON and date helpers shared by pass.json and manifest.json.
"""

import json
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

_CAMEL_BOUNDARY = re.compile(r"_([a-z0-9])")


def canonical_json(data: Any) -> bytes:
    """Serialize to UTF-8 JSON with sorted keys and no incidental whitespace.

    Identical logical input always yields identical bytes, which keeps the
    manifest digests and the signature reproducible.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def camel_case(name: str) -> str:
    """Convert a snake_case attribute name to the pass.json camelCase key"""
    return _CAMEL_BOUNDARY.sub(lambda m: m.group(1).upper(), name)


def format_date(value: datetime) -> str:
    """W3C / ISO 8601 timestamp, the form wallet apps expect"""
    return value.isoformat()


def parse_date(value: str) -> datetime:
    """Parse a pass.json date.

    Accepts ISO 8601 (with ``Z`` or an offset), RFC 2822, and naive ISO
    timestamps which are taken as UTC. Raises ValueError otherwise.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date value: {value!r}")
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            raise ValueError(f"Invalid date value: {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.tzinfo.utcoffset(value) is not None
