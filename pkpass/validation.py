"""
Invariant checks for Pass instances.

Every check appends to a list instead of raising so callers get the complete
set of problems in one go. Values are type-checked before they are compared,
so a wrongly typed attribute is reported like any other violation.
"""

import codecs
import json
import math
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .models import (
    FORMAT_VERSION,
    NFC,
    STYLE_CLASSES,
    Barcode,
    BarcodeFormat,
    Beacon,
    BoardingPass,
    Color,
    CurrencyAmount,
    DataDetectorType,
    DateStyle,
    EventTicket,
    Field,
    Location,
    NumberStyle,
    PassStyle,
    TextAlignment,
    TransitType,
)
from .semantic_tags import SemanticTags
from .serialization import is_aware

REQUIRED_ATTRIBUTES = (
    "pass_type_identifier",
    "serial_number",
    "team_identifier",
    "organization_name",
    "description",
)

OPTIONAL_STRINGS = (
    "app_launch_url",
    "web_service_url",
    "authentication_token",
    "grouping_identifier",
    "logo_text",
)

BARCODE_ENCODINGS: Dict[BarcodeFormat, Tuple[str, ...]] = {
    BarcodeFormat.QR: ("iso-8859-1", "utf-8", "utf-16", "shift_jis"),
    BarcodeFormat.PDF417: ("iso-8859-1", "utf-8"),
    BarcodeFormat.AZTEC: ("iso-8859-1", "utf-8"),
    BarcodeFormat.CODE128: ("iso-8859-1", "us-ascii"),
}

MAX_LOCATIONS = 10
MAX_BEACONS = 10
MIN_AUTHENTICATION_TOKEN_LENGTH = 16
MAX_NFC_MESSAGE_BYTES = 64

# Styles that may carry a grouping identifier
GROUPABLE_STYLES = (BoardingPass, EventTicket)

# Field attributes that must hold a given type when set
_FIELD_STRINGS = ("label", "attributed_value", "change_message")
_FIELD_FLAGS = ("ignores_time_zone", "is_relative")
_FIELD_ENUMS = (
    ("date_style", DateStyle),
    ("time_style", DateStyle),
    ("number_style", NumberStyle),
    ("text_alignment", TextAlignment),
)


def is_number(value) -> bool:
    """True for finite ints and floats (booleans excluded)"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def is_integer(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def value_problem(value) -> Optional[str]:
    """Return a description of why ``value`` cannot be a field value, or None"""
    if isinstance(value, bool):
        return "field value must not be a boolean"
    if isinstance(value, str):
        return None
    if isinstance(value, (int, float)):
        if not is_number(value):
            return "field value must be a finite number"
        return None
    if isinstance(value, datetime):
        if not is_aware(value):
            return "date field value must be timezone-aware"
        return None
    if isinstance(value, CurrencyAmount):
        if not is_number(value.amount):
            return "currency amount must be a finite number"
        if not isinstance(value.currency_code, str) or len(value.currency_code) != 3:
            return "currency code must be a three-letter ISO 4217 code"
        return None
    return f"unsupported field value type {type(value).__name__}"


def field_problems(item: Field, group: str) -> List[str]:
    if not isinstance(item, Field):
        return [f"{group} fields must contain Field objects, got {type(item).__name__}"]

    where = f"{group} field '{item.key}'"
    problems = []
    if not isinstance(item.key, str) or not item.key:
        problems.append(f"{group} field has an empty key")
    problem = value_problem(item.value)
    if problem:
        problems.append(f"{where}: {problem}")

    for name, enum_cls in _FIELD_ENUMS:
        value = getattr(item, name)
        if value is not None and not isinstance(value, enum_cls):
            problems.append(f"{where}: {name} must be a {enum_cls.__name__}")
    for name in _FIELD_STRINGS:
        value = getattr(item, name)
        if value is not None and not isinstance(value, str):
            problems.append(f"{where}: {name} must be a string")
    for name in _FIELD_FLAGS:
        value = getattr(item, name)
        if value is not None and not isinstance(value, bool):
            problems.append(f"{where}: {name} must be a boolean")
    if item.data_detector_types is not None and (
        not isinstance(item.data_detector_types, list)
        or not all(isinstance(d, DataDetectorType) for d in item.data_detector_types)
    ):
        problems.append(f"{where}: data_detector_types must be a list of DataDetectorType")

    has_style = item.date_style is not None or item.time_style is not None
    if isinstance(item.value, datetime) and not has_style:
        problems.append(f"{where}: date values need a date_style or time_style")
    if has_style and not isinstance(item.value, datetime):
        # pass.json cannot tell a styled string from a date
        problems.append(f"{where}: date_style and time_style require a date value")
    if item.text_alignment is not None and group in ("primary", "back"):
        problems.append(f"{where}: text_alignment is not allowed on {group} fields")
    if item.row is not None:
        if group != "auxiliary":
            problems.append(f"{where}: row is only allowed on auxiliary fields")
        elif item.row not in (0, 1) or isinstance(item.row, bool):
            problems.append(f"{where}: row must be 0 or 1")
    if item.semantics is not None:
        if isinstance(item.semantics, SemanticTags):
            problems.extend(f"{where}: {p}" for p in item.semantics.problems())
        else:
            problems.append(f"{where}: semantics must be SemanticTags")
    return problems


def barcode_problems(barcode: Barcode, position: int) -> List[str]:
    if not isinstance(barcode, Barcode):
        return [f"barcodes[{position}] must be a Barcode"]

    where = f"barcodes[{position}]"
    if not isinstance(barcode.format, BarcodeFormat):
        return [f"{where}: unknown barcode format {barcode.format!r}"]
    if not isinstance(barcode.message_encoding, str):
        return [f"{where}: message_encoding must be a string"]
    allowed = BARCODE_ENCODINGS[barcode.format]

    encoding = barcode.message_encoding.lower()
    if encoding not in allowed:
        return [
            f"{where}: encoding '{barcode.message_encoding}' is not supported for "
            f"{barcode.format.name} (allowed: {', '.join(allowed)})"
        ]
    problems = []
    if not isinstance(barcode.message, str) or not barcode.message:
        problems.append(f"{where}: message must be a non-empty string")
    else:
        try:
            barcode.message.encode(codecs.lookup(encoding).name)
        except UnicodeEncodeError:
            problems.append(f"{where}: message cannot be encoded as {encoding}")
    if barcode.alt_text is not None and not isinstance(barcode.alt_text, str):
        problems.append(f"{where}: alt_text must be a string")
    return problems


def location_problems(location: Location, position: int) -> List[str]:
    if not isinstance(location, Location):
        return [f"locations[{position}] must be a Location"]
    where = f"locations[{position}]"
    problems = []
    if not is_number(location.latitude):
        problems.append(f"{where}: latitude must be a finite number")
    elif not -90 <= location.latitude <= 90:
        problems.append(f"{where}: latitude {location.latitude} out of range")
    if not is_number(location.longitude):
        problems.append(f"{where}: longitude must be a finite number")
    elif not -180 <= location.longitude <= 180:
        problems.append(f"{where}: longitude {location.longitude} out of range")
    if location.altitude is not None and not is_number(location.altitude):
        problems.append(f"{where}: altitude must be a finite number")
    if location.relevant_text is not None and not isinstance(location.relevant_text, str):
        problems.append(f"{where}: relevant_text must be a string")
    return problems


def beacon_problems(beacon: Beacon, position: int) -> List[str]:
    if not isinstance(beacon, Beacon):
        return [f"beacons[{position}] must be a Beacon"]
    where = f"beacons[{position}]"
    problems = []
    if not isinstance(beacon.proximity_uuid, str) or not beacon.proximity_uuid:
        problems.append(f"{where}: proximity_uuid is required")
    for name in ("major", "minor"):
        value = getattr(beacon, name)
        if value is not None and not (is_integer(value) and 0 <= value <= 65535):
            problems.append(f"{where}: {name} must be a 16-bit unsigned integer")
    if beacon.relevant_text is not None and not isinstance(beacon.relevant_text, str):
        problems.append(f"{where}: relevant_text must be a string")
    return problems


def nfc_problems(nfc: NFC) -> List[str]:
    if not isinstance(nfc, NFC):
        return ["nfc must be an NFC object"]
    problems = []
    if not isinstance(nfc.message, str):
        problems.append("nfc message must be a string")
    elif len(nfc.message.encode("utf-8")) > MAX_NFC_MESSAGE_BYTES:
        problems.append(f"nfc message must be at most {MAX_NFC_MESSAGE_BYTES} bytes")
    if not isinstance(nfc.encryption_public_key, str) or not nfc.encryption_public_key:
        problems.append("nfc encryption_public_key is required")
    if not isinstance(nfc.requires_authentication, bool):
        problems.append("nfc requires_authentication must be a boolean")
    return problems


def style_problems(style: PassStyle) -> List[str]:
    if style is None:
        return ["exactly one style variant is required, none attached"]
    if not isinstance(style, tuple(STYLE_CLASSES.values())):
        return [f"unsupported style variant {type(style).__name__}"]

    problems = []
    if isinstance(style, BoardingPass) and not isinstance(style.transit_type, TransitType):
        problems.append("boarding passes require a transit_type")

    seen: Dict[str, str] = {}
    for group, group_fields in style.groups().items():
        if not isinstance(group_fields, list):
            problems.append(f"{group} fields must be a list")
            continue
        for item in group_fields:
            problems.extend(field_problems(item, group))
            if not isinstance(item, Field) or not isinstance(item.key, str):
                continue
            if item.key in seen:
                problems.append(
                    f"duplicate field key '{item.key}' in {group} (already used in {seen[item.key]})"
                )
            else:
                seen[item.key] = group
    return problems


def user_info_problems(user_info) -> List[str]:
    if not isinstance(user_info, dict):
        return ["user_info must be a JSON object"]
    try:
        json.dumps(user_info, allow_nan=False)
    except (TypeError, ValueError) as e:
        return [f"user_info must hold only finite JSON values: {e}"]
    return []


def collect_pass_errors(pass_obj) -> List[str]:
    """Return every invariant violated by ``pass_obj`` (empty when valid)"""
    errors = []

    for name in REQUIRED_ATTRIBUTES:
        value = getattr(pass_obj, name)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"{name} is required")
    for name in OPTIONAL_STRINGS:
        value = getattr(pass_obj, name)
        if value is not None and not isinstance(value, str):
            errors.append(f"{name} must be a string")
    if pass_obj.format_version != FORMAT_VERSION:
        errors.append(f"format_version must be {FORMAT_VERSION}")

    errors.extend(style_problems(pass_obj.style))

    for position, barcode in enumerate(pass_obj.barcodes):
        errors.extend(barcode_problems(barcode, position))

    if len(pass_obj.locations) > MAX_LOCATIONS:
        errors.append(f"at most {MAX_LOCATIONS} locations are allowed")
    for position, location in enumerate(pass_obj.locations):
        errors.extend(location_problems(location, position))

    if len(pass_obj.beacons) > MAX_BEACONS:
        errors.append(f"at most {MAX_BEACONS} beacons are allowed")
    for position, beacon in enumerate(pass_obj.beacons):
        errors.extend(beacon_problems(beacon, position))

    if (pass_obj.web_service_url is None) != (pass_obj.authentication_token is None):
        errors.append("web_service_url and authentication_token must be set together")
    if isinstance(pass_obj.authentication_token, str) and \
            len(pass_obj.authentication_token) < MIN_AUTHENTICATION_TOKEN_LENGTH:
        errors.append(
            f"authentication_token must be at least {MIN_AUTHENTICATION_TOKEN_LENGTH} characters"
        )

    for name in ("relevant_date", "expiration_date"):
        value = getattr(pass_obj, name)
        if value is not None and (not isinstance(value, datetime) or not is_aware(value)):
            errors.append(f"{name} must be a timezone-aware datetime")

    for name in ("foreground_color", "background_color", "label_color"):
        value = getattr(pass_obj, name)
        if value is None:
            continue
        if not isinstance(value, Color):
            errors.append(f"{name} must be a Color or an 'rgb(r, g, b)' string")
        elif not all(is_integer(c) and 0 <= c <= 255 for c in (value.r, value.g, value.b)):
            errors.append(f"{name} components must be integers in 0-255")

    if pass_obj.grouping_identifier is not None and \
            not isinstance(pass_obj.style, GROUPABLE_STYLES):
        errors.append("grouping_identifier is only allowed on boarding passes and event tickets")

    if not all(is_integer(i) for i in pass_obj.associated_store_identifiers):
        errors.append("associated_store_identifiers must be integers")

    for name in ("voided", "sharing_prohibited"):
        if not isinstance(getattr(pass_obj, name), bool):
            errors.append(f"{name} must be a boolean")
    if pass_obj.suppress_strip_shine is not None and not isinstance(pass_obj.suppress_strip_shine, bool):
        errors.append("suppress_strip_shine must be a boolean")

    if pass_obj.max_distance is not None:
        if not is_number(pass_obj.max_distance):
            errors.append("max_distance must be a finite number")
        elif pass_obj.max_distance < 0:
            errors.append("max_distance must not be negative")

    if pass_obj.nfc is not None:
        errors.extend(nfc_problems(pass_obj.nfc))

    if pass_obj.user_info is not None:
        errors.extend(user_info_problems(pass_obj.user_info))

    return errors
