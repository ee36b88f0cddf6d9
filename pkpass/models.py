"""
Data models for a single wallet pass (pass.json).

A Pass is either fully valid or it does not exist: every construction runs the
invariant checks in ``validation.py`` and raises ValidationError listing every
violation. Field values are mutated afterwards only through FieldIndex.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple, Type, Union

from .exceptions import ValidationError
from .semantic_tags import SemanticTags
from .serialization import camel_case, canonical_json, format_date, parse_date

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

# Display order of the field groups inside every style
FIELD_GROUPS = ("header", "primary", "secondary", "auxiliary", "back")


class BarcodeFormat(Enum):
    QR = "PKBarcodeFormatQR"
    PDF417 = "PKBarcodeFormatPDF417"
    AZTEC = "PKBarcodeFormatAztec"
    CODE128 = "PKBarcodeFormatCode128"


class TransitType(Enum):
    AIR = "PKTransitTypeAir"
    BOAT = "PKTransitTypeBoat"
    BUS = "PKTransitTypeBus"
    GENERIC = "PKTransitTypeGeneric"
    TRAIN = "PKTransitTypeTrain"


class DateStyle(Enum):
    NONE = "PKDateStyleNone"
    SHORT = "PKDateStyleShort"
    MEDIUM = "PKDateStyleMedium"
    LONG = "PKDateStyleLong"
    FULL = "PKDateStyleFull"


class NumberStyle(Enum):
    DECIMAL = "PKNumberStyleDecimal"
    PERCENT = "PKNumberStylePercent"
    SCIENTIFIC = "PKNumberStyleScientific"
    SPELL_OUT = "PKNumberStyleSpellOut"


class TextAlignment(Enum):
    LEFT = "PKTextAlignmentLeft"
    CENTER = "PKTextAlignmentCenter"
    RIGHT = "PKTextAlignmentRight"
    NATURAL = "PKTextAlignmentNatural"


class DataDetectorType(Enum):
    PHONE_NUMBER = "PKDataDetectorTypePhoneNumber"
    LINK = "PKDataDetectorTypeLink"
    ADDRESS = "PKDataDetectorTypeAddress"
    CALENDAR_EVENT = "PKDataDetectorTypeCalendarEvent"


_RGB_PATTERN = re.compile(r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*[\d.]+\s*)?\)$")
_HEX_PATTERN = re.compile(r"^#([0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class Color:
    """CSS-style RGB triple, serialized as ``rgb(r, g, b)``"""
    r: int
    g: int
    b: int

    def __str__(self) -> str:
        return f"rgb({self.r}, {self.g}, {self.b})"

    @classmethod
    def parse(cls, value: Union[str, "Color"]) -> "Color":
        """Parse ``rgb(r, g, b)`` or ``#rrggbb``"""
        if isinstance(value, Color):
            return value
        text = str(value).strip()
        match = _RGB_PATTERN.match(text)
        if match:
            return cls(*(int(part) for part in match.groups()))
        match = _HEX_PATTERN.match(text)
        if match:
            hex_value = match.group(1)
            return cls(int(hex_value[0:2], 16), int(hex_value[2:4], 16), int(hex_value[4:6], 16))
        raise ValueError(f"Invalid color value: {value!r}")


@dataclass(frozen=True)
class CurrencyAmount:
    """Field value holding a monetary amount with its ISO 4217 code"""
    amount: Union[int, float]
    currency_code: str


FieldValue = Union[str, int, float, datetime, CurrencyAmount]


@dataclass
class Field:
    """A single key/value shown in one of the field groups of a pass"""
    key: str
    value: FieldValue
    label: Optional[str] = None
    semantics: Optional[SemanticTags] = None
    date_style: Optional[DateStyle] = None
    time_style: Optional[DateStyle] = None
    number_style: Optional[NumberStyle] = None
    text_alignment: Optional[TextAlignment] = None
    row: Optional[int] = None
    attributed_value: Optional[str] = None
    change_message: Optional[str] = None
    data_detector_types: Optional[List[DataDetectorType]] = None
    ignores_time_zone: Optional[bool] = None
    is_relative: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"key": self.key}
        if isinstance(self.value, CurrencyAmount):
            data["value"] = self.value.amount
            data["currencyCode"] = self.value.currency_code
        elif isinstance(self.value, datetime):
            data["value"] = format_date(self.value)
        else:
            data["value"] = self.value
        for name in ("label", "row", "attributed_value", "change_message",
                     "ignores_time_zone", "is_relative"):
            value = getattr(self, name)
            if value is not None:
                data[camel_case(name)] = value
        for name in ("date_style", "time_style", "number_style", "text_alignment"):
            value = getattr(self, name)
            if value is not None:
                data[camel_case(name)] = value.value
        if self.data_detector_types is not None:
            data["dataDetectorTypes"] = [detector.value for detector in self.data_detector_types]
        if self.semantics is not None and not self.semantics.is_empty():
            data["semantics"] = self.semantics.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Field":
        raw = data["value"]
        if "currencyCode" in data:
            value: FieldValue = CurrencyAmount(amount=raw, currency_code=data["currencyCode"])
        elif isinstance(raw, str) and ("dateStyle" in data or "timeStyle" in data):
            try:
                value = parse_date(raw)
            except ValueError:
                value = raw
        else:
            value = raw

        semantics = None
        if data.get("semantics"):
            semantics = SemanticTags.from_dict(data["semantics"])

        detectors = None
        if "dataDetectorTypes" in data:
            detectors = [DataDetectorType(item) for item in data["dataDetectorTypes"]]

        return cls(
            key=data["key"],
            value=value,
            label=data.get("label"),
            semantics=semantics,
            date_style=_enum_or_none(DateStyle, data.get("dateStyle")),
            time_style=_enum_or_none(DateStyle, data.get("timeStyle")),
            number_style=_enum_or_none(NumberStyle, data.get("numberStyle")),
            text_alignment=_enum_or_none(TextAlignment, data.get("textAlignment")),
            row=data.get("row"),
            attributed_value=data.get("attributedValue"),
            change_message=data.get("changeMessage"),
            data_detector_types=detectors,
            ignores_time_zone=data.get("ignoresTimeZone"),
            is_relative=data.get("isRelative"),
        )


@dataclass
class Barcode:
    message: str
    format: BarcodeFormat = BarcodeFormat.QR
    message_encoding: str = "iso-8859-1"
    alt_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "format": self.format.value,
            "message": self.message,
            "messageEncoding": self.message_encoding,
        }
        if self.alt_text is not None:
            data["altText"] = self.alt_text
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Barcode":
        return cls(
            message=data["message"],
            format=BarcodeFormat(data["format"]),
            message_encoding=data["messageEncoding"],
            alt_text=data.get("altText"),
        )


@dataclass
class Location:
    latitude: float
    longitude: float
    altitude: Optional[float] = None
    relevant_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"latitude": self.latitude, "longitude": self.longitude}
        if self.altitude is not None:
            data["altitude"] = self.altitude
        if self.relevant_text is not None:
            data["relevantText"] = self.relevant_text
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Location":
        return cls(
            latitude=data["latitude"],
            longitude=data["longitude"],
            altitude=data.get("altitude"),
            relevant_text=data.get("relevantText"),
        )


@dataclass
class Beacon:
    """Bluetooth Low Energy beacon that makes the pass relevant"""
    proximity_uuid: str
    major: Optional[int] = None
    minor: Optional[int] = None
    relevant_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"proximityUUID": self.proximity_uuid}
        for name in ("major", "minor", "relevant_text"):
            value = getattr(self, name)
            if value is not None:
                data[camel_case(name)] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Beacon":
        return cls(
            proximity_uuid=data["proximityUUID"],
            major=data.get("major"),
            minor=data.get("minor"),
            relevant_text=data.get("relevantText"),
        )


@dataclass
class NFC:
    """Payload handed to an Apple Pay terminal (needs a special entitlement)"""
    message: str
    encryption_public_key: str
    requires_authentication: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "encryptionPublicKey": self.encryption_public_key,
            "requiresAuthentication": self.requires_authentication,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NFC":
        return cls(
            message=data["message"],
            encryption_public_key=data["encryptionPublicKey"],
            requires_authentication=data.get("requiresAuthentication", False),
        )


@dataclass
class PassStyle:
    """Base of the five mutually exclusive pass styles.

    Each style owns the same five ordered field groups; the order inside a
    group is the display order and is preserved through serialization.
    """
    style_key: ClassVar[str] = ""

    header_fields: List[Field] = field(default_factory=list)
    primary_fields: List[Field] = field(default_factory=list)
    secondary_fields: List[Field] = field(default_factory=list)
    auxiliary_fields: List[Field] = field(default_factory=list)
    back_fields: List[Field] = field(default_factory=list)

    def groups(self) -> Dict[str, List[Field]]:
        return {group: getattr(self, f"{group}_fields") for group in FIELD_GROUPS}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for group, group_fields in self.groups().items():
            if group_fields:
                data[f"{group}Fields"] = [f.to_dict() for f in group_fields]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PassStyle":
        kwargs = {
            f"{group}_fields": [Field.from_dict(item) for item in data.get(f"{group}Fields", [])]
            for group in FIELD_GROUPS
        }
        return cls(**kwargs)


@dataclass
class BoardingPass(PassStyle):
    style_key: ClassVar[str] = "boardingPass"

    transit_type: Optional[TransitType] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.transit_type is not None:
            data["transitType"] = self.transit_type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoardingPass":
        style = super().from_dict(data)
        style.transit_type = _enum_or_none(TransitType, data.get("transitType"))
        return style


@dataclass
class Coupon(PassStyle):
    style_key: ClassVar[str] = "coupon"


@dataclass
class EventTicket(PassStyle):
    style_key: ClassVar[str] = "eventTicket"


@dataclass
class Generic(PassStyle):
    style_key: ClassVar[str] = "generic"


@dataclass
class StoreCard(PassStyle):
    style_key: ClassVar[str] = "storeCard"


STYLE_CLASSES: Dict[str, Type[PassStyle]] = {
    cls.style_key: cls for cls in (BoardingPass, Coupon, EventTicket, Generic, StoreCard)
}

# Attribute name -> pass.json key where plain camelCase does not apply
_JSON_KEY_OVERRIDES = {
    "app_launch_url": "appLaunchURL",
    "web_service_url": "webServiceURL",
}

_SCALAR_ATTRIBUTES = (
    "pass_type_identifier", "serial_number", "team_identifier", "organization_name",
    "description", "max_distance", "app_launch_url", "web_service_url",
    "authentication_token", "grouping_identifier", "logo_text", "suppress_strip_shine",
)
_DATE_ATTRIBUTES = ("relevant_date", "expiration_date")
_COLOR_ATTRIBUTES = ("foreground_color", "background_color", "label_color")
_FLAG_ATTRIBUTES = ("voided", "sharing_prohibited")


def json_key(attribute: str) -> str:
    return _JSON_KEY_OVERRIDES.get(attribute, camel_case(attribute))


@dataclass
class Pass:
    """The root entity: one ticket, card, coupon or boarding pass"""
    pass_type_identifier: str
    serial_number: str
    team_identifier: str
    organization_name: str
    description: str
    style: Optional[PassStyle] = None
    format_version: int = FORMAT_VERSION

    barcodes: List[Barcode] = field(default_factory=list)
    locations: List[Location] = field(default_factory=list)
    beacons: List[Beacon] = field(default_factory=list)
    max_distance: Optional[float] = None
    relevant_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    voided: bool = False
    associated_store_identifiers: List[int] = field(default_factory=list)
    app_launch_url: Optional[str] = None
    web_service_url: Optional[str] = None
    authentication_token: Optional[str] = None
    foreground_color: Optional[Color] = None
    background_color: Optional[Color] = None
    label_color: Optional[Color] = None
    grouping_identifier: Optional[str] = None
    logo_text: Optional[str] = None
    sharing_prohibited: bool = False
    suppress_strip_shine: Optional[bool] = None
    nfc: Optional[NFC] = None
    user_info: Optional[Dict[str, Any]] = None

    _field_index: Any = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        # Import here to avoid circular imports
        from .validation import collect_pass_errors

        self.barcodes = list(self.barcodes)
        self.locations = list(self.locations)
        self.beacons = list(self.beacons)
        self.associated_store_identifiers = list(self.associated_store_identifiers)
        for name in _COLOR_ATTRIBUTES:
            value = getattr(self, name)
            if isinstance(value, str):
                try:
                    setattr(self, name, Color.parse(value))
                except ValueError:
                    pass  # reported by the validator

        errors = collect_pass_errors(self)
        if errors:
            logger.debug(f"Rejected pass {self.serial_number!r}: {len(errors)} violation(s)")
            raise ValidationError(errors)

    # Field access

    def field_groups(self) -> Dict[str, List[Field]]:
        return self.style.groups()

    def iter_fields(self) -> Iterator[Tuple[str, int, Field]]:
        """Yield ``(group, position, field)`` in display order"""
        for group, group_fields in self.field_groups().items():
            for position, item in enumerate(group_fields):
                yield group, position, item

    def replace_fields(self, group: str, fields: List[Field]) -> None:
        """Replace a whole field group; the only way to remove fields.

        The pass is re-validated and left untouched if the new group breaks an
        invariant (duplicate keys, misplaced hints, bad values).
        """
        from .validation import collect_pass_errors

        if group not in FIELD_GROUPS:
            raise ValidationError([f"unknown field group '{group}'"])
        attribute = f"{group}_fields"
        previous = getattr(self.style, attribute)
        setattr(self.style, attribute, list(fields))
        errors = collect_pass_errors(self)
        if errors:
            setattr(self.style, attribute, previous)
            raise ValidationError(errors)
        self._field_index = None

    def get_value(self, key: str) -> Optional[FieldValue]:
        from .field_index import get_value
        return get_value(self, key)

    def set_value(self, key: str, value: FieldValue) -> None:
        from .field_index import set_value
        set_value(self, key, value)

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"formatVersion": self.format_version}
        for name in _SCALAR_ATTRIBUTES:
            value = getattr(self, name)
            if value is not None:
                data[json_key(name)] = value
        for name in _DATE_ATTRIBUTES:
            value = getattr(self, name)
            if value is not None:
                data[json_key(name)] = format_date(value)
        for name in _COLOR_ATTRIBUTES:
            value = getattr(self, name)
            if value is not None:
                data[json_key(name)] = str(value)
        for name in _FLAG_ATTRIBUTES:
            if getattr(self, name):
                data[json_key(name)] = True
        if self.barcodes:
            data["barcodes"] = [barcode.to_dict() for barcode in self.barcodes]
        if self.locations:
            data["locations"] = [location.to_dict() for location in self.locations]
        if self.beacons:
            data["beacons"] = [beacon.to_dict() for beacon in self.beacons]
        if self.associated_store_identifiers:
            data["associatedStoreIdentifiers"] = list(self.associated_store_identifiers)
        if self.nfc is not None:
            data["nfc"] = self.nfc.to_dict()
        if self.user_info is not None:
            data["userInfo"] = self.user_info
        data[self.style.style_key] = self.style.to_dict()
        return data

    def to_json_bytes(self) -> bytes:
        """Canonical pass.json bytes"""
        return canonical_json(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pass":
        """Validate a pass.json object against the schema and build the model.

        Raises ValidationError with every schema and invariant problem found.
        """
        from .schema import schema_errors

        errors = schema_errors(data)
        if errors:
            raise ValidationError(errors)

        present_styles = [key for key in STYLE_CLASSES if key in data]
        if len(present_styles) != 1:
            raise ValidationError([
                f"pass.json must contain exactly one style key, found {present_styles or 'none'}"
            ])

        known = {json_key(name) for name in
                 _SCALAR_ATTRIBUTES + _DATE_ATTRIBUTES + _COLOR_ATTRIBUTES + _FLAG_ATTRIBUTES}
        known.update({"formatVersion", "barcodes", "barcode", "locations", "beacons",
                      "associatedStoreIdentifiers", "nfc", "userInfo"})
        known.update(STYLE_CLASSES)
        unknown = sorted(key for key in data if key not in known)
        if unknown:
            logger.warning(f"Ignoring unsupported pass.json keys: {', '.join(unknown)}")

        kwargs: Dict[str, Any] = {"format_version": data["formatVersion"]}
        problems: List[str] = []
        for name in _SCALAR_ATTRIBUTES:
            if json_key(name) in data:
                kwargs[name] = data[json_key(name)]
        for name in _DATE_ATTRIBUTES:
            if json_key(name) in data:
                try:
                    kwargs[name] = parse_date(data[json_key(name)])
                except ValueError as e:
                    problems.append(f"{json_key(name)}: {e}")
        for name in _COLOR_ATTRIBUTES:
            if json_key(name) in data:
                try:
                    kwargs[name] = Color.parse(data[json_key(name)])
                except ValueError as e:
                    problems.append(f"{json_key(name)}: {e}")
        for name in _FLAG_ATTRIBUTES:
            kwargs[name] = bool(data.get(json_key(name), False))

        try:
            if "barcodes" in data:
                kwargs["barcodes"] = [Barcode.from_dict(item) for item in data["barcodes"]]
            elif "barcode" in data:
                # Legacy single-barcode key from iOS 8 era passes
                kwargs["barcodes"] = [Barcode.from_dict(data["barcode"])]
        except ValueError as e:
            problems.append(f"barcodes: {e}")
        kwargs["locations"] = [Location.from_dict(item) for item in data.get("locations", [])]
        kwargs["beacons"] = [Beacon.from_dict(item) for item in data.get("beacons", [])]
        kwargs["associated_store_identifiers"] = list(data.get("associatedStoreIdentifiers", []))
        if "nfc" in data:
            kwargs["nfc"] = NFC.from_dict(data["nfc"])
        if "userInfo" in data:
            kwargs["user_info"] = data["userInfo"]

        style_key = present_styles[0]
        try:
            kwargs["style"] = STYLE_CLASSES[style_key].from_dict(data[style_key])
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            problems.append(f"{style_key}: {e}")

        if problems:
            raise ValidationError(problems)
        return cls(**kwargs)

    @classmethod
    def from_json_bytes(cls, payload: bytes) -> "Pass":
        try:
            data = json.loads(payload.decode("utf-8"), parse_constant=_reject_constant)
        except ValueError as e:
            raise ValidationError([f"pass.json is not valid UTF-8 JSON: {e}"]) from e
        if not isinstance(data, dict):
            raise ValidationError(["pass.json must contain a JSON object"])
        return cls.from_dict(data)


def _reject_constant(name: str):
    raise ValueError(f"non-finite number {name} is not allowed")


def _enum_or_none(enum_cls, raw):
    if raw is None:
        return None
    return enum_cls(raw)
