"""
Fluent construction of Pass objects.

Every setter returns a new PassBuilder; the receiver is never modified, so two
references to one builder can never observe each other's changes. ``build()``
runs the full invariant check and reports every problem at once.
"""

import copy
import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from .exceptions import ValidationError
from .models import (
    FIELD_GROUPS,
    NFC,
    Barcode,
    BarcodeFormat,
    Beacon,
    BoardingPass,
    Color,
    Coupon,
    EventTicket,
    Field,
    FieldValue,
    Generic,
    Location,
    Pass,
    PassStyle,
    StoreCard,
    TransitType,
)

logger = logging.getLogger(__name__)

# Optional Pass attributes settable through PassBuilder.set()
OPTIONAL_ATTRIBUTES = (
    "max_distance",
    "relevant_date",
    "expiration_date",
    "voided",
    "associated_store_identifiers",
    "app_launch_url",
    "web_service_url",
    "authentication_token",
    "foreground_color",
    "background_color",
    "label_color",
    "grouping_identifier",
    "logo_text",
    "sharing_prohibited",
    "suppress_strip_shine",
    "nfc",
    "user_info",
)


@dataclass(frozen=True)
class PassConfig:
    """Seed attributes every pass needs"""
    organization_name: str
    description: str
    pass_type_identifier: str
    team_identifier: str
    serial_number: str


@dataclass(frozen=True)
class PassBuilder:
    config: PassConfig
    _styles: Tuple[PassStyle, ...] = ()
    _fields: Tuple[Tuple[str, Field], ...] = ()
    _barcodes: Tuple[Barcode, ...] = ()
    _locations: Tuple[Location, ...] = ()
    _beacons: Tuple[Beacon, ...] = ()
    _attributes: Tuple[Tuple[str, Any], ...] = ()
    _unknown: Tuple[str, ...] = field(default=(), repr=False)

    # Style variants

    def style(self, style: PassStyle) -> "PassBuilder":
        """Attach a style variant; attaching a second one fails at build()"""
        return dataclasses.replace(self, _styles=self._styles + (copy.deepcopy(style),))

    def boarding_pass(self, transit_type: TransitType) -> "PassBuilder":
        return self.style(BoardingPass(transit_type=transit_type))

    def coupon(self) -> "PassBuilder":
        return self.style(Coupon())

    def event_ticket(self) -> "PassBuilder":
        return self.style(EventTicket())

    def generic(self) -> "PassBuilder":
        return self.style(Generic())

    def store_card(self) -> "PassBuilder":
        return self.style(StoreCard())

    # Fields

    def add_field(self, group: str, key_or_field: Union[str, Field],
                  value: Optional[FieldValue] = None, **hints) -> "PassBuilder":
        """Append a field to ``group`` of the attached style.

        Accepts either a ready Field or a key, a value and presentation hints
        (label, date_style, row, ...).
        """
        if isinstance(key_or_field, Field):
            item = copy.deepcopy(key_or_field)
        else:
            item = Field(key=key_or_field, value=value, **hints)
        return dataclasses.replace(self, _fields=self._fields + ((group, item),))

    def header_field(self, key: str, value: FieldValue, **hints) -> "PassBuilder":
        return self.add_field("header", key, value, **hints)

    def primary_field(self, key: str, value: FieldValue, **hints) -> "PassBuilder":
        return self.add_field("primary", key, value, **hints)

    def secondary_field(self, key: str, value: FieldValue, **hints) -> "PassBuilder":
        return self.add_field("secondary", key, value, **hints)

    def auxiliary_field(self, key: str, value: FieldValue, **hints) -> "PassBuilder":
        return self.add_field("auxiliary", key, value, **hints)

    def back_field(self, key: str, value: FieldValue, **hints) -> "PassBuilder":
        return self.add_field("back", key, value, **hints)

    # Cross-cutting attributes

    def barcode(self, message: str, format: BarcodeFormat = BarcodeFormat.QR,
                message_encoding: str = "iso-8859-1", alt_text: Optional[str] = None) -> "PassBuilder":
        item = Barcode(message=message, format=format,
                       message_encoding=message_encoding, alt_text=alt_text)
        return dataclasses.replace(self, _barcodes=self._barcodes + (item,))

    def location(self, latitude: float, longitude: float, altitude: Optional[float] = None,
                 relevant_text: Optional[str] = None) -> "PassBuilder":
        item = Location(latitude=latitude, longitude=longitude,
                        altitude=altitude, relevant_text=relevant_text)
        return dataclasses.replace(self, _locations=self._locations + (item,))

    def beacon(self, proximity_uuid: str, major: Optional[int] = None, minor: Optional[int] = None,
               relevant_text: Optional[str] = None) -> "PassBuilder":
        item = Beacon(proximity_uuid=proximity_uuid, major=major, minor=minor,
                      relevant_text=relevant_text)
        return dataclasses.replace(self, _beacons=self._beacons + (item,))

    def set(self, **attributes) -> "PassBuilder":
        """Set optional pass attributes by name (``voided=True``, ``logo_text=...``)"""
        unknown = tuple(name for name in attributes if name not in OPTIONAL_ATTRIBUTES)
        known = tuple((name, copy.deepcopy(value)) for name, value in attributes.items()
                      if name in OPTIONAL_ATTRIBUTES)
        return dataclasses.replace(
            self,
            _attributes=self._attributes + known,
            _unknown=self._unknown + unknown,
        )

    def relevant_date(self, value: datetime) -> "PassBuilder":
        return self.set(relevant_date=value)

    def expiration_date(self, value: datetime) -> "PassBuilder":
        return self.set(expiration_date=value)

    def voided(self, value: bool = True) -> "PassBuilder":
        return self.set(voided=value)

    def colors(self, foreground: Union[Color, str, None] = None,
               background: Union[Color, str, None] = None,
               label: Union[Color, str, None] = None) -> "PassBuilder":
        values = {"foreground_color": foreground, "background_color": background, "label_color": label}
        return self.set(**{name: value for name, value in values.items() if value is not None})

    def web_service(self, url: str, authentication_token: str) -> "PassBuilder":
        return self.set(web_service_url=url, authentication_token=authentication_token)

    def grouping_identifier(self, value: str) -> "PassBuilder":
        return self.set(grouping_identifier=value)

    def logo_text(self, value: str) -> "PassBuilder":
        return self.set(logo_text=value)

    def app_launch_url(self, url: str, associated_store_identifiers: Optional[List[int]] = None) -> "PassBuilder":
        builder = self.set(app_launch_url=url)
        if associated_store_identifiers is not None:
            builder = builder.set(associated_store_identifiers=list(associated_store_identifiers))
        return builder

    def nfc(self, message: str, encryption_public_key: str,
            requires_authentication: bool = False) -> "PassBuilder":
        return self.set(nfc=NFC(message=message, encryption_public_key=encryption_public_key,
                                requires_authentication=requires_authentication))

    def user_info(self, value: Dict[str, Any]) -> "PassBuilder":
        return self.set(user_info=value)

    def serial_number(self, value: str) -> "PassBuilder":
        return dataclasses.replace(self, config=dataclasses.replace(self.config, serial_number=value))

    # Finalization

    def build(self) -> Pass:
        """Validate everything and return the finished Pass.

        Raises ValidationError listing every problem found.
        """
        errors: List[str] = []

        if len(self._styles) > 1:
            names = ", ".join(s.style_key for s in self._styles)
            errors.append(f"multiple style variants attached ({names}); a pass has exactly one")
        style = copy.deepcopy(self._styles[0]) if self._styles else None

        for group, item in self._fields:
            if group not in FIELD_GROUPS:
                errors.append(f"unknown field group '{group}' for field '{item.key}'")
            elif style is None:
                errors.append(f"field '{item.key}' added with no style variant attached")
            else:
                getattr(style, f"{group}_fields").append(copy.deepcopy(item))

        for name in self._unknown:
            errors.append(f"unknown pass attribute '{name}'")

        kwargs: Dict[str, Any] = dataclasses.asdict(self.config)
        kwargs.update(dict(self._attributes))
        try:
            pass_obj = Pass(
                style=style,
                barcodes=copy.deepcopy(list(self._barcodes)),
                locations=copy.deepcopy(list(self._locations)),
                beacons=copy.deepcopy(list(self._beacons)),
                **kwargs,
            )
        except ValidationError as e:
            errors.extend(e.errors)
            pass_obj = None

        if errors:
            logger.warning(f"Pass {self.config.serial_number!r} failed validation with {len(errors)} error(s)")
            raise ValidationError(errors)

        logger.debug(f"Built {style.style_key} pass {pass_obj.serial_number}")
        return pass_obj
