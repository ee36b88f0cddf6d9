"""
Semantic tags: the closed vocabulary of machine-readable metadata a field can
carry so the wallet app can offer contextual actions (gate changes, seat
lookups, calendar events and so on).

Only the keys declared here are accepted. Anything else in a pass.json
``semantics`` object is rejected when reading.
"""

import math
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .serialization import camel_case, format_date, is_aware, parse_date


class EventType(Enum):
    GENERIC = "PKEventTypeGeneric"
    LIVE_PERFORMANCE = "PKEventTypeLivePerformance"
    MOVIE = "PKEventTypeMovie"
    SPORTS = "PKEventTypeSports"
    CONFERENCE = "PKEventTypeConference"
    CONVENTION = "PKEventTypeConvention"
    WORKSHOP = "PKEventTypeWorkshop"
    SOCIAL_GATHERING = "PKEventTypeSocialGathering"


@dataclass
class SemanticAmount:
    """Currency amount as used inside semantics (amount is a decimal string)"""
    amount: str
    currency_code: str


@dataclass
class SemanticLocation:
    latitude: float
    longitude: float


@dataclass
class PersonNameComponents:
    family_name: Optional[str] = None
    given_name: Optional[str] = None
    middle_name: Optional[str] = None
    name_prefix: Optional[str] = None
    name_suffix: Optional[str] = None
    nickname: Optional[str] = None
    phonetic_representation: Optional[str] = None


@dataclass
class Seat:
    seat_description: Optional[str] = None
    seat_identifier: Optional[str] = None
    seat_number: Optional[str] = None
    seat_row: Optional[str] = None
    seat_section: Optional[str] = None
    seat_type: Optional[str] = None


@dataclass
class WifiNetwork:
    ssid: str
    password: str


def _kind(kind: str, default: Any = None):
    if kind in ("str_list", "seats", "wifi"):
        return field(default_factory=list, metadata={"kind": kind})
    return field(default=default, metadata={"kind": kind})


# JSON keys that do not follow plain camelCase conversion
_KEY_OVERRIDES = {"artist_ids": "artistIDs"}


@dataclass
class SemanticTags:
    airline_code: Optional[str] = _kind("str")
    artist_ids: List[str] = _kind("str_list")
    away_team_abbreviation: Optional[str] = _kind("str")
    away_team_location: Optional[str] = _kind("str")
    away_team_name: Optional[str] = _kind("str")
    balance: Optional[SemanticAmount] = _kind("amount")
    boarding_group: Optional[str] = _kind("str")
    boarding_sequence_number: Optional[str] = _kind("str")
    car_number: Optional[str] = _kind("str")
    confirmation_number: Optional[str] = _kind("str")
    current_arrival_date: Optional[datetime] = _kind("date")
    current_boarding_date: Optional[datetime] = _kind("date")
    current_departure_date: Optional[datetime] = _kind("date")
    departure_airport_code: Optional[str] = _kind("str")
    departure_airport_name: Optional[str] = _kind("str")
    departure_gate: Optional[str] = _kind("str")
    departure_location: Optional[SemanticLocation] = _kind("location")
    departure_location_description: Optional[str] = _kind("str")
    departure_platform: Optional[str] = _kind("str")
    departure_station_name: Optional[str] = _kind("str")
    departure_terminal: Optional[str] = _kind("str")
    destination_airport_code: Optional[str] = _kind("str")
    destination_airport_name: Optional[str] = _kind("str")
    destination_gate: Optional[str] = _kind("str")
    destination_location: Optional[SemanticLocation] = _kind("location")
    destination_location_description: Optional[str] = _kind("str")
    destination_platform: Optional[str] = _kind("str")
    destination_station_name: Optional[str] = _kind("str")
    destination_terminal: Optional[str] = _kind("str")
    duration: Optional[int] = _kind("int")
    event_end_date: Optional[datetime] = _kind("date")
    event_name: Optional[str] = _kind("str")
    event_start_date: Optional[datetime] = _kind("date")
    event_type: Optional[EventType] = _kind("event_type")
    flight_code: Optional[str] = _kind("str")
    flight_number: Optional[int] = _kind("int")
    genre: Optional[str] = _kind("str")
    home_team_abbreviation: Optional[str] = _kind("str")
    home_team_location: Optional[str] = _kind("str")
    home_team_name: Optional[str] = _kind("str")
    league_abbreviation: Optional[str] = _kind("str")
    league_name: Optional[str] = _kind("str")
    membership_program_name: Optional[str] = _kind("str")
    membership_program_number: Optional[str] = _kind("str")
    original_arrival_date: Optional[datetime] = _kind("date")
    original_boarding_date: Optional[datetime] = _kind("date")
    original_departure_date: Optional[datetime] = _kind("date")
    passenger_name: Optional[PersonNameComponents] = _kind("person")
    performer_names: List[str] = _kind("str_list")
    priority_status: Optional[str] = _kind("str")
    seats: List[Seat] = _kind("seats")
    security_screening: Optional[str] = _kind("str")
    silence_requested: Optional[bool] = _kind("bool")
    sport_name: Optional[str] = _kind("str")
    total_price: Optional[SemanticAmount] = _kind("amount")
    transit_provider: Optional[str] = _kind("str")
    transit_status: Optional[str] = _kind("str")
    transit_status_reason: Optional[str] = _kind("str")
    vehicle_name: Optional[str] = _kind("str")
    vehicle_number: Optional[str] = _kind("str")
    vehicle_type: Optional[str] = _kind("str")
    venue_entrance: Optional[str] = _kind("str")
    venue_location: Optional[SemanticLocation] = _kind("location")
    venue_name: Optional[str] = _kind("str")
    venue_phone_number: Optional[str] = _kind("str")
    venue_room: Optional[str] = _kind("str")
    wifi_access: List[WifiNetwork] = _kind("wifi")

    def is_empty(self) -> bool:
        return not self.to_dict()

    def problems(self) -> List[str]:
        """Type problems that would make the serialized tags invalid"""
        problems = []
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or value == []:
                continue
            kind = f.metadata["kind"]
            if kind == "date" and (not isinstance(value, datetime) or not is_aware(value)):
                problems.append(f"semantics.{f.name} must be a timezone-aware datetime")
            elif kind == "event_type" and not isinstance(value, EventType):
                problems.append(f"semantics.{f.name} must be an EventType")
            elif kind == "location" and not (
                isinstance(value, SemanticLocation)
                and _finite(value.latitude) and -90 <= value.latitude <= 90
                and _finite(value.longitude) and -180 <= value.longitude <= 180
            ):
                problems.append(f"semantics.{f.name} must be a SemanticLocation with valid coordinates")
            elif kind not in ("date", "event_type", "location") and not _reloads(kind, value):
                problems.append(f"semantics.{f.name} has the wrong type for a {kind} tag")
        return problems

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or value == []:
                continue
            data[_json_key(f.name)] = _dump(f.metadata["kind"], value)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SemanticTags":
        """Build tags from a pass.json ``semantics`` object.

        Raises ValueError naming every unknown or malformed key.
        """
        if not isinstance(data, dict):
            raise ValueError("semantics must be a JSON object")
        by_key = {_json_key(f.name): f for f in fields(cls)}
        kwargs = {}
        problems = []
        for key, raw in data.items():
            f = by_key.get(key)
            if f is None:
                problems.append(f"unknown semantic tag '{key}'")
                continue
            try:
                kwargs[f.name] = _load(f.metadata["kind"], raw)
            except (TypeError, ValueError, KeyError, AttributeError) as e:
                problems.append(f"semantic tag '{key}': {e}")
        if problems:
            raise ValueError("; ".join(problems))
        return cls(**kwargs)


def _json_key(name: str) -> str:
    return _KEY_OVERRIDES.get(name, camel_case(name))


def _plain(obj) -> Dict[str, Any]:
    return {camel_case(f.name): getattr(obj, f.name)
            for f in fields(obj) if getattr(obj, f.name) is not None}


def _dump(kind: str, value: Any) -> Any:
    if kind == "date":
        return format_date(value)
    if kind == "event_type":
        return value.value
    if kind in ("amount", "location", "person"):
        return _plain(value)
    if kind in ("seats", "wifi"):
        return [_plain(item) for item in value]
    if kind == "str_list":
        return list(value)
    return value


def _load(kind: str, raw: Any) -> Any:
    if kind == "str":
        if not isinstance(raw, str):
            raise TypeError("expected a string")
        return raw
    if kind == "int":
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise TypeError("expected an integer")
        return raw
    if kind == "bool":
        if not isinstance(raw, bool):
            raise TypeError("expected a boolean")
        return raw
    if kind == "date":
        return parse_date(raw)
    if kind == "event_type":
        return EventType(raw)
    if kind == "amount":
        raw = _object(raw)
        return SemanticAmount(amount=str(raw["amount"]), currency_code=_string(raw["currencyCode"]))
    if kind == "location":
        raw = _object(raw)
        return SemanticLocation(latitude=_number(raw["latitude"]), longitude=_number(raw["longitude"]))
    if kind == "person":
        return PersonNameComponents(**_snake_kwargs(PersonNameComponents, raw))
    if kind == "seats":
        return [Seat(**_snake_kwargs(Seat, item)) for item in _array(raw)]
    if kind == "wifi":
        return [WifiNetwork(ssid=_string(item["ssid"]), password=_string(item["password"]))
                for item in map(_object, _array(raw))]
    if kind == "str_list":
        if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
            raise TypeError("expected a list of strings")
        return list(raw)
    raise ValueError(f"unsupported kind {kind}")


def _reloads(kind: str, value: Any) -> bool:
    """True when ``value`` reads back unchanged from its serialized form"""
    try:
        return _load(kind, _dump(kind, value)) == value
    except (TypeError, ValueError, KeyError, AttributeError):
        return False


def _object(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise TypeError("expected an object")
    return raw


def _array(raw: Any) -> List[Any]:
    if not isinstance(raw, list):
        raise TypeError("expected a list")
    return raw


def _string(raw: Any) -> str:
    if not isinstance(raw, str):
        raise TypeError("expected a string")
    return raw


def _finite(value: Any) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float)) and math.isfinite(value)


def _number(raw: Any) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise TypeError("expected a number")
    return float(raw)


def _snake_kwargs(cls, raw: Dict[str, Any]) -> Dict[str, Any]:
    raw = _object(raw)
    by_key = {camel_case(f.name): f.name for f in fields(cls)}
    unknown = [key for key in raw if key not in by_key]
    if unknown:
        raise ValueError(f"unknown keys {', '.join(sorted(unknown))}")
    return {by_key[key]: _string(value) for key, value in raw.items()}
