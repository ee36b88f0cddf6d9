"""
JSON schema for pass.json, used to vet untrusted input before it reaches the
model constructors.
"""

from typing import Any, Dict, List

from jsonschema import Draft7Validator

_STRING = {"type": "string"}
_NUMBER = {"type": "number"}
_INTEGER = {"type": "integer"}
_BOOLEAN = {"type": "boolean"}

FIELD_SCHEMA = {
    "type": "object",
    "required": ["key", "value"],
    "properties": {
        "key": {"type": "string", "minLength": 1},
        "value": {"type": ["string", "number"]},
        "label": _STRING,
        "attributedValue": _STRING,
        "changeMessage": _STRING,
        "currencyCode": _STRING,
        "dateStyle": {"type": "string", "pattern": "^PKDateStyle"},
        "timeStyle": {"type": "string", "pattern": "^PKDateStyle"},
        "numberStyle": {"type": "string", "pattern": "^PKNumberStyle"},
        "textAlignment": {"type": "string", "pattern": "^PKTextAlignment"},
        "dataDetectorTypes": {"type": "array", "items": _STRING},
        "ignoresTimeZone": _BOOLEAN,
        "isRelative": _BOOLEAN,
        "row": _INTEGER,
        "semantics": {"type": "object"},
    },
}

_FIELD_LIST = {"type": "array", "items": FIELD_SCHEMA}

STYLE_SCHEMA = {
    "type": "object",
    "properties": {
        "headerFields": _FIELD_LIST,
        "primaryFields": _FIELD_LIST,
        "secondaryFields": _FIELD_LIST,
        "auxiliaryFields": _FIELD_LIST,
        "backFields": _FIELD_LIST,
        "transitType": {"type": "string", "pattern": "^PKTransitType"},
    },
}

BARCODE_SCHEMA = {
    "type": "object",
    "required": ["format", "message", "messageEncoding"],
    "properties": {
        "format": {"type": "string", "pattern": "^PKBarcodeFormat"},
        "message": _STRING,
        "messageEncoding": _STRING,
        "altText": _STRING,
    },
}

PASS_JSON_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": [
        "formatVersion",
        "passTypeIdentifier",
        "serialNumber",
        "teamIdentifier",
        "organizationName",
        "description",
    ],
    "properties": {
        "formatVersion": {"type": "integer", "const": 1},
        "passTypeIdentifier": _STRING,
        "serialNumber": _STRING,
        "teamIdentifier": _STRING,
        "organizationName": _STRING,
        "description": _STRING,
        "appLaunchURL": _STRING,
        "associatedStoreIdentifiers": {"type": "array", "items": _INTEGER},
        "authenticationToken": _STRING,
        "webServiceURL": _STRING,
        "backgroundColor": _STRING,
        "foregroundColor": _STRING,
        "labelColor": _STRING,
        "groupingIdentifier": _STRING,
        "logoText": _STRING,
        "expirationDate": _STRING,
        "relevantDate": _STRING,
        "voided": _BOOLEAN,
        "sharingProhibited": _BOOLEAN,
        "suppressStripShine": _BOOLEAN,
        "maxDistance": _NUMBER,
        "userInfo": {"type": "object"},
        "barcode": BARCODE_SCHEMA,
        "barcodes": {"type": "array", "items": BARCODE_SCHEMA},
        "locations": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["latitude", "longitude"],
                "properties": {
                    "latitude": _NUMBER,
                    "longitude": _NUMBER,
                    "altitude": _NUMBER,
                    "relevantText": _STRING,
                },
            },
        },
        "beacons": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["proximityUUID"],
                "properties": {
                    "proximityUUID": _STRING,
                    "major": _INTEGER,
                    "minor": _INTEGER,
                    "relevantText": _STRING,
                },
            },
        },
        "nfc": {
            "type": "object",
            "required": ["message", "encryptionPublicKey"],
            "properties": {
                "message": _STRING,
                "encryptionPublicKey": _STRING,
                "requiresAuthentication": _BOOLEAN,
            },
        },
        "boardingPass": STYLE_SCHEMA,
        "coupon": STYLE_SCHEMA,
        "eventTicket": STYLE_SCHEMA,
        "generic": STYLE_SCHEMA,
        "storeCard": STYLE_SCHEMA,
    },
}

_validator = Draft7Validator(PASS_JSON_SCHEMA)


def schema_errors(data: Any) -> List[str]:
    """Every schema violation in ``data``, each prefixed with its JSON path"""
    errors = []
    for error in sorted(_validator.iter_errors(data), key=lambda e: [str(p) for p in e.path]):
        path = "/".join(str(part) for part in error.path) or "<root>"
        errors.append(f"{path}: {error.message}")
    return errors
