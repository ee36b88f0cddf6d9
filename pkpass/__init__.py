"""
pkpass - wallet pass model, signing and packaging

Builds, validates, signs and packages Apple Wallet passes (.pkpass archives),
and reads them back with full manifest and signature verification.
"""

__version__ = "1.0.0"

from .assets import ImageKind
from .config import SigningConfig
from .exceptions import (
    ArchiveFormatError,
    AssetReadError,
    CertificateError,
    ConfigurationError,
    FieldLookupError,
    InvalidAssetNameError,
    KeyMismatchError,
    KeyNotFoundError,
    ManifestMismatchError,
    MissingAssetError,
    PackagingError,
    PassKitError,
    PassSerializationError,
    SignatureInvalidError,
    SigningError,
    SinkWriteError,
    UnpackingError,
    ValidationError,
)
from .field_index import FieldIndex, get_value, set_value
from .manifest import Manifest
from .models import (
    NFC,
    Barcode,
    BarcodeFormat,
    Beacon,
    BoardingPass,
    Color,
    Coupon,
    CurrencyAmount,
    DataDetectorType,
    DateStyle,
    EventTicket,
    Field,
    Generic,
    Location,
    NumberStyle,
    Pass,
    StoreCard,
    TextAlignment,
    TransitType,
)
from .package import Package
from .pass_builder import PassBuilder, PassConfig
from .semantic_tags import SemanticTags
from .signer import SignatureEngine, SigningMaterial

__all__ = [
    "ArchiveFormatError",
    "AssetReadError",
    "Barcode",
    "BarcodeFormat",
    "Beacon",
    "BoardingPass",
    "CertificateError",
    "Color",
    "ConfigurationError",
    "Coupon",
    "CurrencyAmount",
    "DataDetectorType",
    "DateStyle",
    "EventTicket",
    "Field",
    "FieldIndex",
    "FieldLookupError",
    "Generic",
    "ImageKind",
    "InvalidAssetNameError",
    "KeyMismatchError",
    "KeyNotFoundError",
    "Location",
    "Manifest",
    "ManifestMismatchError",
    "MissingAssetError",
    "NFC",
    "NumberStyle",
    "Package",
    "PackagingError",
    "Pass",
    "PassBuilder",
    "PassConfig",
    "PassKitError",
    "PassSerializationError",
    "SemanticTags",
    "SignatureEngine",
    "SignatureInvalidError",
    "SigningConfig",
    "SigningError",
    "SigningMaterial",
    "SinkWriteError",
    "StoreCard",
    "TextAlignment",
    "TransitType",
    "UnpackingError",
    "ValidationError",
    "get_value",
    "set_value",
]
