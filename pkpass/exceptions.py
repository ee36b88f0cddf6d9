"""
Exception hierarchy for pass building, packaging and unpacking.

Every fallible operation raises a distinct subclass of PassKitError so callers
can tell validation problems, signing problems and integrity failures apart.
"""

from typing import Iterable, List


class PassKitError(Exception):
    """Base class for all pkpass errors"""


class ValidationError(PassKitError, ValueError):
    """One or more pass invariants are violated.

    All violations found are carried in ``errors``, not just the first one.
    """

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "invalid pass")


class FieldLookupError(PassKitError, LookupError):
    """Base class for key-addressed field lookup failures"""


class KeyNotFoundError(FieldLookupError):
    """No field in the pass carries the requested key"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No field with key '{key}'")


class InvalidAssetNameError(PassKitError, ValueError):
    """An asset name cannot be stored in a pass archive"""

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"Invalid asset name '{name}': {reason}")


class ConfigurationError(PassKitError, ValueError):
    """Signing configuration is incomplete or points at missing files"""

    def __init__(self, problems: Iterable[str]):
        self.problems: List[str] = list(problems)
        super().__init__(f"Signing configuration errors: {'; '.join(self.problems)}")


# Write path

class PackagingError(PassKitError):
    """Base class for failures while producing an archive"""


class AssetReadError(PackagingError):
    """An asset source could not be read"""

    def __init__(self, name: str, reason: str = ""):
        self.name = name
        message = f"Could not read asset '{name}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MissingAssetError(PackagingError):
    """A required asset (icon.png) is not part of the package"""


class PassSerializationError(PackagingError):
    """pass.json could not be produced from the model (e.g. a mutated value is not JSON)"""


class SigningError(PackagingError):
    """The signature could not be produced"""


class CertificateError(SigningError):
    """A certificate is malformed, expired or not yet valid"""


class KeyMismatchError(SigningError):
    """The private key does not belong to the signer certificate"""


class SinkWriteError(PackagingError):
    """The finished archive could not be written to the output sink"""


# Read path

class UnpackingError(PassKitError):
    """Base class for failures while reading an archive"""


class ArchiveFormatError(UnpackingError):
    """The container is corrupt or misses a mandatory entry"""


class ManifestMismatchError(UnpackingError):
    """The embedded manifest does not describe the archive contents"""

    def __init__(self, differences: Iterable[str]):
        self.differences: List[str] = list(differences)
        super().__init__(f"Manifest mismatch: {'; '.join(self.differences)}")


class SignatureInvalidError(UnpackingError):
    """The signature does not verify against the manifest or its chain"""
