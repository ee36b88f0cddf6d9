"""
Detached PKCS#7 signing of manifest.json.

The signature embeds the signer certificate and the intermediate (WWDR)
certificate so a verifier can check the chain without any lookup.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat, pkcs7

from .exceptions import CertificateError, KeyMismatchError, SigningError

logger = logging.getLogger(__name__)

SUPPORTED_KEY_TYPES = (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)
SUPPORTED_DIGESTS = (hashes.SHA256, hashes.SHA384, hashes.SHA512)


@dataclass(frozen=True)
class SigningMaterial:
    """Signer certificate, its private key and the issuing intermediate"""
    signer_cert: x509.Certificate
    signer_key: Any
    intermediate_cert: x509.Certificate


def check_validity(cert: x509.Certificate, label: str, at: Optional[datetime] = None) -> None:
    """Raise CertificateError if ``cert`` is expired or not yet valid at ``at``"""
    if not isinstance(cert, x509.Certificate):
        raise CertificateError(f"{label} is not an X.509 certificate")
    now = at or datetime.now(timezone.utc)
    if now < cert.not_valid_before_utc:
        raise CertificateError(
            f"{label} is not valid before {cert.not_valid_before_utc.isoformat()}"
        )
    if now > cert.not_valid_after_utc:
        raise CertificateError(f"{label} expired on {cert.not_valid_after_utc.isoformat()}")


def check_key_matches(cert: x509.Certificate, key) -> None:
    """Raise KeyMismatchError unless ``key`` is the private half of ``cert``"""
    cert_public = cert.public_key().public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)
    key_public = key.public_key().public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)
    if cert_public != key_public:
        raise KeyMismatchError(
            f"Private key does not match certificate {cert.subject.rfc4514_string()}"
        )


class SignatureEngine:
    """Produces detached, DER-encoded PKCS#7 signatures over manifest bytes.

    Signed attributes (signing time, capabilities) are left out unless
    ``include_signing_time`` is set, which keeps RSA signatures byte-identical
    for identical input.
    """

    def __init__(self, digest: hashes.HashAlgorithm = None, include_signing_time: bool = False):
        self.digest = digest or hashes.SHA256()
        self.include_signing_time = include_signing_time
        if not isinstance(self.digest, SUPPORTED_DIGESTS):
            raise ValueError(f"Unsupported signer digest {self.digest.name}")

    def _options(self) -> List[pkcs7.PKCS7Options]:
        options = [pkcs7.PKCS7Options.DetachedSignature, pkcs7.PKCS7Options.Binary]
        if not self.include_signing_time:
            options.append(pkcs7.PKCS7Options.NoAttributes)
        return options

    def sign(self, manifest_bytes: bytes, signer_cert: x509.Certificate, signer_key,
             intermediate_cert: x509.Certificate, at: Optional[datetime] = None) -> bytes:
        """Sign ``manifest_bytes`` and return the raw signature file contents.

        Raises CertificateError, KeyMismatchError or SigningError. Nothing is
        returned on failure and the key material is not kept.
        """
        check_validity(signer_cert, "Signer certificate", at)
        check_validity(intermediate_cert, "Intermediate certificate", at)

        if not isinstance(signer_key, SUPPORTED_KEY_TYPES):
            raise SigningError(f"Unsupported private key type {type(signer_key).__name__}")
        check_key_matches(signer_cert, signer_key)

        try:
            signer_cert.verify_directly_issued_by(intermediate_cert)
        except (InvalidSignature, ValueError, TypeError) as e:
            raise CertificateError(
                f"Signer certificate {signer_cert.subject.rfc4514_string()} was not issued by "
                f"intermediate {intermediate_cert.subject.rfc4514_string()}: {str(e) or type(e).__name__}"
            ) from e

        builder = (
            pkcs7.PKCS7SignatureBuilder()
            .set_data(manifest_bytes)
            .add_signer(signer_cert, signer_key, self.digest)
        )
        if intermediate_cert != signer_cert:
            builder = builder.add_certificate(intermediate_cert)

        try:
            signature = builder.sign(Encoding.DER, self._options())
        except (ValueError, TypeError) as e:
            logger.error(f"PKCS#7 signing failed: {e}")
            raise SigningError(f"PKCS#7 signing failed: {e}") from e

        logger.debug(f"Signed {len(manifest_bytes)} manifest bytes ({len(signature)} byte signature)")
        return signature


def sign(manifest_bytes: bytes, signer_cert: x509.Certificate, signer_key,
         intermediate_cert: x509.Certificate, include_signing_time: bool = False) -> bytes:
    return SignatureEngine(include_signing_time=include_signing_time).sign(
        manifest_bytes, signer_cert, signer_key, intermediate_cert
    )
