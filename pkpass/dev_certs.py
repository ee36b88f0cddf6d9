"""
Throwaway certificate chains for local trials and tests.

Generates a self-signed root standing in for Apple WWDR and a pass type
signer certificate issued by it, with the UID / OU layout real pass
certificates use. Never use these for passes that leave your machine.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from .config import (
    ENV_CERTIFICATE_PATH,
    ENV_KEY_PATH,
    ENV_WWDR_CERT_PATH,
)
from .signer import SigningMaterial

logger = logging.getLogger(__name__)

DEFAULT_PASS_TYPE_IDENTIFIER = "pass.com.example.dev"
DEFAULT_TEAM_IDENTIFIER = "AA00AA0A0A"


@dataclass(frozen=True)
class DevChain:
    ca_cert: x509.Certificate
    ca_key: rsa.RSAPrivateKey
    signer_cert: x509.Certificate
    signer_key: rsa.RSAPrivateKey

    def material(self) -> SigningMaterial:
        return SigningMaterial(
            signer_cert=self.signer_cert,
            signer_key=self.signer_key,
            intermediate_cert=self.ca_cert,
        )


def _new_key(key_size: int = 2048) -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=key_size)


def _certificate(subject: x509.Name, issuer: x509.Name, public_key, signing_key,
                 is_ca: bool, not_before: datetime, not_after: datetime) -> x509.Certificate:
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=is_ca, path_length=None), critical=True)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False)
    )
    if is_ca:
        builder = builder.add_extension(
            x509.KeyUsage(
                digital_signature=True, content_commitment=False, key_encipherment=False,
                data_encipherment=False, key_agreement=False, key_cert_sign=True,
                crl_sign=True, encipher_only=False, decipher_only=False,
            ),
            critical=True,
        )
    return builder.sign(signing_key, hashes.SHA256())


def self_signed(common_name: str = "pkpass self-signed", days: int = 365,
                not_before: Optional[datetime] = None, key: Optional[rsa.RSAPrivateKey] = None):
    """Return ``(certificate, key)`` for a single self-signed certificate"""
    key = key or _new_key()
    start = not_before or datetime.now(timezone.utc) - timedelta(days=1)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    cert = _certificate(name, name, key.public_key(), key, True, start, start + timedelta(days=days))
    return cert, key


def generate_chain(pass_type_identifier: str = DEFAULT_PASS_TYPE_IDENTIFIER,
                   team_identifier: str = DEFAULT_TEAM_IDENTIFIER,
                   organization_name: str = "pkpass development",
                   days: int = 365) -> DevChain:
    """Create a root CA and a pass type signer certificate issued by it"""
    now = datetime.now(timezone.utc)
    start, end = now - timedelta(days=1), now + timedelta(days=days)

    ca_key = _new_key()
    ca_name = x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, "pkpass Development Relations CA"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization_name),
    ])
    ca_cert = _certificate(ca_name, ca_name, ca_key.public_key(), ca_key, True, start, end)

    signer_key = _new_key()
    signer_name = x509.Name([
        x509.NameAttribute(NameOID.USER_ID, pass_type_identifier),
        x509.NameAttribute(NameOID.COMMON_NAME, f"Pass Type ID: {pass_type_identifier}"),
        x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, team_identifier),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization_name),
    ])
    signer_cert = _certificate(signer_name, ca_name, signer_key.public_key(), ca_key, False, start, end)

    logger.debug(f"Generated development chain for {pass_type_identifier} ({team_identifier})")
    return DevChain(ca_cert=ca_cert, ca_key=ca_key, signer_cert=signer_cert, signer_key=signer_key)


def write_chain(chain: DevChain, directory: Path) -> Dict[str, Path]:
    """Write the chain as PEM files plus a ``pkpass.env`` pointing at them"""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    paths = {
        "ca": directory / "wwdr.pem",
        "certificate": directory / "certificate.pem",
        "key": directory / "key.pem",
        "env": directory / "pkpass.env",
    }
    paths["ca"].write_bytes(chain.ca_cert.public_bytes(serialization.Encoding.PEM))
    paths["certificate"].write_bytes(chain.signer_cert.public_bytes(serialization.Encoding.PEM))
    paths["key"].write_bytes(chain.signer_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ))
    paths["key"].chmod(0o600)
    paths["env"].write_text(
        f"{ENV_CERTIFICATE_PATH}={paths['certificate'].resolve()}\n"
        f"{ENV_KEY_PATH}={paths['key'].resolve()}\n"
        f"{ENV_WWDR_CERT_PATH}={paths['ca'].resolve()}\n",
        encoding="utf-8",
    )
    logger.info(f"Wrote development certificates to {directory}")
    return paths
