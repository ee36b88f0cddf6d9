"""
Certificate source: decode signer certificates, private keys and PKCS#12
bundles from PEM or DER bytes.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from .exceptions import CertificateError

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def _password_bytes(password: Union[str, bytes, None]) -> Optional[bytes]:
    if password is None or password == "" or password == b"":
        return None
    if isinstance(password, str):
        return password.encode("utf-8")
    return password


def read_file(path: PathLike, label: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        logger.error(f"Could not read {label} at {path}: {e}")
        raise CertificateError(f"Could not read {label} at {path}: {e}") from e


def load_certificate(data: bytes) -> x509.Certificate:
    """Decode a certificate, trying PEM first and DER second"""
    try:
        return x509.load_pem_x509_certificate(data)
    except ValueError:
        pass
    try:
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise CertificateError(f"Malformed certificate: {e}") from e


def load_certificates(data: bytes) -> List[x509.Certificate]:
    """Decode one or more certificates (a PEM bundle or a single DER blob)"""
    if b"-----BEGIN CERTIFICATE-----" in data:
        try:
            return x509.load_pem_x509_certificates(data)
        except ValueError as e:
            raise CertificateError(f"Malformed certificate bundle: {e}") from e
    return [load_certificate(data)]


def load_private_key(data: bytes, password: Union[str, bytes, None] = None):
    """Decode a private key, trying PEM first and DER second"""
    secret = _password_bytes(password)
    errors = []
    for loader in (serialization.load_pem_private_key, serialization.load_der_private_key):
        try:
            return loader(data, password=secret)
        except (ValueError, TypeError) as e:
            errors.append(str(e))
    raise CertificateError(f"Could not decode private key: {errors[-1]}")


def load_pkcs12(data: bytes, password: Union[str, bytes, None] = None) -> Tuple[object, x509.Certificate, List[x509.Certificate]]:
    """Return ``(private_key, certificate, additional_certificates)`` from a .p12 bundle"""
    try:
        key, cert, additional = pkcs12.load_key_and_certificates(data, _password_bytes(password))
    except (ValueError, TypeError) as e:
        raise CertificateError(f"Could not decode PKCS#12 bundle: {e}") from e
    if key is None or cert is None:
        raise CertificateError("PKCS#12 bundle must contain a private key and a certificate")
    return key, cert, list(additional or [])


def load_certificate_file(path: PathLike, label: str = "certificate") -> x509.Certificate:
    return load_certificate(read_file(path, label))


def load_certificates_file(path: PathLike, label: str = "certificates") -> List[x509.Certificate]:
    return load_certificates(read_file(path, label))


def load_private_key_file(path: PathLike, password: Union[str, bytes, None] = None) -> object:
    return load_private_key(read_file(path, "private key"), password)


def load_pkcs12_file(path: PathLike, password: Union[str, bytes, None] = None):
    return load_pkcs12(read_file(path, "PKCS#12 bundle"), password)
