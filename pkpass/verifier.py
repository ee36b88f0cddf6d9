"""
Verification of the detached PKCS#7 signature stored in a pass archive.

The SignedData structure is parsed with asn1crypto; the signature value and
the certificate chain are checked with cryptography. Any problem is reported
as SignatureInvalidError.
"""

import logging
from typing import Iterable, List, Optional

from asn1crypto import cms, core
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from .exceptions import SignatureInvalidError

logger = logging.getLogger(__name__)

_DIGESTS = {
    "sha1": hashes.SHA1,
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

# Upper bound on chain length, guards against issuer loops
MAX_CHAIN_DEPTH = 8


def _fail(message: str):
    logger.error(f"Signature verification failed: {message}")
    raise SignatureInvalidError(message)


def _load_signed_data(signature: bytes) -> cms.SignedData:
    try:
        content_info = cms.ContentInfo.load(signature, strict=True)
        if content_info["content_type"].native != "signed_data":
            _fail(f"unexpected content type {content_info['content_type'].native}")
        signed_data = content_info["content"]
        # Force a full parse so malformed structures fail here
        signed_data.native
    except SignatureInvalidError:
        raise
    except (ValueError, TypeError, KeyError) as e:
        _fail(f"malformed PKCS#7 structure: {e}")
    return signed_data


def _embedded_certificates(signed_data: cms.SignedData) -> List[x509.Certificate]:
    certificates = []
    choices = signed_data["certificates"]
    if isinstance(choices, core.Void):
        return certificates
    for choice in choices:
        if choice.name != "certificate":
            continue
        try:
            certificates.append(x509.load_der_x509_certificate(choice.chosen.dump()))
        except ValueError as e:
            _fail(f"embedded certificate is malformed: {e}")
    return certificates


def _find_signer(signer_info: cms.SignerInfo, certificates: List[x509.Certificate]) -> x509.Certificate:
    sid = signer_info["sid"]
    if sid.name == "issuer_and_serial_number":
        issuer = sid.chosen["issuer"].dump()
        serial = sid.chosen["serial_number"].native
        for cert in certificates:
            if cert.serial_number == serial and cert.issuer.public_bytes() == issuer:
                return cert
    elif sid.name == "subject_key_identifier":
        wanted = sid.chosen.native
        for cert in certificates:
            try:
                ski = cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
            except x509.ExtensionNotFound:
                continue
            if ski.value.digest == wanted:
                return cert
    _fail("signer certificate is not embedded in the signature")


def _verify_value(cert: x509.Certificate, signature_value: bytes, data: bytes, digest) -> None:
    public_key = cert.public_key()
    try:
        if isinstance(public_key, rsa.RSAPublicKey):
            public_key.verify(signature_value, data, padding.PKCS1v15(), digest)
        elif isinstance(public_key, ec.EllipticCurvePublicKey):
            public_key.verify(signature_value, data, ec.ECDSA(digest))
        else:
            _fail(f"unsupported signer key type {type(public_key).__name__}")
    except (InvalidSignature, UnsupportedAlgorithm, ValueError):
        _fail("signature value does not match the manifest and signer certificate")


def _issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    if cert.issuer != issuer.subject:
        return False
    try:
        cert.verify_directly_issued_by(issuer)
    except (InvalidSignature, ValueError, TypeError, UnsupportedAlgorithm):
        return False
    return True


def _check_chain(signer: x509.Certificate, embedded: List[x509.Certificate],
                 trust_roots: Optional[List[x509.Certificate]]) -> None:
    if not any(_issued_by(signer, candidate) for candidate in embedded):
        _fail("signer certificate is not issued by any embedded certificate")
    if not trust_roots:
        return

    current = signer
    for _ in range(MAX_CHAIN_DEPTH):
        if current in trust_roots or any(_issued_by(current, root) for root in trust_roots):
            return
        parent = next(
            (c for c in embedded if c != current and _issued_by(current, c)),
            None,
        )
        if parent is None:
            break
        current = parent
    _fail("certificate chain does not end at a trusted root")


def verify(manifest_bytes: bytes, signature: bytes,
           trust_roots: Optional[Iterable[x509.Certificate]] = None) -> x509.Certificate:
    """Verify ``signature`` over ``manifest_bytes``.

    Returns the signer certificate. Raises SignatureInvalidError if the
    structure is malformed, the digest or signature value does not match, or
    the embedded chain is broken or does not reach one of ``trust_roots``.
    """
    signed_data = _load_signed_data(signature)

    encapsulated = signed_data["encap_content_info"]["content"]
    if not isinstance(encapsulated, core.Void) and encapsulated.native is not None:
        _fail("signature is not detached")

    signer_infos = signed_data["signer_infos"]
    if len(signer_infos) != 1:
        _fail(f"expected exactly one signer, found {len(signer_infos)}")
    signer_info = signer_infos[0]

    certificates = _embedded_certificates(signed_data)
    signer = _find_signer(signer_info, certificates)

    algorithm = signer_info["digest_algorithm"]["algorithm"].native
    digest_cls = _DIGESTS.get(algorithm)
    if digest_cls is None:
        _fail(f"unsupported digest algorithm {algorithm}")

    signed_attrs = signer_info["signed_attrs"]
    if isinstance(signed_attrs, core.Void) or len(signed_attrs) == 0:
        signed_payload = manifest_bytes
    else:
        message_digest = None
        for attribute in signed_attrs:
            if attribute["type"].native == "message_digest":
                message_digest = attribute["values"][0].native
        if message_digest is None:
            _fail("signed attributes carry no message digest")
        hasher = hashes.Hash(digest_cls())
        hasher.update(manifest_bytes)
        if hasher.finalize() != message_digest:
            _fail("message digest does not match manifest.json")
        # Signed attributes are signed as an explicit SET, not the [0] IMPLICIT tag
        signed_payload = b"\x31" + signed_attrs.dump()[1:]

    _verify_value(signer, signer_info["signature"].native, signed_payload, digest_cls())
    _check_chain(signer, certificates, list(trust_roots) if trust_roots is not None else None)

    logger.debug(f"Signature verified for {signer.subject.rfc4514_string()}")
    return signer
