"""
Tests for detached PKCS#7 signing and verification.

Certificates are generated on the fly with pkpass.dev_certs, so no real Apple
material is needed.

Usage:
    python -m unittest pkpass.test_signer
"""

import logging
import unittest
from datetime import datetime, timedelta, timezone

from asn1crypto import cms
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from pkpass.dev_certs import generate_chain, self_signed
from pkpass.exceptions import CertificateError, KeyMismatchError, SignatureInvalidError, SigningError
from pkpass.signer import SignatureEngine, sign
from pkpass.verifier import verify

logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(levelname)s - %(name)s - %(message)s'
)
logger = logging.getLogger(__name__)

MANIFEST = b'{"icon.png":"0a4d55a8d778e5022fab701977c5d840bbc486d0","pass.json":"1e5f3f1ac4a0a2f1b4c8d1f1b2a3c4d5e6f7a8b9"}'


class TestSigner(unittest.TestCase):
    """Signing with a development chain"""

    @classmethod
    def setUpClass(cls):
        logger.info("Generating signing chains")
        cls.chain = generate_chain()
        cls.other_chain = generate_chain(pass_type_identifier="pass.com.example.other")

    def sign(self, manifest=MANIFEST, **kwargs):
        return sign(manifest, self.chain.signer_cert, self.chain.signer_key, self.chain.ca_cert, **kwargs)

    def test_detached_der_signature(self):
        signature = self.sign()
        content_info = cms.ContentInfo.load(signature)
        self.assertEqual(content_info["content_type"].native, "signed_data")
        signed_data = content_info["content"]
        self.assertIsNone(signed_data["encap_content_info"]["content"].native)
        self.assertEqual(len(signed_data["certificates"]), 2)
        self.assertEqual(signed_data["signer_infos"][0]["digest_algorithm"]["algorithm"].native, "sha256")
        self.assertNotIn(MANIFEST, signature)

    def test_verifies_against_manifest(self):
        signer = verify(MANIFEST, self.sign())
        self.assertEqual(signer, self.chain.signer_cert)

    def test_verifies_against_trust_root(self):
        self.assertEqual(verify(MANIFEST, self.sign(), [self.chain.ca_cert]), self.chain.signer_cert)
        with self.assertRaises(SignatureInvalidError):
            verify(MANIFEST, self.sign(), [self.other_chain.ca_cert])

    def test_reproducible(self):
        self.assertEqual(self.sign(), self.sign())
        self.assertNotEqual(self.sign(), self.sign(MANIFEST + b" "))

    def test_signing_time_attributes(self):
        signature = self.sign(include_signing_time=True)
        signer_info = cms.ContentInfo.load(signature)["content"]["signer_infos"][0]
        attribute_types = [attr["type"].native for attr in signer_info["signed_attrs"]]
        self.assertIn("signing_time", attribute_types)
        self.assertIn("message_digest", attribute_types)
        self.assertEqual(verify(MANIFEST, signature), self.chain.signer_cert)
        with self.assertRaises(SignatureInvalidError):
            verify(MANIFEST + b"x", signature)

    def test_modified_manifest_rejected(self):
        signature = self.sign()
        with self.assertRaises(SignatureInvalidError):
            verify(MANIFEST.replace(b"0a4d", b"0a4e"), signature)

    def test_garbage_rejected(self):
        for garbage in (b"", b"not a signature", b"\x30\x03\x02\x01\x01"):
            with self.subTest(garbage=garbage):
                with self.assertRaises(SignatureInvalidError):
                    verify(MANIFEST, garbage)

    def test_self_signed(self):
        cert, key = self_signed()
        signature = sign(MANIFEST, cert, key, cert)
        self.assertEqual(len(cms.ContentInfo.load(signature)["content"]["certificates"]), 1)
        self.assertEqual(verify(MANIFEST, signature, [cert]), cert)

    def test_elliptic_curve_key(self):
        cert, key = self_signed(key=ec.generate_private_key(ec.SECP256R1()))
        signature = sign(MANIFEST, cert, key, cert)
        self.assertEqual(verify(MANIFEST, signature), cert)

    def test_expired_certificate(self):
        start = datetime.now(timezone.utc) - timedelta(days=400)
        cert, key = self_signed(not_before=start, days=10)
        with self.assertRaises(CertificateError) as ctx:
            sign(MANIFEST, cert, key, cert)
        self.assertIn("expired", str(ctx.exception))

    def test_not_yet_valid_certificate(self):
        cert, key = self_signed(not_before=datetime.now(timezone.utc) + timedelta(days=5))
        with self.assertRaises(CertificateError):
            sign(MANIFEST, cert, key, cert)

    def test_signing_time_checked_at_given_moment(self):
        later = datetime.now(timezone.utc) + timedelta(days=800)
        with self.assertRaises(CertificateError):
            SignatureEngine().sign(MANIFEST, self.chain.signer_cert, self.chain.signer_key,
                                   self.chain.ca_cert, at=later)

    def test_key_mismatch(self):
        with self.assertRaises(KeyMismatchError):
            sign(MANIFEST, self.chain.signer_cert, self.other_chain.signer_key, self.chain.ca_cert)

    def test_wrong_intermediate(self):
        with self.assertRaises(CertificateError):
            sign(MANIFEST, self.chain.signer_cert, self.chain.signer_key, self.other_chain.ca_cert)

    def test_unsupported_key_type(self):
        with self.assertRaises(SigningError):
            sign(MANIFEST, self.chain.signer_cert, ed25519.Ed25519PrivateKey.generate(), self.chain.ca_cert)

    def test_unsupported_digest(self):
        with self.assertRaises(ValueError):
            SignatureEngine(digest=hashes.MD5())

    def test_errors_are_signing_errors(self):
        self.assertTrue(issubclass(CertificateError, SigningError))
        self.assertTrue(issubclass(KeyMismatchError, SigningError))
        self.assertIsInstance(self.chain.signer_key, rsa.RSAPrivateKey)


if __name__ == "__main__":
    unittest.main()
