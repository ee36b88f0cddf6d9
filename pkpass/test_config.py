"""
Tests for signing configuration and certificate loading.

Usage:
    python -m unittest pkpass.test_config
"""

import tempfile
import unittest
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from pkpass.certificates import load_certificate, load_certificates, load_private_key
from pkpass.config import (
    ENV_CERTIFICATE_PATH,
    ENV_KEY_PATH,
    ENV_P12_PASSWORD,
    ENV_P12_PATH,
    ENV_WWDR_CERT_PATH,
    SigningConfig,
)
from pkpass.dev_certs import generate_chain, write_chain
from pkpass.exceptions import CertificateError, ConfigurationError


class TestSigningConfig(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.tmp = tempfile.TemporaryDirectory()
        cls.directory = Path(cls.tmp.name)
        cls.chain = generate_chain()
        cls.paths = write_chain(cls.chain, cls.directory)

        cls.p12_path = cls.directory / "bundle.p12"
        cls.p12_path.write_bytes(pkcs12.serialize_key_and_certificates(
            b"signer", cls.chain.signer_key, cls.chain.signer_cert, [cls.chain.ca_cert],
            serialization.BestAvailableEncryption(b"secret"),
        ))

    @classmethod
    def tearDownClass(cls):
        cls.tmp.cleanup()

    def pem_environ(self):
        return {
            ENV_CERTIFICATE_PATH: str(self.paths["certificate"]),
            ENV_KEY_PATH: str(self.paths["key"]),
            ENV_WWDR_CERT_PATH: str(self.paths["ca"]),
        }

    def test_from_environ(self):
        config = SigningConfig.from_env(environ=self.pem_environ())
        self.assertEqual(config.certificate_path, str(self.paths["certificate"]))
        self.assertFalse(config.uses_p12)
        self.assertEqual(config.problems(), [])

    def test_from_env_file(self):
        config = SigningConfig.from_env(env_file=str(self.paths["env"]), environ={})
        self.assertEqual(Path(config.key_path), self.paths["key"].resolve())
        overridden = SigningConfig.from_env(env_file=str(self.paths["env"]),
                                            environ={ENV_KEY_PATH: "/elsewhere/key.pem"})
        self.assertEqual(overridden.key_path, "/elsewhere/key.pem")

    def test_load_pem_material(self):
        material = SigningConfig.from_env(environ=self.pem_environ()).load_material()
        self.assertEqual(material.signer_cert, self.chain.signer_cert)
        self.assertEqual(material.intermediate_cert, self.chain.ca_cert)
        self.assertEqual(material.signer_key.private_numbers(), self.chain.signer_key.private_numbers())

    def test_every_problem_listed(self):
        config = SigningConfig.from_env(environ={ENV_CERTIFICATE_PATH: "/missing/cert.pem"})
        with self.assertRaises(ConfigurationError) as ctx:
            config.validate()
        self.assertEqual(ctx.exception.problems, [
            "Certificate not found at /missing/cert.pem",
            f"{ENV_KEY_PATH} is not set",
            f"{ENV_WWDR_CERT_PATH} is not set",
        ])
        with self.assertRaises(ConfigurationError):
            config.load_material()

    def test_p12_bundle(self):
        config = SigningConfig.from_env(environ={
            ENV_P12_PATH: str(self.p12_path),
            ENV_P12_PASSWORD: "secret",
        })
        self.assertTrue(config.uses_p12)
        material = config.load_material()
        self.assertEqual(material.signer_cert, self.chain.signer_cert)
        self.assertEqual(material.intermediate_cert, self.chain.ca_cert)

    def test_p12_wrong_password(self):
        config = SigningConfig(p12_path=str(self.p12_path), p12_password="wrong")
        with self.assertRaises(CertificateError):
            config.load_material()

    def test_malformed_certificate_file(self):
        bogus = self.directory / "bogus.pem"
        bogus.write_bytes(b"not a certificate")
        environ = self.pem_environ()
        environ[ENV_CERTIFICATE_PATH] = str(bogus)
        with self.assertRaises(CertificateError):
            SigningConfig.from_env(environ=environ).load_material()


class TestCertificates(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.chain = generate_chain()

    def test_pem_and_der(self):
        cert = self.chain.signer_cert
        self.assertEqual(load_certificate(cert.public_bytes(serialization.Encoding.PEM)), cert)
        self.assertEqual(load_certificate(cert.public_bytes(serialization.Encoding.DER)), cert)

    def test_bundle(self):
        bundle = b"".join(c.public_bytes(serialization.Encoding.PEM)
                          for c in (self.chain.signer_cert, self.chain.ca_cert))
        self.assertEqual(load_certificates(bundle), [self.chain.signer_cert, self.chain.ca_cert])

    def test_encrypted_key(self):
        pem = self.chain.signer_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.BestAvailableEncryption(b"hunter2"),
        )
        key = load_private_key(pem, "hunter2")
        self.assertEqual(key.private_numbers(), self.chain.signer_key.private_numbers())
        with self.assertRaises(CertificateError):
            load_private_key(pem, "wrong")
        with self.assertRaises(CertificateError):
            load_private_key(b"garbage")


if __name__ == "__main__":
    unittest.main()
