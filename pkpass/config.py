"""
Signing configuration from environment variables (and an optional .env file).

Environment Variables:
    - PKPASS_CERTIFICATE_PATH: signer certificate (PEM or DER)
    - PKPASS_KEY_PATH: signer private key (PEM or DER)
    - PKPASS_KEY_PASSWORD: password of the private key, if encrypted
    - PKPASS_P12_PATH: PKCS#12 bundle used instead of certificate + key
    - PKPASS_P12_PASSWORD: password of the PKCS#12 bundle
    - PKPASS_WWDR_CERT_PATH: intermediate (Apple WWDR) certificate
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import dotenv_values, find_dotenv, load_dotenv

from .certificates import (
    load_certificate_file,
    load_pkcs12_file,
    load_private_key_file,
)
from .exceptions import ConfigurationError
from .signer import SigningMaterial

logger = logging.getLogger(__name__)

ENV_CERTIFICATE_PATH = "PKPASS_CERTIFICATE_PATH"
ENV_KEY_PATH = "PKPASS_KEY_PATH"
ENV_KEY_PASSWORD = "PKPASS_KEY_PASSWORD"
ENV_P12_PATH = "PKPASS_P12_PATH"
ENV_P12_PASSWORD = "PKPASS_P12_PASSWORD"
ENV_WWDR_CERT_PATH = "PKPASS_WWDR_CERT_PATH"


@dataclass
class SigningConfig:
    """Where the signing material lives"""
    certificate_path: Optional[str] = None
    key_path: Optional[str] = None
    key_password: str = ""
    p12_path: Optional[str] = None
    p12_password: str = ""
    wwdr_cert_path: Optional[str] = None

    @classmethod
    def from_env(cls, env_file: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None) -> "SigningConfig":
        """Read the PKPASS_* variables.

        Without ``environ`` the process environment is used, after loading
        ``env_file`` (or a .env found from the working directory). With
        ``environ``, values from ``env_file`` only fill in missing keys.
        """
        if environ is None:
            path = env_file or find_dotenv(usecwd=True)
            if path:
                load_dotenv(path, override=False)
                logger.debug(f"Loaded environment from {path}")
            values: Mapping[str, str] = os.environ
        else:
            values = dict(dotenv_values(env_file)) if env_file else {}
            values.update(environ)

        def get(name: str) -> Optional[str]:
            value = values.get(name)
            return value if value else None

        return cls(
            certificate_path=get(ENV_CERTIFICATE_PATH),
            key_path=get(ENV_KEY_PATH),
            key_password=values.get(ENV_KEY_PASSWORD) or "",
            p12_path=get(ENV_P12_PATH),
            p12_password=values.get(ENV_P12_PASSWORD) or "",
            wwdr_cert_path=get(ENV_WWDR_CERT_PATH),
        )

    @property
    def uses_p12(self) -> bool:
        return self.p12_path is not None

    def problems(self) -> List[str]:
        problems = []
        required = []
        if self.uses_p12:
            required.append(("PKCS#12 bundle", ENV_P12_PATH, self.p12_path))
        else:
            required.append(("Certificate", ENV_CERTIFICATE_PATH, self.certificate_path))
            required.append(("Private key", ENV_KEY_PATH, self.key_path))
            required.append(("WWDR certificate", ENV_WWDR_CERT_PATH, self.wwdr_cert_path))
        if self.uses_p12 and self.wwdr_cert_path:
            required.append(("WWDR certificate", ENV_WWDR_CERT_PATH, self.wwdr_cert_path))

        for label, variable, path in required:
            if not path:
                problems.append(f"{variable} is not set")
            elif not Path(path).is_file():
                problems.append(f"{label} not found at {path}")
        return problems

    def validate(self) -> bool:
        """Raise ConfigurationError listing every problem"""
        problems = self.problems()
        if problems:
            raise ConfigurationError(problems)
        return True

    def load_material(self) -> SigningMaterial:
        """Decode the configured files into SigningMaterial.

        Raises ConfigurationError for missing settings and CertificateError
        for unreadable or malformed material.
        """
        self.validate()

        if self.uses_p12:
            key, cert, additional = load_pkcs12_file(self.p12_path, self.p12_password)
            if self.wwdr_cert_path:
                intermediate = load_certificate_file(self.wwdr_cert_path, "WWDR certificate")
            elif additional:
                intermediate = additional[0]
            else:
                raise ConfigurationError([
                    f"{ENV_WWDR_CERT_PATH} is not set and the PKCS#12 bundle has no intermediate certificate"
                ])
            logger.debug(f"Loaded signing material from PKCS#12 bundle {self.p12_path}")
        else:
            cert = load_certificate_file(self.certificate_path, "signer certificate")
            key = load_private_key_file(self.key_path, self.key_password)
            intermediate = load_certificate_file(self.wwdr_cert_path, "WWDR certificate")
            logger.debug(f"Loaded signing material from {self.certificate_path}")

        return SigningMaterial(signer_cert=cert, signer_key=key, intermediate_cert=intermediate)
