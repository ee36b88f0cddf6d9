"""
Tests for the pkpass command line.

Usage:
    python -m unittest pkpass.test_cli
"""

import tempfile
import unittest
import zipfile
from pathlib import Path

from click.testing import CliRunner

from pkpass.cli import EXIT_INTEGRITY, EXIT_INVALID, main
from pkpass.config import ENV_CERTIFICATE_PATH, ENV_KEY_PATH, ENV_P12_PATH, ENV_WWDR_CERT_PATH
from pkpass.models import CurrencyAmount
from pkpass.package import Package
from pkpass.pass_builder import PassBuilder, PassConfig

CONFIG = PassConfig(
    organization_name="Test organization",
    description="Super gentlememe pass",
    pass_type_identifier="pass.com.example.dev",
    team_identifier="AA00AA0A0A",
    serial_number="ABC123",
)


class TestCli(unittest.TestCase):
    """build, inspect and personalize against development certificates"""

    @classmethod
    def setUpClass(cls):
        cls.tmp = tempfile.TemporaryDirectory()
        cls.directory = Path(cls.tmp.name)
        cls.runner = CliRunner()

        result = cls.runner.invoke(main, ["dev-certs", str(cls.directory / "certs")])
        assert result.exit_code == 0, result.output
        certs = cls.directory / "certs"
        cls.ca_path = certs / "wwdr.pem"
        cls.env = {
            ENV_CERTIFICATE_PATH: str(certs / "certificate.pem"),
            ENV_KEY_PATH: str(certs / "key.pem"),
            ENV_WWDR_CERT_PATH: str(cls.ca_path),
            ENV_P12_PATH: None,
        }

        pass_obj = (
            PassBuilder(CONFIG)
            .store_card()
            .primary_field("balance", CurrencyAmount(amount=25, currency_code="EUR"), label="BALANCE")
            .secondary_field("member", "Ada Lovelace")
            .build()
        )
        cls.pass_json = cls.directory / "pass.json"
        cls.pass_json.write_bytes(pass_obj.to_json_bytes())

        cls.assets_dir = cls.directory / "assets"
        (cls.assets_dir / "en.lproj").mkdir(parents=True)
        (cls.assets_dir / "logo.png").write_bytes(b"logo")
        (cls.assets_dir / "en.lproj" / "pass.strings").write_bytes(b'"BALANCE" = "Balance";\n')

    @classmethod
    def tearDownClass(cls):
        cls.tmp.cleanup()

    def invoke(self, *args):
        return self.runner.invoke(main, [str(arg) for arg in args], env=self.env)

    def build(self, name="card.pkpass"):
        out = self.directory / name
        result = self.invoke("build", self.pass_json, "--assets-dir", self.assets_dir,
                             "--placeholder-icon", "--out", out)
        self.assertEqual(result.exit_code, 0, result.output)
        return out, result

    def test_dev_certs_output(self):
        result = self.invoke("dev-certs", self.directory / "more-certs")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue((self.directory / "more-certs" / "pkpass.env").is_file())
        self.assertIn("Use with: --env-file", result.output)

    def test_build(self):
        out, result = self.build()
        self.assertIn(f"Created: {out}", result.output)
        self.assertIn("Added placeholder icon", result.output)
        package = Package.read(out)
        self.assertEqual(sorted(package.assets), [
            "en.lproj/pass.strings", "icon.png", "icon@2x.png", "icon@3x.png", "logo.png",
        ])
        self.assertEqual(package.pass_obj.get_value("member"), "Ada Lovelace")

    def test_build_with_env_file(self):
        out = self.directory / "env-file.pkpass"
        env = dict(self.env, **{ENV_CERTIFICATE_PATH: None, ENV_KEY_PATH: None, ENV_WWDR_CERT_PATH: None})
        result = self.runner.invoke(main, [
            "build", str(self.pass_json), "--asset", f"icon.png={self.assets_dir / 'logo.png'}",
            "--env-file", str(self.directory / "certs" / "pkpass.env"), "--out", str(out),
        ], env=env)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Manifest entries: icon.png, pass.json", result.output)

    def test_inspect(self):
        out, _ = self.build("inspect.pkpass")
        result = self.invoke("inspect", out, "--trust-root", self.ca_path)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Signature OK", result.output)
        self.assertIn("Style: storeCard", result.output)
        self.assertIn("[primary] balance (BALANCE): 25 EUR", result.output)

        result = self.invoke("inspect", out, "--json")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('"serialNumber": "ABC123"', result.output)

    def test_personalize(self):
        out, _ = self.build("template.pkpass")
        copy_path = self.directory / "copy.pkpass"
        result = self.invoke("personalize", out, "--set", "member=Grace Hopper", "--set", "balance=7.5",
                             "--serial", "T-0002", "--out", copy_path)
        self.assertEqual(result.exit_code, 0, result.output)

        package = Package.read(copy_path)
        self.assertEqual(package.pass_obj.serial_number, "T-0002")
        self.assertEqual(package.pass_obj.get_value("member"), "Grace Hopper")
        self.assertEqual(package.pass_obj.get_value("balance"), CurrencyAmount(amount=7.5, currency_code="EUR"))
        self.assertEqual(Package.read(out).pass_obj.get_value("member"), "Ada Lovelace")

    def test_personalize_unknown_key(self):
        out, _ = self.build("unknown-key.pkpass")
        result = self.invoke("personalize", out, "--set", "nope=1", "--out", self.directory / "x.pkpass")
        self.assertEqual(result.exit_code, EXIT_INVALID)
        self.assertIn("No field with key 'nope'", result.output)

    def test_tampered_archive_rejected(self):
        out, _ = self.build("tampered.pkpass")
        tampered = self.directory / "tampered-copy.pkpass"
        with zipfile.ZipFile(out) as source, zipfile.ZipFile(tampered, "w") as target:
            for info in source.infolist():
                data = source.read(info)
                target.writestr(info, b"lego" if info.filename == "logo.png" else data)
        result = self.invoke("inspect", tampered)
        self.assertEqual(result.exit_code, EXIT_INTEGRITY)
        self.assertIn("Rejected:", result.output)

    def test_invalid_pass_json(self):
        bad = self.directory / "bad.json"
        bad.write_text('{"formatVersion": 1, "generic": {}}', encoding="utf-8")
        result = self.invoke("build", bad, "--out", self.directory / "bad.pkpass")
        self.assertEqual(result.exit_code, EXIT_INVALID)
        self.assertIn("passTypeIdentifier", result.output)

    def test_missing_configuration(self):
        env = {ENV_CERTIFICATE_PATH: None, ENV_KEY_PATH: None, ENV_WWDR_CERT_PATH: None, ENV_P12_PATH: None}
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(main, [
                "build", str(self.pass_json), "--out", "x.pkpass",
            ], env=env)
        self.assertEqual(result.exit_code, EXIT_INVALID)
        self.assertIn(f"{ENV_CERTIFICATE_PATH} is not set", result.output)


if __name__ == "__main__":
    unittest.main()
