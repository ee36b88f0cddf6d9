"""
Tests for asset naming, localization tables and placeholder artwork.

Usage:
    python -m unittest pkpass.test_assets
"""

import io
import tempfile
import unittest
from pathlib import Path

from PIL import Image

from pkpass.assets import (
    ImageKind,
    decode_strings,
    discover_assets,
    encode_strings,
    image_name,
    localized,
    validate_asset_name,
)
from pkpass.exceptions import InvalidAssetNameError
from pkpass.images import contrasting, placeholder_icon, placeholder_icons
from pkpass.models import Color


class TestAssetNames(unittest.TestCase):

    def test_image_names(self):
        self.assertEqual(image_name(ImageKind.ICON), "icon.png")
        self.assertEqual(image_name(ImageKind.LOGO, 2), "logo@2x.png")
        self.assertEqual(image_name(ImageKind.STRIP, 3, "de"), "de.lproj/strip@3x.png")
        with self.assertRaises(InvalidAssetNameError):
            image_name(ImageKind.ICON, 4)

    def test_localized(self):
        self.assertEqual(localized("pass.strings", "zh-Hans"), "zh-Hans.lproj/pass.strings")
        self.assertEqual(localized("logo.png"), "logo.png")
        with self.assertRaises(InvalidAssetNameError):
            localized("logo.png", "../etc")

    def test_valid_names(self):
        for name in ("icon.png", "en.lproj/pass.strings", "pt_BR.lproj/logo@2x.png", "Base.lproj/strip.png",
                     "terms.txt"):
            with self.subTest(name=name):
                self.assertEqual(validate_asset_name(name), name)

    def test_invalid_names(self):
        for name in ("", "../icon.png", "/icon.png", "a/b/c.png", "images/icon.png",
                     ".DS_Store", "en.lproj/.hidden", "dir\\icon.png", "pass.json",
                     "manifest.json", "signature", "en.lproj/", "Basement.lproj/icon.png"):
            with self.subTest(name=name):
                with self.assertRaises(InvalidAssetNameError):
                    validate_asset_name(name)

    def test_discover_assets(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "icon.png").write_bytes(b"icon")
            (root / "pass.json").write_bytes(b"{}")
            (root / ".DS_Store").write_bytes(b"")
            (root / "de.lproj").mkdir()
            (root / "de.lproj" / "pass.strings").write_bytes(b'"a" = "b";\n')
            (root / "notes").mkdir()
            with self.assertLogs("pkpass.assets", level="WARNING"):
                assets = discover_assets(root)
            self.assertEqual(sorted(assets), ["de.lproj/pass.strings", "icon.png"])


class TestStrings(unittest.TestCase):

    def test_encode_sorted_and_escaped(self):
        data = encode_strings({"status": 'Gültig "jetzt"', "gate": "Tor\n2"})
        self.assertEqual(
            data.decode("utf-8"),
            '"gate" = "Tor\\n2";\n"status" = "Gültig \\"jetzt\\"";\n',
        )

    def test_decode(self):
        text = '/* header */\n// comment\n"gate" = "Tor\\n2";\n\n"status" = "Gültig";\n'
        self.assertEqual(decode_strings(text.encode("utf-8")), {"gate": "Tor\n2", "status": "Gültig"})
        self.assertEqual(decode_strings(text.encode("utf-16")), {"gate": "Tor\n2", "status": "Gültig"})

    def test_decode_malformed(self):
        with self.assertRaises(ValueError):
            decode_strings(b'"gate" "Tor";')


class TestPlaceholderIcons(unittest.TestCase):

    def test_sizes(self):
        icons = placeholder_icons(Color(10, 20, 30))
        self.assertEqual(sorted(icons), ["icon.png", "icon@2x.png", "icon@3x.png"])
        with Image.open(io.BytesIO(icons["icon@2x.png"])) as im:
            self.assertEqual(im.format, "PNG")
            self.assertEqual(im.size, (58, 58))

    def test_contrast(self):
        self.assertEqual(contrasting(Color(255, 255, 255)), (0, 0, 0))
        self.assertEqual(contrasting(Color(0, 0, 0)), (255, 255, 255))
        with Image.open(io.BytesIO(placeholder_icon())) as im:
            self.assertEqual(im.getpixel((0, 0)), (33, 150, 243))


if __name__ == "__main__":
    unittest.main()
