"""
Tests for manifest generation.

Usage:
    python -m unittest pkpass.test_manifest
"""

import hashlib
import io
import tempfile
import unittest
from pathlib import Path

from pkpass.exceptions import AssetReadError
from pkpass.manifest import Manifest, generate, read_bytes, sha1_hex


class TestManifest(unittest.TestCase):

    def test_sha1_of_every_file(self):
        manifest = generate({"pass.json": b"{}", "icon.png": b"icon"})
        self.assertEqual(manifest["pass.json"], hashlib.sha1(b"{}").hexdigest())
        self.assertEqual(manifest["icon.png"], hashlib.sha1(b"icon").hexdigest())
        self.assertEqual(len(manifest["icon.png"]), 40)
        self.assertEqual(manifest["icon.png"], manifest["icon.png"].lower())

    def test_keys_sorted_and_canonical_bytes(self):
        files = {"pass.json": b"{}", "icon.png": b"icon", "de.lproj/pass.strings": b"x"}
        manifest = generate(files)
        self.assertEqual(list(manifest), ["de.lproj/pass.strings", "icon.png", "pass.json"])
        expected = (
            '{"de.lproj/pass.strings":"%s","icon.png":"%s","pass.json":"%s"}'
            % (sha1_hex(b"x"), sha1_hex(b"icon"), sha1_hex(b"{}"))
        ).encode("utf-8")
        self.assertEqual(manifest.to_json_bytes(), expected)

    def test_same_input_same_bytes(self):
        files = {f"file{i}.png": bytes([i]) * 1000 for i in range(20)}
        first = generate(files, max_workers=8)
        second = generate(dict(reversed(list(files.items()))), max_workers=1)
        self.assertEqual(first.to_json_bytes(), second.to_json_bytes())

    def test_sources(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "logo.png"
            path.write_bytes(b"logo")
            manifest = generate({
                "a.png": bytearray(b"logo"),
                "b.png": path,
                "c.png": str(path),
                "d.png": io.BytesIO(b"logo"),
            })
            self.assertEqual(set(manifest.values()), {sha1_hex(b"logo")})
            self.assertEqual(read_bytes("b.png", path), b"logo")

    def test_unreadable_file(self):
        with self.assertLogs("pkpass.manifest", level="ERROR"):
            with self.assertRaises(AssetReadError) as ctx:
                generate({"icon.png": b"icon", "logo.png": Path("/nonexistent/logo.png")})
        self.assertEqual(ctx.exception.name, "logo.png")

    def test_text_mode_file_rejected(self):
        with self.assertRaises(AssetReadError):
            generate({"notes.txt": io.StringIO("text")})

    def test_empty(self):
        self.assertEqual(generate({}).to_json_bytes(), b"{}")

    def test_immutable_and_comparable(self):
        manifest = Manifest({"b": "2", "a": "1"})
        with self.assertRaises(TypeError):
            manifest["c"] = "3"
        self.assertEqual(manifest, {"a": "1", "b": "2"})
        self.assertEqual(hash(manifest), hash(Manifest({"a": "1", "b": "2"})))

    def test_parse(self):
        manifest = Manifest.from_json_bytes(b'{"pass.json":"ABCDEF"}')
        self.assertEqual(manifest["pass.json"], "abcdef")
        with self.assertRaises(ValueError):
            Manifest.from_json_bytes(b'{"pass.json": 1}')
        with self.assertRaises(ValueError):
            Manifest.from_json_bytes(b"not json")

    def test_differences(self):
        declared = Manifest({"icon.png": "1", "logo.png": "2", "pass.json": "3"})
        actual = Manifest({"icon.png": "1", "pass.json": "x", "strip.png": "4"})
        self.assertEqual(declared.differences(actual), [
            "'logo.png' is listed in the manifest but missing from the archive",
            "digest mismatch for 'pass.json'",
            "'strip.png' is in the archive but not listed in the manifest",
        ])
        self.assertEqual(declared.differences(declared), [])


if __name__ == "__main__":
    unittest.main()
