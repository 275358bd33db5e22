"""Tests for the JSON key-value store."""

from __future__ import annotations

import json
import os
from pathlib import Path
import tempfile
import unittest

from alokahub.exceptions import StorageFormatError
from alokahub.storage import KEY_API_KEY, KEY_BASE_URL, KeyValueStore


class KeyValueStoreTests(unittest.TestCase):
    """Validate persistence of string values."""

    def test_values_survive_a_new_instance(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "nested" / "store.json"
            store = KeyValueStore(path)
            store.set(KEY_BASE_URL, "https://example.com/")
            store.update({KEY_API_KEY: "sk-1", "lang": "si"})

            reloaded = KeyValueStore(path)
            self.assertEqual(reloaded.get(KEY_BASE_URL), "https://example.com/")
            self.assertEqual(reloaded.get(KEY_API_KEY), "sk-1")
            self.assertEqual(reloaded.get("lang"), "si")

    def test_missing_key_returns_default(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = KeyValueStore(Path(temp_dir) / "store.json")
            self.assertIsNone(store.get("absent"))
            self.assertEqual(store.get("absent", "fallback"), "fallback")

    def test_non_string_values_are_dropped_on_load(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "store.json"
            path.write_text(json.dumps({"a": "x", "b": 3}), encoding="utf-8")
            store = KeyValueStore(path)
            self.assertEqual(store.get("a"), "x")
            self.assertIsNone(store.get("b"))

    def test_invalid_json_raises_format_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "store.json"
            path.write_text("{not json", encoding="utf-8")
            with self.assertRaises(StorageFormatError):
                KeyValueStore(path).get("a")

    @unittest.skipUnless(os.name == "posix", "POSIX permissions only")
    def test_store_file_is_private(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "store.json"
            KeyValueStore(path).set(KEY_API_KEY, "secret")
            self.assertEqual(path.stat().st_mode & 0o777, 0o600)
            self.assertFalse((Path(temp_dir) / ".store.json.tmp").exists())


if __name__ == "__main__":
    unittest.main()
