"""Tests for top-level package lazy exports."""

from __future__ import annotations

import unittest

import alokahub


class PackageExportTests(unittest.TestCase):
    """Ensure __getattr__ and exported symbols behave as expected."""

    def test_lazy_exports_resolve_known_symbols(self) -> None:
        self.assertTrue(callable(alokahub.load_config))
        self.assertTrue(callable(alokahub.ensure_config_dir))
        self.assertIsNotNone(alokahub.TurnOrchestrator)
        self.assertIsNotNone(alokahub.ChatSession)
        self.assertIsNotNone(alokahub.FileIngestor)
        self.assertIsNotNone(alokahub.Message)
        self.assertIsNotNone(alokahub.AttachmentError)
        self.assertIsNotNone(alokahub.RequestStateManager)

    def test_every_name_in_all_resolves(self) -> None:
        for name in alokahub.__all__:
            self.assertIsNotNone(getattr(alokahub, name), name)

    def test_unknown_symbol_raises_attribute_error(self) -> None:
        with self.assertRaises(AttributeError):
            getattr(alokahub, "THIS_DOES_NOT_EXIST")


if __name__ == "__main__":
    unittest.main()
