"""Tests for analysis settings loading and validation."""

import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from core.settings import (
    AnalysisSettings,
    ConfigValidationError,
    load_settings,
    load_settings_file,
    resolve_strict_config_validation,
    settings_from_mapping,
)


class TestSettings(unittest.TestCase):
    """Test settings loading and validation."""

    def _write(self, content: str, name: str = "livingdoc.yml") -> str:
        directory = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, directory)
        path = Path(directory) / name
        path.write_text(content, encoding="utf-8")
        return str(path)

    def test_defaults(self) -> None:
        """Test default settings."""
        settings = AnalysisSettings()
        self.assertIn("bin", settings.exclude_dirs)
        self.assertEqual(settings.test_project_markers, ("Test",))
        self.assertFalse(settings.split_field_declarators)
        self.assertEqual(settings.max_workers, 1)
        self.assertTrue(settings.continue_on_error)

    def test_load_non_strict_missing_returns_empty(self) -> None:
        """Test a missing file in non-strict mode."""
        self.assertEqual(load_settings_file("/definitely/missing.yml", strict=False), {})

    def test_load_strict_missing_raises(self) -> None:
        """Test a missing file in strict mode."""
        with self.assertRaises(ConfigValidationError):
            load_settings_file("/definitely/missing.yml", strict=True)

    def test_invalid_yaml(self) -> None:
        """Test invalid YAML in both modes."""
        path = self._write("exclude_dirs: [unclosed\n")
        self.assertEqual(load_settings_file(path, strict=False), {})
        with self.assertRaises(ConfigValidationError):
            load_settings_file(path, strict=True)

    def test_non_mapping_payload(self) -> None:
        """Test a YAML list payload."""
        path = self._write("- just\n- a list\n")
        self.assertEqual(load_settings_file(path, strict=False), {})
        with self.assertRaises(ConfigValidationError):
            load_settings_file(path, strict=True)

    def test_values_from_mapping(self) -> None:
        """Test reading values from a mapping."""
        settings = settings_from_mapping(
            {
                "exclude_dirs": ["bin", "generated"],
                "test_project_markers": "xunit",
                "split_field_declarators": True,
                "max_workers": 4,
                "pretty": True,
            },
            strict=True,
        )
        self.assertEqual(settings.exclude_dirs, ("bin", "generated"))
        self.assertEqual(settings.test_project_markers, ("xunit",))
        self.assertTrue(settings.split_field_declarators)
        self.assertEqual(settings.max_workers, 4)
        self.assertTrue(settings.pretty)

    def test_unknown_key(self) -> None:
        """Test an unknown key in both modes."""
        settings = settings_from_mapping({"colour": "blue"}, strict=False)
        self.assertEqual(settings.extra, {"colour": "blue"})
        with self.assertRaises(ConfigValidationError):
            settings_from_mapping({"colour": "blue"}, strict=True)

    def test_wrong_types(self) -> None:
        """Test wrongly typed values."""
        settings = settings_from_mapping({"max_workers": "many", "pretty": "yes"}, strict=False)
        self.assertEqual(settings.max_workers, 1)
        self.assertFalse(settings.pretty)
        with self.assertRaises(ConfigValidationError):
            settings_from_mapping({"max_workers": 0}, strict=True)
        with self.assertRaises(ConfigValidationError):
            settings_from_mapping({"exclude_dirs": [1, 2]}, strict=True)

    def test_strict_flag_from_env(self) -> None:
        """Test the strictness env flag."""
        with mock.patch.dict(os.environ, {"STRICT_CONFIG_VALIDATION": "true"}):
            self.assertTrue(resolve_strict_config_validation())
        with mock.patch.dict(os.environ, {"STRICT_CONFIG_VALIDATION": "0"}):
            self.assertFalse(resolve_strict_config_validation())

    def test_load_settings_from_search_dir(self) -> None:
        """Test finding livingdoc.yml in the search directory."""
        path = self._write("max_workers: 2\n")
        with mock.patch.dict(os.environ, {}, clear=False):
            os.environ.pop("LIVINGDOC_MAX_WORKERS", None)
            settings = load_settings(search_dir=os.path.dirname(path), strict=True)
        self.assertEqual(settings.max_workers, 2)

    def test_explicit_path_wins(self) -> None:
        """Test that an explicit path beats the search directory."""
        search = self._write("max_workers: 2\n")
        explicit = self._write("max_workers: 3\n", name="custom.yml")
        with mock.patch.dict(os.environ, {}, clear=False):
            os.environ.pop("LIVINGDOC_MAX_WORKERS", None)
            settings = load_settings(config_path=explicit, search_dir=os.path.dirname(search), strict=True)
        self.assertEqual(settings.max_workers, 3)

    def test_env_override(self) -> None:
        """Test the worker count env override."""
        with mock.patch.dict(os.environ, {"LIVINGDOC_MAX_WORKERS": "8"}):
            self.assertEqual(load_settings(strict=True).max_workers, 8)
        with mock.patch.dict(os.environ, {"LIVINGDOC_MAX_WORKERS": "zero"}):
            self.assertEqual(load_settings(strict=False).max_workers, 1)
            with self.assertRaises(ConfigValidationError):
                load_settings(strict=True)


if __name__ == "__main__":
    unittest.main()
