"""
Tests for the config_loader module.
"""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import yaml

from scholargraph.utils import config_loader
from scholargraph.utils.config_loader import ENV_VAR, load_config


class TestConfigLoader(unittest.TestCase):
    """Resolution order: explicit, env var, cwd, repository root, empty."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.original_cwd = os.getcwd()
        self.workdir = self.root / "work"
        self.workdir.mkdir()
        os.chdir(self.workdir)
        # Pretend the package lives under <root>/pkg so the repository root is <root>.
        self.file_patch = patch.object(config_loader, "__file__", str(self.root / "pkg" / "utils" / "config_loader.py"))
        self.file_patch.start()
        self.env_patch = patch.dict(os.environ)
        self.env_patch.start()
        os.environ.pop(ENV_VAR, None)

    def tearDown(self):
        self.env_patch.stop()
        self.file_patch.stop()
        os.chdir(self.original_cwd)
        self.tmp.cleanup()

    def _write(self, path: Path, data) -> Path:
        with open(path, "w") as f:
            yaml.dump(data, f)
        return path

    def test_load_explicit_config_path(self):
        data = {"models": {"graph": {"provider": "openai", "model": "gpt-4o"}}}
        path = self._write(self.root / "custom.yaml", data)
        self.assertEqual(load_config(path), data)

    def test_load_from_environment_variable(self):
        data = {"filters": {"older_than_year": 2015}}
        os.environ[ENV_VAR] = str(self._write(self.root / "env.yaml", data))
        self.assertEqual(load_config(), data)

    def test_missing_explicit_path_falls_through(self):
        data = {"language": "German"}
        os.environ[ENV_VAR] = str(self._write(self.root / "env.yaml", data))
        self.assertEqual(load_config(self.root / "missing.yaml"), data)

    def test_load_from_current_directory(self):
        data = {"layout": {"width": 1200}}
        self._write(self.workdir / "config.yaml", data)
        self.assertEqual(load_config(), data)

    def test_repository_config_before_example(self):
        self._write(self.root / "config.example.yaml", {"example": True})
        self.assertEqual(load_config(), {"example": True})
        self._write(self.root / "config.yaml", {"example": False})
        self.assertEqual(load_config(), {"example": False})

    def test_empty_dict_fallback(self):
        self.assertEqual(load_config(), {})

    def test_empty_file_is_empty_config(self):
        path = self.root / "empty.yaml"
        path.write_text("")
        self.assertEqual(load_config(path), {})

    def test_non_mapping_rejected(self):
        path = self._write(self.root / "list.yaml", ["a", "b"])
        with self.assertRaises(ValueError):
            load_config(path)


if __name__ == '__main__':
    unittest.main()
