"""Tests for configuration loading and name validation."""

import json
import os
import shutil
import tempfile
import unittest

from modpackman.exceptions import (
    ConfigParseError,
    ConfigValidationError,
    InvalidNameError,
)
from modpackman.models import FACTORIO_PORTAL_URL, ModPackManConfig
from modpackman.utils import load_config, validate_file_name, validate_pack_name


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def _write(self, name, content):
        path = os.path.join(self.test_dir, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def test_defaults_without_file(self):
        config = load_config(None)
        self.assertEqual(config.modpack_dir, "modpacks")
        self.assertEqual(config.portal.base_url, FACTORIO_PORTAL_URL)
        self.assertEqual(config.server.port, 8080)

    def test_toml(self):
        path = self._write(
            "modpacks.toml",
            'modpack_dir = "/srv/factorio/modpacks"\n'
            "[portal]\n"
            'base_url = "https://mods.example.com/"\n'
            'username = "alice"\n'
            'token = "secret"\n'
            "[server]\n"
            "port = 9000\n",
        )
        config = load_config(path)
        self.assertEqual(config.modpack_dir, "/srv/factorio/modpacks")
        self.assertEqual(config.portal.base_url, "https://mods.example.com")
        self.assertEqual(config.portal.username, "alice")
        self.assertEqual(config.server.port, 9000)

    def test_json_and_yaml(self):
        json_path = self._write("c.json", json.dumps({"download": {"chunk_size": 1024}}))
        self.assertEqual(load_config(json_path).download.chunk_size, 1024)

        yaml_path = self._write("c.yaml", "logging:\n  level: debug\n  file: app.log\n")
        config = load_config(yaml_path)
        self.assertEqual(config.logging.level, "debug")
        self.assertEqual(config.logging.file, "app.log")

    def test_unknown_suffix(self):
        path = self._write("config.ini", "[x]")
        with self.assertRaises(ConfigParseError):
            load_config(path)

    def test_broken_file(self):
        path = self._write("broken.toml", "modpack_dir = ")
        with self.assertRaises(ConfigParseError):
            load_config(path)

    def test_missing_file(self):
        with self.assertRaises(ConfigParseError):
            load_config(os.path.join(self.test_dir, "nope.toml"))

    def test_validation(self):
        with self.assertRaises(ConfigValidationError):
            ModPackManConfig.from_dict({"server": {"port": "80"}})
        with self.assertRaises(ConfigValidationError):
            ModPackManConfig.from_dict({"portal": "nope"})
        with self.assertRaises(ConfigValidationError):
            ModPackManConfig.from_dict({"logging": {"level": "loud"}})
        with self.assertRaises(ConfigValidationError):
            ModPackManConfig.from_dict({"download": {"chunk_size": 0}})


class TestNameValidation(unittest.TestCase):
    def test_valid_pack_names(self):
        for name in ["vanilla-plus", "Space Exploration", "pack_2.0", "a"]:
            with self.subTest(name=name):
                self.assertEqual(validate_pack_name(name), name)

    def test_unsafe_pack_names(self):
        for name in ["", ".", "..", "../evil", "a/b", "a\\b", ".hidden", " padded", "x" * 129]:
            with self.subTest(name=name):
                with self.assertRaises(InvalidNameError):
                    validate_pack_name(name)

    def test_file_names(self):
        self.assertEqual(validate_file_name("bobplates_1.0.0.zip"), "bobplates_1.0.0.zip")
        for name in ["", "..", "../x.zip", "dir/x.zip", ".tmp", "mod-list.json"]:
            with self.subTest(name=name):
                with self.assertRaises(InvalidNameError):
                    validate_file_name(name)


if __name__ == "__main__":
    unittest.main()
