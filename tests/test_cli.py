"""Command line tests."""

import json
import os
import shutil
import tempfile
import unittest
import zipfile
from unittest.mock import patch

from click.testing import CliRunner

from modpackman.cli import main
from tests.helpers import mod_zip_bytes


class TestCli(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.root = os.path.join(self.test_dir, "modpacks")
        self.runner = CliRunner()
        # 日志输出不混入命令输出
        patcher = patch("modpackman.cli.setup_logger")
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def invoke(self, *args, **kwargs):
        return self.runner.invoke(main, ["--modpack-dir", self.root, *args], **kwargs)

    def _mod_file(self, name, version):
        path = os.path.join(self.test_dir, f"{name}_{version}.zip")
        with open(path, "wb") as f:
            f.write(mod_zip_bytes(name, version))
        return path

    def test_create_and_list(self):
        result = self.invoke("create", "vanilla-plus")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("vanilla-plus", result.output)

        self.invoke("create", "alpha")
        result = self.invoke("list")
        self.assertEqual(result.output.split(), ["alpha", "vanilla-plus"])

    def test_upload_toggle_and_export(self):
        self.invoke("create", "vanilla-plus")

        result = self.invoke("upload", "vanilla-plus", self._mod_file("bobplates", "1.0.0"))
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("[✓] bobplates v1.0.0 (bobplates_1.0.0.zip)", result.output)

        result = self.invoke("toggle", "vanilla-plus", "bobplates")
        self.assertIn("已禁用", result.output)
        result = self.invoke("mods", "vanilla-plus")
        self.assertIn("[✗] bobplates", result.output)

        output = os.path.join(self.test_dir, "out.zip")
        result = self.invoke("export", "vanilla-plus", "-o", output)
        self.assertEqual(result.exit_code, 0, result.output)
        with zipfile.ZipFile(output) as zf:
            self.assertEqual(
                json.loads(zf.read("mod-list.json")),
                {"mods": [{"name": "bobplates", "enabled": False}]},
            )

    def test_export_defaults_to_pack_name(self):
        self.invoke("create", "vanilla-plus")
        with self.runner.isolated_filesystem(temp_dir=self.test_dir):
            result = self.invoke("export", "vanilla-plus")
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertTrue(os.path.exists("vanilla-plus.zip"))

    def test_install_from_local_url_and_remove(self):
        self.invoke("create", "vanilla-plus")
        source = self._mod_file("helper", "0.2")

        result = self.invoke("install", "vanilla-plus", "helper", f"file://{source}", "helper_0.2.zip")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("helper v0.2", result.output)

        result = self.invoke("remove", "vanilla-plus", "helper")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("没有模组", self.invoke("mods", "vanilla-plus").output)

    def test_unknown_pack_exits_with_error(self):
        result = self.invoke("mods", "ghost")
        self.assertEqual(result.exit_code, 1)
        self.assertIn("ghost", result.output)

    def test_delete_requires_confirmation(self):
        self.invoke("create", "vanilla-plus")

        result = self.invoke("delete", "vanilla-plus", input="n\n")
        self.assertNotEqual(result.exit_code, 0)
        self.assertTrue(os.path.isdir(os.path.join(self.root, "vanilla-plus")))

        result = self.invoke("delete", "vanilla-plus", "--yes")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertFalse(os.path.exists(os.path.join(self.root, "vanilla-plus")))

    def test_reset(self):
        self.invoke("create", "vanilla-plus")
        self.invoke("upload", "vanilla-plus", self._mod_file("bobplates", "1.0.0"))

        result = self.invoke("reset", "vanilla-plus", "--yes")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(os.listdir(os.path.join(self.root, "vanilla-plus")), ["mod-list.json"])

    def test_install_many_rejects_missing_version(self):
        self.invoke("create", "vanilla-plus")
        result = self.invoke("install-many", "vanilla-plus", "bobplates")
        self.assertEqual(result.exit_code, 2)

    def test_bad_config_file(self):
        config = os.path.join(self.test_dir, "modpacks.ini")
        with open(config, "w") as f:
            f.write("[x]")
        result = self.runner.invoke(main, ["-c", config, "list"])
        self.assertEqual(result.exit_code, 1)


if __name__ == "__main__":
    unittest.main()
