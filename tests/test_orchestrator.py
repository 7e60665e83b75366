"""End-to-end use cases through the orchestrator."""

import json
import os
import shutil
import tempfile
import unittest
import zipfile

from modpackman.exceptions import (
    BatchInstallError,
    InvalidNameError,
    ManifestError,
    ModPackExistsError,
    ModPackNotFoundError,
    NoMatchingVersionError,
)
from modpackman.models import InstallRequest, ModPackManConfig, PortalConfig
from modpackman.orchestrator import ModPackOrchestrator
from tests.helpers import StubPortal, mod_zip_bytes


async def _chunks(data: bytes):
    yield data


class TestModPackOrchestrator(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.root = os.path.join(self.test_dir, "modpacks")
        self.portal = StubPortal()
        self.portal.add_mod("bobplates", ["1.0.0", "1.1.0"])
        self.portal.add_mod("helper", ["0.2"])
        base_url = await self.portal.start()
        config = ModPackManConfig(modpack_dir=self.root, portal=PortalConfig(base_url=base_url))
        self.orchestrator = ModPackOrchestrator(config)
        self.base_url = base_url

    async def asyncTearDown(self):
        await self.orchestrator.close()
        await self.portal.close()
        shutil.rmtree(self.test_dir)

    def _manifest(self, pack):
        with open(os.path.join(self.root, pack, "mod-list.json"), encoding="utf-8") as f:
            return json.load(f)["mods"]

    async def test_vanilla_plus_walkthrough(self):
        self.assertEqual(await self.orchestrator.create_pack("vanilla-plus"), ["vanilla-plus"])
        self.assertEqual(await self.orchestrator.list_mods("vanilla-plus"), [])

        mods = await self.orchestrator.install_mod(
            "vanilla-plus", "/download/bobplates/1.0.0", "bobplates_1.0.0.zip", "bobplates"
        )
        self.assertEqual([(m.name, m.enabled) for m in mods], [("bobplates", True)])

        self.assertFalse(await self.orchestrator.toggle_mod("vanilla-plus", "bobplates"))
        mods = await self.orchestrator.list_mods("vanilla-plus")
        self.assertFalse(mods[0].enabled)

        archive_path = await self.orchestrator.export_pack("vanilla-plus")
        try:
            with zipfile.ZipFile(archive_path) as zf:
                self.assertEqual(sorted(zf.namelist()), ["bobplates_1.0.0.zip", "mod-list.json"])
                self.assertEqual(
                    json.loads(zf.read("mod-list.json")),
                    {"mods": [{"name": "bobplates", "enabled": False}]},
                )
        finally:
            await self.orchestrator.exporter.discard(archive_path)

        self.assertTrue(await self.orchestrator.delete_mod("vanilla-plus", "bobplates"))
        self.assertEqual(await self.orchestrator.list_mods("vanilla-plus"), [])
        self.assertEqual(os.listdir(os.path.join(self.root, "vanilla-plus")), ["mod-list.json"])

    async def test_batch_install_partial_failure(self):
        await self.orchestrator.create_pack("batch")
        requests = [
            InstallRequest.create("helper", "0.2.0"),
            InstallRequest.create("bobplates", "2.0.0"),
        ]

        with self.assertRaises(BatchInstallError) as cm:
            await self.orchestrator.install_many("batch", requests)

        self.assertIsInstance(cm.exception.cause, NoMatchingVersionError)
        self.assertEqual(cm.exception.installed, ["helper"])
        mods = await self.orchestrator.list_mods("batch")
        self.assertEqual([m.name for m in mods], ["helper"])

    async def test_batch_install(self):
        await self.orchestrator.create_pack("batch")
        mods = await self.orchestrator.install_many(
            "batch", [InstallRequest.from_spec("bobplates@1.1"), InstallRequest.from_spec("helper@0.2")]
        )
        self.assertEqual([m.file_name for m in mods], ["bobplates_1.1.0.zip", "helper_0.2.zip"])

    async def test_create_existing_pack(self):
        await self.orchestrator.create_pack("alpha")
        with self.assertRaises(ModPackExistsError):
            await self.orchestrator.create_pack("alpha")

    async def test_unknown_pack(self):
        with self.assertRaises(ModPackNotFoundError):
            await self.orchestrator.list_mods("ghost")
        with self.assertRaises(ModPackNotFoundError):
            await self.orchestrator.delete_pack("ghost")

    async def test_delete_pack(self):
        await self.orchestrator.create_pack("alpha")
        await self.orchestrator.create_pack("beta")

        self.assertEqual(await self.orchestrator.delete_pack("alpha"), "alpha")
        self.assertEqual(await self.orchestrator.list_packs(), ["beta"])
        self.assertFalse(os.path.exists(os.path.join(self.root, "alpha")))

    async def test_reset_pack(self):
        await self.orchestrator.create_pack("alpha")
        await self.orchestrator.upload_mod("alpha", _chunks(mod_zip_bytes("helper", "0.2")), "helper_0.2.zip")

        self.assertTrue(await self.orchestrator.reset_pack("alpha"))

        self.assertEqual(await self.orchestrator.list_mods("alpha"), [])
        self.assertEqual(self._manifest("alpha"), [])
        self.assertEqual(os.listdir(os.path.join(self.root, "alpha")), ["mod-list.json"])

    async def test_reset_pack_with_corrupt_manifest(self):
        await self.orchestrator.create_pack("alpha")
        await self.orchestrator.create_pack("broken")
        with open(os.path.join(self.root, "broken", "mod-list.json"), "w") as f:
            f.write("{not json")

        self.assertEqual(await self.orchestrator.list_packs(), ["alpha", "broken"])
        with self.assertRaises(ManifestError):
            await self.orchestrator.list_mods("broken")

        self.assertTrue(await self.orchestrator.reset_pack("broken"))
        self.assertEqual(await self.orchestrator.list_mods("broken"), [])
        self.assertEqual(self._manifest("broken"), [])

    async def test_update_mod_with_mismatched_file_name(self):
        await self.orchestrator.create_pack("alpha")
        await self.orchestrator.install_mod(
            "alpha", "/download/bobplates/1.0.0", "bobplates_1.0.0.zip", "bobplates"
        )

        with self.assertRaises(InvalidNameError):
            await self.orchestrator.update_mod(
                "alpha", "bobplates", "/download/bobplates/1.1.0", "helper_1.1.0.zip"
            )

        mods = await self.orchestrator.list_mods("alpha")
        self.assertEqual([m.file_name for m in mods], ["bobplates_1.0.0.zip"])
        self.assertNotIn("/download/bobplates/1.1.0", self.portal.requests)

    async def test_update_mod(self):
        await self.orchestrator.create_pack("alpha")
        await self.orchestrator.install_mod(
            "alpha", "/download/bobplates/1.0.0", "bobplates_1.0.0.zip", "bobplates"
        )

        entry = await self.orchestrator.update_mod(
            "alpha", "bobplates", f"{self.base_url}/download/bobplates/1.1.0", "bobplates_1.1.0.zip"
        )

        self.assertEqual(entry.file_name, "bobplates_1.1.0.zip")
        self.assertEqual(
            sorted(os.listdir(os.path.join(self.root, "alpha"))),
            ["bobplates_1.1.0.zip", "mod-list.json"],
        )

    async def test_load_pack_picks_up_files(self):
        await self.orchestrator.create_pack("alpha")
        with open(os.path.join(self.root, "alpha", "helper_0.2.zip"), "wb") as f:
            f.write(mod_zip_bytes("helper", "0.2", "Helper Mod"))

        self.assertEqual(await self.orchestrator.list_mods("alpha"), [])
        mods = await self.orchestrator.load_pack("alpha")

        self.assertEqual([(m.name, m.title) for m in mods], [("helper", "Helper Mod")])
        self.assertEqual(self._manifest("alpha"), [{"name": "helper", "enabled": True}])

    async def test_export_to_path(self):
        await self.orchestrator.create_pack("alpha")
        output = os.path.join(self.test_dir, "alpha.zip")

        await self.orchestrator.export_pack_to("alpha", output)

        with zipfile.ZipFile(output) as zf:
            self.assertEqual(zf.namelist(), ["mod-list.json"])


if __name__ == "__main__":
    unittest.main()
