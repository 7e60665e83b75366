"""Tests for zip export."""

import io
import json
import os
import shutil
import tempfile
import unittest
import zipfile
from pathlib import Path

from modpackman.download import DownloadManager
from modpackman.exceptions import UnsupportedLayoutError
from modpackman.packager import ZipExporter
from modpackman.storage import ModPackMap
from tests.helpers import mod_zip_bytes, write_mod_zip


class TestZipExporter(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.temp_dir = os.path.join(self.test_dir, "tmp")
        os.mkdir(self.temp_dir)
        self.downloader = DownloadManager()
        pack_map = await ModPackMap.build(Path(self.test_dir) / "modpacks", self.downloader)
        self.pack = await pack_map.create("vanilla-plus")
        self.exporter = ZipExporter(temp_dir=self.temp_dir, chunk_size=64)

    async def asyncTearDown(self):
        await self.downloader.close()
        shutil.rmtree(self.test_dir)

    async def _read_stream(self, archive_path):
        data = b""
        async for chunk in self.exporter.stream(archive_path):
            data += chunk
        return data

    async def test_empty_pack_contains_only_manifest(self):
        data = await self._read_stream(await self.exporter.build(self.pack))

        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            self.assertEqual(zf.namelist(), ["mod-list.json"])
            self.assertEqual(json.loads(zf.read("mod-list.json")), {"mods": []})

    async def test_archive_holds_flat_file_names(self):
        write_mod_zip(self.pack.path, "bobplates", "1.0.0")
        write_mod_zip(self.pack.path, "helper", "0.2")
        with open(self.pack.path / ".helper_0.3.zip.abc.part", "wb") as f:
            f.write(b"partial")

        archive_path = await self.exporter.build(self.pack)
        with zipfile.ZipFile(archive_path) as zf:
            self.assertEqual(
                zf.namelist(), ["bobplates_1.0.0.zip", "helper_0.2.zip", "mod-list.json"]
            )
            self.assertEqual(zf.read("bobplates_1.0.0.zip"), mod_zip_bytes("bobplates", "1.0.0"))
        await self.exporter.discard(archive_path)

    async def test_without_manifest(self):
        write_mod_zip(self.pack.path, "bobplates", "1.0.0")
        exporter = ZipExporter(temp_dir=self.temp_dir, include_manifest=False)

        archive_path = await exporter.build(self.pack)
        with zipfile.ZipFile(archive_path) as zf:
            self.assertEqual(zf.namelist(), ["bobplates_1.0.0.zip"])
        await exporter.discard(archive_path)

    async def test_subdirectory_is_rejected(self):
        os.mkdir(self.pack.path / "saves")

        with self.assertRaises(UnsupportedLayoutError) as cm:
            await self.exporter.build(self.pack)

        self.assertEqual(cm.exception.context["directory"], "saves")
        self.assertEqual(os.listdir(self.temp_dir), [])

    async def test_stream_removes_archive(self):
        archive_path = await self.exporter.build(self.pack)
        self.assertTrue(os.path.exists(archive_path))

        await self._read_stream(archive_path)

        self.assertFalse(os.path.exists(archive_path))

    async def test_export_to_file(self):
        write_mod_zip(self.pack.path, "bobplates", "1.0.0")
        output = os.path.join(self.test_dir, "vanilla-plus.zip")

        self.assertEqual(await self.exporter.export_to(self.pack, output), output)
        with zipfile.ZipFile(output) as zf:
            self.assertIn("bobplates_1.0.0.zip", zf.namelist())
        self.assertEqual(os.listdir(self.temp_dir), [])


if __name__ == "__main__":
    unittest.main()
