"""测试用的模组压缩包构造和门户桩服务"""

import io
import json
import zipfile
from typing import Dict, List, Optional

from aiohttp import web
from aiohttp.test_utils import TestServer


def mod_zip_bytes(name: str, version: str, title: Optional[str] = None) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        info = {"name": name, "version": version, "title": title or name}
        zf.writestr(f"{name}_{version}/info.json", json.dumps(info))
        zf.writestr(f"{name}_{version}/data.lua", "-- data")
    return buffer.getvalue()


def write_mod_zip(directory, name: str, version: str, title: Optional[str] = None) -> str:
    file_name = f"{name}_{version}.zip"
    with open(f"{directory}/{file_name}", "wb") as f:
        f.write(mod_zip_bytes(name, version, title))
    return file_name


class StubPortal:
    """
    进程内的模组门户

    /api/mods/{name} 返回 add_mod 注册的发布列表，
    /download/{name}/{version} 返回对应的模组压缩包。
    """

    def __init__(self):
        self.mods: Dict[str, List[str]] = {}
        self.broken_downloads = set()
        self.requests: List[str] = []
        self.server: Optional[TestServer] = None

    def add_mod(self, name: str, versions: List[str]) -> None:
        self.mods[name] = list(versions)

    def release(self, name: str, version: str) -> dict:
        return {
            "version": version,
            "download_url": f"/download/{name}/{version}",
            "file_name": f"{name}_{version}.zip",
            "released_at": "2024-01-01T00:00:00Z",
            "info_json": {"factorio_version": "1.1"},
        }

    async def _mod_details(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        self.requests.append(request.path_qs)
        if name == "explode":
            return web.json_response({"message": "boom"}, status=500)
        if name not in self.mods:
            return web.json_response({"message": "Mod not found"}, status=404)
        return web.json_response(
            {
                "name": name,
                "title": name.title(),
                "releases": [self.release(name, v) for v in self.mods[name]],
            }
        )

    async def _download(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        version = request.match_info["version"]
        self.requests.append(request.path_qs)
        if name in self.broken_downloads or version not in self.mods.get(name, []):
            return web.Response(status=404, text="not found")
        return web.Response(
            body=mod_zip_bytes(name, version), content_type="application/zip"
        )

    async def start(self) -> str:
        app = web.Application()
        app.router.add_get("/api/mods/{name}", self._mod_details)
        app.router.add_get("/download/{name}/{version}", self._download)
        self.server = TestServer(app)
        await self.server.start_server()
        return str(self.server.make_url("/")).rstrip("/")

    async def close(self) -> None:
        if self.server is not None:
            await self.server.close()
