"""
HTTP 接口

基于 aiohttp.web 的整合包管理接口。异常由中间件统一转换为 JSON 错误响应。
"""

from typing import Any, AsyncIterator, List, Optional

from aiohttp import web
from loguru import logger

from modpackman.exceptions import (
    APIError,
    BatchInstallError,
    DownloadError,
    ModPackError,
    ModPackExistsError,
    NotFoundError,
    ValidationError,
)
from modpackman.models import InstallRequest, ModEntry, ModPackManConfig
from modpackman.orchestrator import ModPackOrchestrator

ORCHESTRATOR_KEY = web.AppKey("orchestrator", ModPackOrchestrator)
UPLOAD_FIELD = "mod_file"


def status_for(error: ModPackError) -> int:
    """异常 -> HTTP 状态码"""
    if isinstance(error, BatchInstallError):
        return status_for(error.cause)
    if isinstance(error, ModPackExistsError):
        return 409
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, (APIError, DownloadError)):
        return 502
    return 500


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except ModPackError as e:
        status = status_for(e)
        log = logger.warning if status < 500 else logger.error
        log(f"[HTTP] {request.method} {request.path} -> {status}: {e}")
        return web.json_response(e.to_dict(), status=status)


def _mods_payload(entries: List[ModEntry]) -> list:
    return [entry.to_dict() for entry in entries]


async def _read_json(request: web.Request) -> Any:
    try:
        return await request.json()
    except ValueError as e:
        raise ValidationError(f"请求体不是合法的 JSON: {e}") from e


def _require_field(body: Any, key: str) -> str:
    value = body.get(key) if isinstance(body, dict) else None
    if not isinstance(value, str) or not value:
        raise ValidationError(f"请求体缺少字段 '{key}'", context={"field": key})
    return value


async def _field_chunks(field) -> AsyncIterator[bytes]:
    while True:
        chunk = await field.read_chunk()
        if not chunk:
            break
        yield chunk


class ModPackHandlers:
    """整合包相关的请求处理器"""

    def __init__(self, orchestrator: ModPackOrchestrator):
        self.orchestrator = orchestrator

    async def list_packs(self, request: web.Request) -> web.Response:
        """GET /api/modpacks"""
        return web.json_response(await self.orchestrator.list_packs())

    async def create_pack(self, request: web.Request) -> web.Response:
        """POST /api/modpacks {name}"""
        body = await _read_json(request)
        packs = await self.orchestrator.create_pack(_require_field(body, "name"))
        return web.json_response(packs)

    async def delete_pack(self, request: web.Request) -> web.Response:
        """DELETE /api/modpacks/{pack}"""
        name = await self.orchestrator.delete_pack(request.match_info["pack"])
        return web.json_response(name)

    async def export_pack(self, request: web.Request) -> web.StreamResponse:
        """GET /api/modpacks/{pack}/export"""
        pack_name = request.match_info["pack"]
        # 归档在响应开始前就已完整生成，失败时返回 JSON 错误而不是半截 zip
        archive_path = await self.orchestrator.export_pack(pack_name)

        response = web.StreamResponse(
            headers={
                "Content-Type": "application/zip",
                "Content-Disposition": f'attachment; filename="{pack_name}.zip"',
            }
        )
        stream = self.orchestrator.exporter.stream(archive_path)
        try:
            await response.prepare(request)
            async for chunk in stream:
                await response.write(chunk)
            await response.write_eof()
        finally:
            await stream.aclose()
            await self.orchestrator.exporter.discard(archive_path)
        return response

    async def load_pack(self, request: web.Request) -> web.Response:
        """POST /api/modpacks/{pack}/load"""
        entries = await self.orchestrator.load_pack(request.match_info["pack"])
        return web.json_response(_mods_payload(entries))

    async def list_mods(self, request: web.Request) -> web.Response:
        """GET /api/modpacks/{pack}/mods"""
        entries = await self.orchestrator.list_mods(request.match_info["pack"])
        return web.json_response(_mods_payload(entries))

    async def toggle_mod(self, request: web.Request) -> web.Response:
        """POST /api/modpacks/{pack}/mods/toggle {name}"""
        body = await _read_json(request)
        enabled = await self.orchestrator.toggle_mod(
            request.match_info["pack"], _require_field(body, "name")
        )
        return web.json_response(enabled)

    async def delete_mod(self, request: web.Request) -> web.Response:
        """POST /api/modpacks/{pack}/mods/delete {name}"""
        body = await _read_json(request)
        result = await self.orchestrator.delete_mod(
            request.match_info["pack"], _require_field(body, "name")
        )
        return web.json_response(result)

    async def update_mod(self, request: web.Request) -> web.Response:
        """POST /api/modpacks/{pack}/mods/update {modName, downloadUrl, filename}"""
        body = await _read_json(request)
        entry = await self.orchestrator.update_mod(
            request.match_info["pack"],
            _require_field(body, "modName"),
            _require_field(body, "downloadUrl"),
            _require_field(body, "filename"),
        )
        return web.json_response(entry.to_dict())

    async def reset_pack(self, request: web.Request) -> web.Response:
        """POST /api/modpacks/{pack}/mods/delete/all"""
        return web.json_response(
            await self.orchestrator.reset_pack(request.match_info["pack"])
        )

    async def upload_mod(self, request: web.Request) -> web.Response:
        """POST /api/modpacks/{pack}/mods/upload (multipart: mod_file)"""
        pack_name = request.match_info["pack"]
        try:
            reader = await request.multipart()
        except (AssertionError, ValueError) as e:
            raise ValidationError(f"上传请求不是 multipart 格式: {e}") from e

        field = await reader.next()
        while field is not None and field.name != UPLOAD_FIELD:
            field = await reader.next()
        if field is None or not field.filename:
            raise ValidationError(
                f"上传请求缺少文件字段 '{UPLOAD_FIELD}'",
                context={"field": UPLOAD_FIELD, "pack": pack_name},
            )

        entries = await self.orchestrator.upload_mod(
            pack_name, _field_chunks(field), field.filename
        )
        return web.json_response(_mods_payload(entries))

    async def install_mod(self, request: web.Request) -> web.Response:
        """POST /api/modpacks/{pack}/mods/portal/install {downloadUrl, fileName, modName}"""
        body = await _read_json(request)
        entries = await self.orchestrator.install_mod(
            request.match_info["pack"],
            _require_field(body, "downloadUrl"),
            _require_field(body, "fileName"),
            _require_field(body, "modName"),
        )
        return web.json_response(_mods_payload(entries))

    async def install_many(self, request: web.Request) -> web.Response:
        """POST /api/modpacks/{pack}/mods/portal/install/multiple [{name, version}]"""
        body = await _read_json(request)
        if not isinstance(body, list):
            raise ValidationError("请求体必须是 {name, version} 列表")
        requests = [InstallRequest.from_dict(item) for item in body]
        entries = await self.orchestrator.install_many(
            request.match_info["pack"], requests
        )
        return web.json_response(_mods_payload(entries))


def setup_routes(app: web.Application, handlers: ModPackHandlers) -> None:
    prefix = "/api/modpacks"
    app.router.add_get(prefix, handlers.list_packs)
    app.router.add_post(prefix, handlers.create_pack)
    app.router.add_delete(prefix + "/{pack}", handlers.delete_pack)
    app.router.add_get(prefix + "/{pack}/export", handlers.export_pack)
    app.router.add_post(prefix + "/{pack}/load", handlers.load_pack)
    app.router.add_get(prefix + "/{pack}/mods", handlers.list_mods)
    app.router.add_post(prefix + "/{pack}/mods/toggle", handlers.toggle_mod)
    app.router.add_post(prefix + "/{pack}/mods/delete", handlers.delete_mod)
    app.router.add_post(prefix + "/{pack}/mods/update", handlers.update_mod)
    app.router.add_post(prefix + "/{pack}/mods/delete/all", handlers.reset_pack)
    app.router.add_post(prefix + "/{pack}/mods/upload", handlers.upload_mod)
    app.router.add_post(prefix + "/{pack}/mods/portal/install", handlers.install_mod)
    app.router.add_post(
        prefix + "/{pack}/mods/portal/install/multiple", handlers.install_many
    )


def create_app(
    config: ModPackManConfig, orchestrator: Optional[ModPackOrchestrator] = None
) -> web.Application:
    """创建 aiohttp 应用"""
    orchestrator = orchestrator or ModPackOrchestrator(config)
    app = web.Application(middlewares=[error_middleware])
    app[ORCHESTRATOR_KEY] = orchestrator
    setup_routes(app, ModPackHandlers(orchestrator))

    async def close_orchestrator(app: web.Application) -> None:
        await app[ORCHESTRATOR_KEY].close()

    app.on_cleanup.append(close_orchestrator)
    return app


def run_server(config: ModPackManConfig) -> None:
    """启动 HTTP 服务（阻塞）"""
    logger.info(
        f"[启动] 整合包目录: {config.modpack_dir}，监听 {config.server.host}:{config.server.port}"
    )
    web.run_app(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        print=None,
    )
