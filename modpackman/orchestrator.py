"""
主协调器

整合存储层、门户解析、下载和打包，实现整合包管理的各个用例。
每个用例都从磁盘重新构建注册表，不在请求之间缓存任何状态。
"""

from pathlib import Path
from typing import AsyncIterable, List, Optional, Sequence

from loguru import logger

from modpackman.download import DownloadManager
from modpackman.exceptions import ModNotFoundError
from modpackman.models import InstallRequest, ModEntry, ModPackManConfig
from modpackman.packager import ZipExporter
from modpackman.services import CatalogResolver, ModPortalClient
from modpackman.storage import ModPack, ModPackMap


class ModPackOrchestrator:
    """ModPackMan 主协调器"""

    def __init__(
        self,
        config: ModPackManConfig,
        client: Optional[ModPortalClient] = None,
        downloader: Optional[DownloadManager] = None,
        exporter: Optional[ZipExporter] = None,
    ):
        self.config = config
        self.root = Path(config.modpack_dir)
        self.client = client or ModPortalClient(
            base_url=config.portal.base_url,
            timeout=config.portal.timeout,
        )
        self.downloader = downloader or DownloadManager(
            base_url=config.portal.base_url,
            username=config.portal.username,
            token=config.portal.token,
            chunk_size=config.download.chunk_size,
            timeout=config.portal.timeout,
        )
        self.resolver = CatalogResolver(self.client)
        self.exporter = exporter or ZipExporter(chunk_size=config.download.chunk_size)

    async def _build_map(self) -> ModPackMap:
        return await ModPackMap.build(self.root, self.downloader)

    async def _open_pack(self, pack_name: str) -> ModPack:
        pack_map = await self._build_map()
        return pack_map.require(pack_name)

    # 整合包

    async def list_packs(self) -> List[str]:
        pack_map = await self._build_map()
        return pack_map.list()

    async def create_pack(self, pack_name: str) -> List[str]:
        """创建整合包，返回更新后的整合包列表"""
        pack_map = await self._build_map()
        await pack_map.create(pack_name)
        return pack_map.list()

    async def delete_pack(self, pack_name: str) -> str:
        pack_map = await self._build_map()
        await pack_map.delete(pack_name)
        return pack_name

    async def export_pack(self, pack_name: str) -> str:
        """
        把整合包打包为 zip

        Returns:
            完整归档的临时文件路径，可交给 ZipExporter.stream 读取
        """
        pack = await self._open_pack(pack_name)
        return await self.exporter.build(pack)

    async def export_pack_to(self, pack_name: str, output_path: str) -> str:
        pack = await self._open_pack(pack_name)
        return await self.exporter.export_to(pack, output_path)

    async def load_pack(self, pack_name: str) -> List[ModEntry]:
        pack = await self._open_pack(pack_name)
        return await pack.load()

    async def reset_pack(self, pack_name: str) -> bool:
        """
        删除整合包中的所有模组

        分两步进行（删除后重建），不是事务：重建失败时整合包会处于缺失状态。
        """
        pack_map = await self._build_map()
        await pack_map.delete(pack_name)
        try:
            await pack_map.create_empty(pack_name)
        except Exception:
            logger.error(f"[重置] 整合包 '{pack_name}' 已删除但重建失败，整合包当前缺失")
            raise
        return True

    # 整合包中的模组

    async def list_mods(self, pack_name: str) -> List[ModEntry]:
        pack = await self._open_pack(pack_name)
        return pack.list_installed()

    async def toggle_mod(self, pack_name: str, mod_name: str) -> bool:
        pack = await self._open_pack(pack_name)
        return await pack.mods.toggle_mod(mod_name)

    async def delete_mod(self, pack_name: str, mod_name: str) -> bool:
        pack = await self._open_pack(pack_name)
        await pack.mods.delete_mod(mod_name)
        return True

    async def update_mod(
        self, pack_name: str, mod_name: str, download_url: str, file_name: str
    ) -> ModEntry:
        """
        更新模组文件

        Returns:
            更新后的模组记录

        Raises:
            ModNotFoundError: 更新后列表中找不到该模组
        """
        pack = await self._open_pack(pack_name)
        await pack.mods.update_mod(mod_name, download_url, file_name)
        entry = pack.mods.get(mod_name)
        if entry is None:
            raise ModNotFoundError(mod_name, pack_name)
        return entry

    async def upload_mod(
        self, pack_name: str, chunks: AsyncIterable[bytes], file_name: str
    ) -> List[ModEntry]:
        pack = await self._open_pack(pack_name)
        await pack.mods.upload_mod(chunks, file_name)
        return pack.list_installed()

    async def install_mod(
        self, pack_name: str, download_url: str, file_name: str, mod_name: str
    ) -> List[ModEntry]:
        """从门户地址安装单个模组"""
        pack = await self._open_pack(pack_name)
        await pack.mods.download_mod(download_url, file_name, mod_name)
        return pack.list_installed()

    async def install_many(
        self, pack_name: str, requests: Sequence[InstallRequest]
    ) -> List[ModEntry]:
        """
        按 name/version 批量从门户安装

        Raises:
            BatchInstallError: 某一项失败，之前安装的模组保留
        """
        pack = await self._open_pack(pack_name)
        await self.resolver.install_many(pack.mods, requests)
        return pack.list_installed()

    async def close(self):
        await self.client.close()
        await self.downloader.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
