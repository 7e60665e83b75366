"""
整合包注册表

每次使用时从根目录重新扫描构建，不在进程内缓存：
根目录下的每个子目录就是一个整合包。
"""

import asyncio
import os
import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import Dict, Iterator, List

from loguru import logger

from modpackman.download import DownloadManager
from modpackman.exceptions import (
    ManifestError,
    ModPackExistsError,
    ModPackNotFoundError,
    StorageError,
)
from modpackman.storage.manifest import ModManifest
from modpackman.storage.mod_list import ModList
from modpackman.storage.modpack import ModPack
from modpackman.utils import validate_pack_name


class ModPackMap(Mapping):
    """整合包名称 -> ModPack"""

    def __init__(self, root: Path, downloader: DownloadManager):
        self.root = Path(root)
        self.downloader = downloader
        self._packs: Dict[str, ModPack] = {}

    @classmethod
    async def build(cls, root: Path, downloader: DownloadManager) -> "ModPackMap":
        """
        扫描根目录构建注册表

        根目录不存在时会被创建；子目录中缺少清单的整合包视为空整合包。
        清单无法解析的整合包照常登记，读取其模组列表时才抛出 ManifestError。

        Raises:
            StorageError: 根目录无法读取
        """
        pack_map = cls(root, downloader)
        try:
            pack_map.root.mkdir(parents=True, exist_ok=True)
            with os.scandir(pack_map.root) as it:
                names = [
                    entry.name
                    for entry in it
                    if entry.is_dir() and not entry.name.startswith(".")
                ]
        except OSError as e:
            raise StorageError(
                f"无法读取整合包根目录 {pack_map.root}: {e}",
                context={"path": str(pack_map.root), "error": str(e)},
            ) from e

        for name in names:
            path = pack_map.root / name
            try:
                pack = await ModPack.open(name, path, downloader)
            except ManifestError as e:
                # 清单损坏只影响该整合包本身，仍可被删除或重置
                logger.warning(f"[注册表] {e}")
                pack = ModPack(name, path, ModList(name, path, downloader, error=e))
            pack_map._packs[name] = pack
        logger.debug(f"[注册表] 扫描到 {len(pack_map._packs)} 个整合包")
        return pack_map

    def __getitem__(self, name: str) -> ModPack:
        return self._packs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._packs)

    def __len__(self) -> int:
        return len(self._packs)

    def exists(self, name: str) -> bool:
        return name in self._packs

    def require(self, name: str) -> ModPack:
        """获取整合包，不存在时抛出 ModPackNotFoundError"""
        try:
            return self._packs[name]
        except KeyError:
            raise ModPackNotFoundError(name) from None

    def list(self) -> List[str]:
        """已安装的整合包名称（排序）"""
        return sorted(self._packs)

    async def _init_pack(self, name: str, exist_ok: bool) -> ModPack:
        path = self.root / name
        try:
            path.mkdir(parents=True, exist_ok=exist_ok)
            manifest = ModManifest(path, name)
            async with manifest.lock:
                await manifest.write([])
        except FileExistsError:
            raise ModPackExistsError(name) from None
        except OSError as e:
            raise StorageError(
                f"创建整合包 '{name}' 失败: {e}",
                context={"pack": name, "error": str(e)},
            ) from e

        pack = await ModPack.open(name, path, self.downloader)
        self._packs[name] = pack
        return pack

    async def create(self, name: str) -> ModPack:
        """
        创建空整合包

        Raises:
            InvalidNameError: 名称不能安全地作为目录名
            ModPackExistsError: 名称已存在
        """
        validate_pack_name(name)
        if self.exists(name):
            raise ModPackExistsError(name)
        pack = await self._init_pack(name, exist_ok=False)
        logger.success(f"[创建] 整合包 '{name}' 已创建")
        return pack

    async def create_empty(self, name: str) -> ModPack:
        """创建或覆盖为不含任何模组的整合包（用于重置）"""
        validate_pack_name(name)
        pack = await self._init_pack(name, exist_ok=True)
        logger.info(f"[重置] 整合包 '{name}' 已重建为空")
        return pack

    async def delete(self, name: str) -> None:
        """
        递归删除整合包目录

        Raises:
            ModPackNotFoundError: 整合包不存在
        """
        pack = self.require(name)
        try:
            await asyncio.to_thread(shutil.rmtree, pack.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(
                f"删除整合包 '{name}' 失败: {e}",
                context={"pack": name, "error": str(e)},
            ) from e
        self._packs.pop(name, None)
        logger.success(f"[删除] 整合包 '{name}' 已删除")
