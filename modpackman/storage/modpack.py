"""
整合包
"""

from pathlib import Path
from typing import List

from loguru import logger

from modpackman.download import DownloadManager
from modpackman.models import ModEntry
from modpackman.storage.mod_list import ModList


class ModPack:
    """
    一个命名的整合包：目录、模组列表和 loaded 标记。

    loaded 只在显式调用 load() 之后为 True；修改操作无论是否 loaded
    都基于磁盘上最新的清单进行。
    """

    def __init__(self, name: str, path: Path, mods: ModList):
        self.name = name
        self.path = Path(path)
        self.mods = mods
        self.loaded = False

    @classmethod
    async def open(cls, name: str, path: Path, downloader: DownloadManager) -> "ModPack":
        mods = await ModList.build(name, path, downloader)
        return cls(name, path, mods)

    async def load(self) -> List[ModEntry]:
        """重新读取清单并与目录对账"""
        entries = await self.mods.reload()
        self.loaded = True
        logger.info(f"[加载] 整合包 '{self.name}' 共 {len(entries)} 个模组")
        return entries

    def list_installed(self) -> List[ModEntry]:
        return self.mods.list_installed()

    def __repr__(self) -> str:
        return f"ModPack(name={self.name!r}, mods={len(self.mods.entries)}, loaded={self.loaded})"
