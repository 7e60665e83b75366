"""
模组清单 (mod-list.json)

负责清单的读取与原子写入，以及同一整合包内清单读-改-写的互斥。
"""

import asyncio
import json
import os
import uuid
import weakref
from dataclasses import replace
from pathlib import Path
from typing import Callable, List, TypeVar

import aiofiles
import aiofiles.os
from loguru import logger

from modpackman.exceptions import ManifestError
from modpackman.models import ManifestEntry
from modpackman.utils import MANIFEST_FILE

T = TypeVar("T")

# 以整合包目录的绝对路径为键；锁在无人持有时自动回收
_pack_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
    weakref.WeakValueDictionary()
)


def pack_lock(pack_dir: Path) -> asyncio.Lock:
    """获取整合包的咨询锁（仅在本进程内生效）"""
    key = os.path.realpath(pack_dir)
    lock = _pack_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _pack_locks[key] = lock
    return lock


class ModManifest:
    """
    单个整合包的模组清单

    清单格式为 {"mods": [{"name": ..., "enabled": ...}]}，按插入顺序保存。
    """

    def __init__(self, pack_dir: Path, pack_name: str):
        self.pack_dir = Path(pack_dir)
        self.pack_name = pack_name

    @property
    def path(self) -> Path:
        return self.pack_dir / MANIFEST_FILE

    @property
    def lock(self) -> asyncio.Lock:
        return pack_lock(self.pack_dir)

    async def read(self) -> List[ManifestEntry]:
        """
        读取清单

        清单文件不存在时返回空列表。

        Raises:
            ManifestError: 清单内容无法解析
        """
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return []

        try:
            data = json.loads(raw) if raw.strip() else {}
            mods = data.get("mods", [])
            return [ManifestEntry.from_dict(item) for item in mods]
        except (ValueError, AttributeError, KeyError, TypeError) as e:
            raise ManifestError(
                f"整合包 '{self.pack_name}' 的清单无法解析: {e}",
                context={"pack": self.pack_name, "path": str(self.path)},
            ) from e

    async def write(self, entries: List[ManifestEntry]) -> None:
        """
        原子写入清单

        先写入同目录下的临时文件并 fsync，再用 os.replace 替换，
        读者不会看到写了一半的清单。
        """
        content = json.dumps(
            {"mods": [entry.to_dict() for entry in entries]},
            indent=2,
            ensure_ascii=False,
        )
        temp_path = self.pack_dir / f".{MANIFEST_FILE}.{uuid.uuid4().hex}.tmp"
        try:
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(content + "\n")
                await f.flush()
                os.fsync(f.fileno())
            await aiofiles.os.replace(temp_path, self.path)
        except BaseException:
            try:
                await aiofiles.os.remove(temp_path)
            except OSError:
                pass
            raise
        logger.debug(f"[清单] 已写入 {self.pack_name}: {len(entries)} 条记录")

    async def update(self, mutate: Callable[[List[ManifestEntry]], T]) -> T:
        """
        在锁内完成一次读-改-写

        条目没有变化时不写回；mutate 抛出异常时清单保持原样。

        Args:
            mutate: 就地修改条目列表的函数，其返回值原样返回

        Returns:
            mutate 的返回值
        """
        async with self.lock:
            entries = await self.read()
            before = [replace(entry) for entry in entries]
            result = mutate(entries)
            if entries != before:
                await self.write(entries)
            return result
