"""
ZIP 导出器

把整合包目录打包成 zip。只打包目录第一层的普通文件，
归档内使用文件名本身（不保留目录结构）；目录中出现子目录时拒绝导出。

归档先完整写入临时文件，成功后才交给调用方，
中途失败不会产生看起来完整、实际被截断的归档。
"""

import asyncio
import os
import shutil
import tempfile
import zipfile
from typing import AsyncIterator, List, Optional

import aiofiles
import aiofiles.os
from loguru import logger

from modpackman.exceptions import UnsupportedLayoutError, ZipError
from modpackman.models.config import DEFAULT_CHUNK_SIZE
from modpackman.storage import ModPack
from modpackman.utils import MANIFEST_FILE


class ZipExporter:
    """整合包 ZIP 导出器"""

    def __init__(
        self,
        temp_dir: Optional[str] = None,
        include_manifest: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.temp_dir = temp_dir
        self.include_manifest = include_manifest
        self.chunk_size = chunk_size

    def _collect(self, pack: ModPack) -> List[str]:
        names = []
        with os.scandir(pack.path) as it:
            for entry in it:
                if entry.name.startswith("."):
                    continue
                if entry.is_dir():
                    raise UnsupportedLayoutError(
                        f"整合包 '{pack.name}' 中包含子目录 '{entry.name}'，无法导出",
                        context={"pack": pack.name, "directory": entry.name},
                    )
                if not entry.is_file():
                    continue
                if entry.name == MANIFEST_FILE and not self.include_manifest:
                    continue
                names.append(entry.name)
        return sorted(names)

    def _write_archive(self, pack: ModPack, archive_path: str) -> int:
        names = self._collect(pack)
        with zipfile.ZipFile(archive_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for name in names:
                with open(pack.path / name, "rb") as src, zf.open(name, "w") as dst:
                    shutil.copyfileobj(src, dst, self.chunk_size)
        return len(names)

    async def build(self, pack: ModPack) -> str:
        """
        构建 ZIP 文件

        Args:
            pack: 要导出的整合包

        Returns:
            完整归档的临时文件路径，由调用方负责删除

        Raises:
            UnsupportedLayoutError: 目录中包含子目录
            ZipError: 读取或写入失败
        """
        fd, archive_path = tempfile.mkstemp(
            prefix=f"modpack-{pack.name}-", suffix=".zip", dir=self.temp_dir
        )
        os.close(fd)
        try:
            count = await asyncio.to_thread(self._write_archive, pack, archive_path)
        except UnsupportedLayoutError:
            os.remove(archive_path)
            raise
        except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            os.remove(archive_path)
            raise ZipError(
                f"导出整合包 '{pack.name}' 失败: {e}",
                context={"pack": pack.name, "error": str(e)},
            ) from e
        except BaseException:
            os.remove(archive_path)
            raise

        logger.success(f"[导出] 整合包 '{pack.name}' 已打包 {count} 个文件")
        return archive_path

    async def stream(self, archive_path: str) -> AsyncIterator[bytes]:
        """按块读取已构建的归档，读完或中断后删除临时文件"""
        try:
            async with aiofiles.open(archive_path, "rb") as f:
                while True:
                    chunk = await f.read(self.chunk_size)
                    if not chunk:
                        break
                    yield chunk
        finally:
            await self.discard(archive_path)

    async def discard(self, archive_path: str) -> None:
        """删除已构建的归档（不存在时忽略）"""
        try:
            await aiofiles.os.remove(archive_path)
        except FileNotFoundError:
            pass

    async def export_to(self, pack: ModPack, output_path: str) -> str:
        """导出整合包到指定文件"""
        archive_path = await self.build(pack)
        try:
            shutil.move(archive_path, output_path)
        except OSError as e:
            os.remove(archive_path)
            raise ZipError(
                f"无法保存导出的整合包 '{pack.name}' 到 {output_path}: {e}",
                context={"pack": pack.name, "output": output_path},
            ) from e
        return output_path
