"""
整合包内的模组列表

目录决定模组文件是否存在，清单决定模组是否启用。
除 reload 外，所有修改操作都假定清单与目录一致，只做增量更新。
"""

import json
import os
import zipfile
from dataclasses import replace
from pathlib import Path
from typing import AsyncIterable, Callable, Dict, List, Optional, Tuple, TypeVar

from loguru import logger

from modpackman.download import DownloadManager
from modpackman.exceptions import (
    InvalidNameError,
    ManifestError,
    ModNotFoundError,
    StorageError,
)
from modpackman.models import ManifestEntry, ModEntry, Version, parse_mod_file_name
from modpackman.storage.manifest import ModManifest
from modpackman.utils import MANIFEST_FILE, validate_file_name

T = TypeVar("T")

# 逻辑名称 -> [(文件名, 版本)]
ModFiles = Dict[str, List[Tuple[str, Optional[Version]]]]


def read_mod_title(path: Path) -> Optional[str]:
    """读取模组压缩包中 info.json 的 title 字段，读不到时返回 None"""
    if path.suffix.lower() != ".zip":
        return None
    try:
        with zipfile.ZipFile(path) as zf:
            for member in zf.namelist():
                if member.count("/") <= 1 and member.rsplit("/", 1)[-1] == "info.json":
                    with zf.open(member) as f:
                        info = json.load(f)
                    title = info.get("title") if isinstance(info, dict) else None
                    return str(title) if title else None
    except (zipfile.BadZipFile, OSError, ValueError) as e:
        logger.debug(f"[元数据] 无法读取 {path.name} 的 info.json: {e}")
    return None


def _version_key(item: Tuple[str, Optional[Version]]):
    file_name, version = item
    return (version is not None, version or Version((0,)), file_name)


class ModList:
    """单个整合包中的模组"""

    def __init__(
        self,
        pack_name: str,
        pack_dir: Path,
        downloader: DownloadManager,
        entries: Optional[List[ModEntry]] = None,
        error: Optional[ManifestError] = None,
    ):
        self.pack_name = pack_name
        self.pack_dir = Path(pack_dir)
        self.downloader = downloader
        self.manifest = ModManifest(self.pack_dir, pack_name)
        self.entries: List[ModEntry] = entries or []
        # 构建时清单无法解析，读取模组列表时再抛出
        self.error = error
        self._titles: Dict[str, Optional[str]] = {}

    @classmethod
    async def build(
        cls, pack_name: str, pack_dir: Path, downloader: DownloadManager
    ) -> "ModList":
        """从清单构建模组列表（不做清单与目录的对账）"""
        mod_list = cls(pack_name, pack_dir, downloader)
        manifest_entries = await mod_list.manifest.read()
        mod_list.entries = mod_list._project(manifest_entries, mod_list._scan_files())
        return mod_list

    def _storage_error(
        self, action: str, error: OSError, mod_name: Optional[str] = None
    ) -> StorageError:
        context = {"pack": self.pack_name, "error": str(error)}
        target = f"整合包 '{self.pack_name}'"
        if mod_name:
            context["mod"] = mod_name
            target += f" 的模组 '{mod_name}'"
        return StorageError(f"{action}{target}失败: {error}", context=context)

    def _scan_files(self) -> ModFiles:
        """列出目录中的模组文件，按逻辑名称分组"""
        files: ModFiles = {}
        try:
            with os.scandir(self.pack_dir) as it:
                for entry in it:
                    if entry.name.startswith(".") or entry.name == MANIFEST_FILE:
                        continue
                    if not entry.is_file():
                        continue
                    name, version = parse_mod_file_name(entry.name)
                    files.setdefault(name, []).append((entry.name, version))
        except OSError as e:
            raise self._storage_error("读取", e) from e
        return files

    def _project(
        self, manifest_entries: List[ManifestEntry], files: ModFiles
    ) -> List[ModEntry]:
        entries = []
        for item in manifest_entries:
            candidates = files.get(item.name)
            if candidates:
                file_name, version = max(candidates, key=_version_key)
                entries.append(
                    ModEntry(
                        name=item.name,
                        enabled=item.enabled,
                        file_name=file_name,
                        version=version,
                    )
                )
            else:
                entries.append(ModEntry(name=item.name, enabled=item.enabled))
        return entries

    def _with_title(self, entry: ModEntry) -> ModEntry:
        """按需读取标题，同一文件只读一次"""
        if not entry.present:
            return entry
        if entry.file_name not in self._titles:
            self._titles[entry.file_name] = read_mod_title(self.pack_dir / entry.file_name)
        return replace(entry, title=self._titles[entry.file_name])

    def _remove_files(self, mod_name: str, files: ModFiles, keep: Optional[str] = None):
        for file_name, _ in files.get(mod_name, []):
            if file_name == keep:
                continue
            try:
                os.remove(self.pack_dir / file_name)
            except FileNotFoundError:
                continue
            except OSError as e:
                raise self._storage_error("删除文件", e, mod_name) from e
            self._titles.pop(file_name, None)
            logger.info(f"[删除] {self.pack_name}: {file_name}")

    def _check_file_name(self, name: str, file_name: str) -> str:
        """文件名必须能解析回同一个模组名称，否则清单记录会找不到文件"""
        validate_file_name(file_name)
        parsed = parse_mod_file_name(file_name)[0]
        if parsed != name:
            raise InvalidNameError(
                f"文件名 '{file_name}' 对应的模组是 '{parsed}'，与 '{name}' 不一致",
                context={"pack": self.pack_name, "mod": name, "file": file_name},
            )
        return file_name

    async def _apply(
        self, mutate: Callable[[List[ManifestEntry], ModFiles], T]
    ) -> T:
        """在整合包锁内读取最新清单并修改，随后刷新内存中的列表"""

        def change(manifest_entries: List[ManifestEntry]):
            result = mutate(manifest_entries, self._scan_files())
            return result, self._project(manifest_entries, self._scan_files())

        try:
            result, self.entries = await self.manifest.update(change)
        except OSError as e:
            raise self._storage_error("写入清单", e) from e
        self.error = None
        return result

    async def reload(self) -> List[ModEntry]:
        """
        重新读取清单并与目录对账

        清单中文件已不存在的模组被静默丢弃；目录中存在但清单没有记录的
        模组按启用状态补入清单。清单有变化时写回磁盘。
        """

        def reconcile(manifest_entries: List[ManifestEntry], files: ModFiles) -> None:
            reconciled: List[ManifestEntry] = []
            seen = set()
            for item in manifest_entries:
                if item.name in seen:
                    continue
                seen.add(item.name)
                if item.name in files:
                    reconciled.append(item)
                else:
                    logger.info(
                        f"[加载] {self.pack_name}: 模组 '{item.name}' 的文件已不存在，从清单移除"
                    )
            for name in sorted(files):
                if name not in seen:
                    logger.info(f"[加载] {self.pack_name}: 发现未记录的模组 '{name}'")
                    reconciled.append(ManifestEntry(name=name, enabled=True))
            manifest_entries[:] = reconciled

        await self._apply(reconcile)
        return self.list_installed()

    def list_installed(self) -> List[ModEntry]:
        """
        当前内存中的模组列表（不重新扫描目录）

        Raises:
            ManifestError: 构建时清单无法解析
        """
        if self.error is not None:
            raise self.error
        return [self._with_title(entry) for entry in self.entries]

    def get(self, name: str) -> Optional[ModEntry]:
        for entry in self.entries:
            if entry.name == name:
                return self._with_title(entry)
        return None

    async def toggle_mod(self, name: str) -> bool:
        """
        切换模组的启用状态

        Returns:
            切换后的启用状态

        Raises:
            ModNotFoundError: 清单中没有该模组，或要启用的模组文件已不存在
        """

        def mutate(entries: List[ManifestEntry], files: ModFiles) -> bool:
            for item in entries:
                if item.name != name:
                    continue
                if not item.enabled and name not in files:
                    raise ModNotFoundError(
                        name, self.pack_name, context={"reason": "file missing"}
                    )
                item.enabled = not item.enabled
                return item.enabled
            raise ModNotFoundError(name, self.pack_name)

        enabled = await self._apply(mutate)
        logger.info(
            f"[切换] {self.pack_name}: '{name}' 已{'启用' if enabled else '禁用'}"
        )
        return enabled

    async def delete_mod(self, name: str) -> None:
        """
        删除模组的所有文件及其清单记录

        先从清单移除记录再删除文件，中途失败时不会留下指向缺失文件的启用记录。
        """

        def mutate(entries: List[ManifestEntry], files: ModFiles) -> ModFiles:
            remaining = [item for item in entries if item.name != name]
            if len(remaining) == len(entries) and name not in files:
                raise ModNotFoundError(name, self.pack_name)
            entries[:] = remaining
            return files

        files = await self._apply(mutate)
        self._remove_files(name, files)
        logger.success(f"[删除] {self.pack_name}: 模组 '{name}' 已删除")

    async def _register(
        self, name: str, file_name: str, replace_others: bool
    ) -> ModEntry:
        """文件已落盘后更新清单：已有记录保留启用状态，否则追加为启用"""

        def mutate(entries: List[ManifestEntry], files: ModFiles) -> None:
            if replace_others:
                self._remove_files(name, files, keep=file_name)
            for item in entries:
                if item.name == name:
                    return
            entries.append(ManifestEntry(name=name, enabled=True))

        self._titles.pop(file_name, None)
        await self._apply(mutate)
        entry = self.get(name)
        logger.success(f"[安装] {self.pack_name}: '{name}' ({file_name})")
        return entry

    async def download_mod(
        self, download_url: str, file_name: str, name: Optional[str] = None
    ) -> ModEntry:
        """
        从远程下载模组到整合包目录

        文件完整下载后才更新清单；下载失败时清单保持不变。

        Args:
            download_url: 下载地址
            file_name: 保存的文件名，须遵循 <name>_<version>.zip
            name: 模组逻辑名称，为空时从文件名推断

        Raises:
            InvalidNameError: 文件名与模组名称不一致
        """
        name = name or parse_mod_file_name(validate_file_name(file_name))[0]
        self._check_file_name(name, file_name)
        await self.downloader.download_file(download_url, file_name, str(self.pack_dir))
        return await self._register(name, file_name, replace_others=False)

    async def update_mod(self, name: str, download_url: str, file_name: str) -> ModEntry:
        """
        用新文件替换模组

        先下载新文件，成功后删除同名模组的旧文件并更新清单，
        下载失败时旧文件和记录都保持原样。

        Raises:
            InvalidNameError: 文件名与模组名称不一致（此时不会下载或删除任何文件）
        """
        self._check_file_name(name, file_name)
        await self.downloader.download_file(download_url, file_name, str(self.pack_dir))
        return await self._register(name, file_name, replace_others=True)

    async def upload_mod(
        self, chunks: AsyncIterable[bytes], original_file_name: str
    ) -> ModEntry:
        """
        保存上传的模组文件

        Args:
            chunks: 文件内容的异步数据流
            original_file_name: 上传时的原始文件名
        """
        file_name = validate_file_name(os.path.basename(original_file_name or ""))
        name = parse_mod_file_name(file_name)[0]
        await self.downloader.save_stream(chunks, file_name, str(self.pack_dir))
        return await self._register(name, file_name, replace_others=False)
