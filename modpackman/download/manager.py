"""
下载管理器

把远程或本地内容按块流式写入整合包目录。
内容先写入隐藏的临时文件，完整结束后才原子地重命名为目标文件，
失败时临时文件会被清理，目标文件不会处于写了一半的状态。
"""

import asyncio
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterable, Optional
from urllib.parse import urlencode, urljoin, urlparse, urlsplit, urlunsplit

import aiofiles
import aiofiles.os
import aiohttp
from loguru import logger

from modpackman.exceptions import DownloadFileError, DownloadNetworkError
from modpackman.models.config import DEFAULT_CHUNK_SIZE, FACTORIO_PORTAL_URL


@dataclass
class DownloadStats:
    """下载统计"""

    completed: int = 0
    failed: int = 0
    bytes_downloaded: int = 0


class DownloadManager:
    """下载管理器（传输层）"""

    def __init__(
        self,
        base_url: str = FACTORIO_PORTAL_URL,
        username: Optional[str] = None,
        token: Optional[str] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.token = token
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.stats = DownloadStats()
        self._session = session
        self._owned_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owned_session = True
        return self._session

    def resolve_url(self, url: str) -> str:
        """
        补全下载地址

        门户返回的是 /download/... 形式的相对地址，需要拼接门户地址，
        并在配置了凭据时附加 username / token 参数。
        """
        if urlparse(url).scheme:
            return url

        absolute = urljoin(self.base_url + "/", url.lstrip("/"))
        if not (self.username and self.token):
            return absolute

        parts = urlsplit(absolute)
        credentials = urlencode({"username": self.username, "token": self.token})
        query = f"{parts.query}&{credentials}" if parts.query else credentials
        return urlunsplit(parts._replace(query=query))

    def _temp_path(self, download_dir: Path, filename: str) -> Path:
        return download_dir / f".{filename}.{uuid.uuid4().hex}.part"

    async def _discard(self, temp_path: Path) -> None:
        try:
            await aiofiles.os.remove(temp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"[清理] 无法删除临时文件 {temp_path.name}: {e}")

    async def _commit(self, temp_path: Path, file_path: Path) -> None:
        try:
            await aiofiles.os.replace(temp_path, file_path)
        except OSError as e:
            raise DownloadFileError(
                f"无法保存文件 {file_path.name}: {e}",
                context={"file": file_path.name, "error": str(e)},
            ) from e

    async def download_file(self, url: str, filename: str, download_dir: str) -> Path:
        """
        下载单个文件

        Args:
            url: 下载地址（绝对地址、门户相对地址或 file://）
            filename: 目标文件名
            download_dir: 目标目录

        Returns:
            下载完成的文件路径

        Raises:
            DownloadNetworkError: 网络错误或非 200 状态码
            DownloadFileError: 本地文件写入失败
        """
        download_dir = Path(download_dir)
        file_path = download_dir / filename
        temp_path = self._temp_path(download_dir, filename)

        if url.startswith("file://"):
            src_path = url[len("file://"):]
            logger.info(f"[复制] 本地文件: {os.path.basename(src_path)}")
            try:
                async with aiofiles.open(src_path, "rb") as src:
                    await self._write_chunks(
                        self._read_local(src), temp_path, filename, 0
                    )
            except FileNotFoundError as e:
                await self._fail(temp_path, filename)
                raise DownloadFileError(
                    f"本地文件不存在: {src_path}",
                    context={"url": url, "file": filename},
                ) from e
            except BaseException:
                await self._fail(temp_path, filename)
                raise
            await self._commit(temp_path, file_path)
            self.stats.completed += 1
            logger.success(f"[完成] 本地文件复制完成: {filename}")
            return file_path

        target = self.resolve_url(url)
        logger.info(f"[开始] 下载: {filename}")
        try:
            async with self.session.get(target) as response:
                if response.status != 200:
                    raise DownloadNetworkError(
                        f"下载 {filename} 失败: HTTP {response.status}",
                        context={"url": url, "status": response.status, "file": filename},
                    )

                total_size = int(response.headers.get("Content-Length", 0) or 0)
                logger.info(f"[信息] 文件大小: {total_size / (1024 * 1024):.2f} MB")
                await self._write_chunks(
                    response.content.iter_chunked(self.chunk_size),
                    temp_path,
                    filename,
                    total_size,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            await self._fail(temp_path, filename)
            raise DownloadNetworkError(
                f"下载 {filename} 失败: {e}",
                context={"url": url, "file": filename, "error": str(e)},
            ) from e
        except BaseException:
            await self._fail(temp_path, filename)
            raise

        await self._commit(temp_path, file_path)
        self.stats.completed += 1
        logger.success(f"[完成] '{filename}' 下载完成")
        return file_path

    async def save_stream(
        self, chunks: AsyncIterable[bytes], filename: str, download_dir: str
    ) -> Path:
        """
        保存上传的数据流

        Args:
            chunks: 按块产生数据的异步可迭代对象
            filename: 目标文件名
            download_dir: 目标目录

        Returns:
            保存完成的文件路径
        """
        download_dir = Path(download_dir)
        file_path = download_dir / filename
        temp_path = self._temp_path(download_dir, filename)

        logger.info(f"[上传] 保存: {filename}")
        try:
            await self._write_chunks(chunks, temp_path, filename, 0)
        except BaseException:
            await self._fail(temp_path, filename)
            raise

        await self._commit(temp_path, file_path)
        self.stats.completed += 1
        logger.success(f"[完成] '{filename}' 上传完成")
        return file_path

    async def _read_local(self, src):
        while True:
            chunk = await src.read(self.chunk_size)
            if not chunk:
                break
            yield chunk

    async def _write_chunks(
        self,
        chunks: AsyncIterable[bytes],
        temp_path: Path,
        filename: str,
        total_size: int,
    ) -> None:
        try:
            async with aiofiles.open(temp_path, "wb") as f:
                downloaded = 0
                last_percent = 0.0

                async for chunk in chunks:
                    if not chunk:
                        continue
                    await f.write(chunk)
                    downloaded += len(chunk)
                    self.stats.bytes_downloaded += len(chunk)

                    if total_size > 0:
                        percent = (downloaded / total_size) * 100
                        if percent - last_percent >= 5:
                            logger.info(f"[进度] {filename}: {percent:.1f}%")
                            last_percent = percent
        except OSError as e:
            raise DownloadFileError(
                f"写入 {filename} 失败: {e}",
                context={"file": filename, "error": str(e)},
            ) from e

    async def _fail(self, temp_path: Path, filename: str) -> None:
        self.stats.failed += 1
        await self._discard(temp_path)
        logger.error(f"[错误] '{filename}' 传输失败，已清理临时文件")

    def get_stats(self) -> DownloadStats:
        """获取下载统计"""
        return self.stats

    async def close(self):
        """关闭 session"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()
