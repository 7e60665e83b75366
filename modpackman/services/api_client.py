"""
模组门户客户端

查询 Factorio 模组门户，获取模组的发布列表。
"""

import asyncio
from typing import Optional
from urllib.parse import quote

import aiohttp
from loguru import logger

from modpackman.exceptions import (
    APIError,
    APINotFoundError,
    APIServerError,
    InvalidVersionError,
)
from modpackman.models import FACTORIO_PORTAL_URL, ModCatalogEntry


class ModPortalClient:
    """模组门户 API 客户端"""

    def __init__(
        self,
        base_url: str = FACTORIO_PORTAL_URL,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
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

    async def _request(self, endpoint: str, mod_name: str) -> Optional[dict]:
        """发送 API 请求，404 返回 None"""
        try:
            async with self.session.get(endpoint) as response:
                if response.status == 200:
                    return await response.json()
                elif response.status == 404:
                    return None
                elif response.status >= 500:
                    raise APIServerError(
                        f"查询模组 '{mod_name}' 时门户服务器错误 (状态码: {response.status})",
                        context={"mod": mod_name},
                        response=response,
                    )
                else:
                    raise APIError(
                        f"查询模组 '{mod_name}' 失败 (状态码: {response.status})",
                        context={"mod": mod_name},
                        response=response,
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise APIError(
                f"查询模组 '{mod_name}' 时无法连接模组门户: {e}",
                context={"mod": mod_name, "url": endpoint, "error": str(e)},
            ) from e
        except ValueError as e:
            raise APIError(
                f"模组门户返回的 '{mod_name}' 数据无法解析: {e}",
                context={"mod": mod_name, "url": endpoint},
            ) from e

    async def get_mod(self, name: str) -> ModCatalogEntry:
        """
        获取模组详情及其全部发布

        Args:
            name: 模组名称

        Returns:
            ModCatalogEntry

        Raises:
            APINotFoundError: 门户中不存在该模组
            APIError: 请求失败或返回数据格式错误
        """
        endpoint = f"{self.base_url}/api/mods/{quote(name, safe='')}"
        logger.debug(f"[门户] 查询模组 {name}")
        data = await self._request(endpoint, name)
        if data is None:
            raise APINotFoundError(
                f"模组门户中不存在模组 '{name}'",
                context={"mod": name, "url": endpoint},
            )

        try:
            return ModCatalogEntry.from_portal(data)
        except (KeyError, TypeError, AttributeError, InvalidVersionError) as e:
            raise APIError(
                f"模组门户返回的 '{name}' 数据格式错误: {e}",
                context={"mod": name, "url": endpoint},
            ) from e

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()
