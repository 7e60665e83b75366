"""
门户解析服务

查询模组门户并解析出请求版本对应的发布，支持按顺序批量安装。
"""

from typing import List, Optional, Sequence, Tuple

from loguru import logger

from modpackman.exceptions import BatchInstallError, ModPackError
from modpackman.models import (
    CatalogRelease,
    InstallRequest,
    ModCatalogEntry,
    ModEntry,
)
from modpackman.models.version import VersionLike
from modpackman.services.api_client import ModPortalClient
from modpackman.services.version_matcher import VersionMatcher
from modpackman.storage import ModList


class CatalogResolver:
    """门户解析器"""

    def __init__(
        self, client: ModPortalClient, matcher: Optional[VersionMatcher] = None
    ):
        self.client = client
        self.matcher = matcher or VersionMatcher()

    async def fetch_details(self, mod_name: str) -> ModCatalogEntry:
        """向门户查询一次模组详情"""
        return await self.client.get_mod(mod_name)

    def select_release(
        self, entry: ModCatalogEntry, requested: VersionLike
    ) -> CatalogRelease:
        return self.matcher.select_release(entry, requested)

    async def resolve(
        self, mod_name: str, requested: VersionLike
    ) -> Tuple[ModCatalogEntry, CatalogRelease]:
        """
        解析模组的指定版本

        Returns:
            (模组详情, 匹配的发布)
        """
        entry = await self.fetch_details(mod_name)
        release = self.select_release(entry, requested)
        logger.debug(
            f"[解析] {entry.name} {release.version} -> {release.file_name}"
        )
        return entry, release

    async def install(self, mod_list: ModList, request: InstallRequest) -> ModEntry:
        """解析并下载单个模组到整合包"""
        entry, release = await self.resolve(request.name, request.version)
        return await mod_list.download_mod(
            release.download_url, release.file_name, entry.name
        )

    async def install_many(
        self, mod_list: ModList, requests: Sequence[InstallRequest]
    ) -> List[ModEntry]:
        """
        按顺序逐个安装模组

        任意一项解析或下载失败时立即中止，之前已安装的模组不会回滚。

        Returns:
            本次安装的模组记录

        Raises:
            BatchInstallError: 指明失败的模组及版本，并附带已安装的模组
        """
        installed: List[ModEntry] = []
        for index, request in enumerate(requests, start=1):
            logger.info(
                f"[批量] ({index}/{len(requests)}) {request.name} {request.version}"
            )
            try:
                installed.append(await self.install(mod_list, request))
            except ModPackError as e:
                logger.error(
                    f"[批量] {request.name} {request.version} 安装失败，中止剩余 "
                    f"{len(requests) - index} 项: {e}"
                )
                raise BatchInstallError(
                    request.name,
                    request.version,
                    [mod.name for mod in installed],
                    e,
                    pack_name=mod_list.pack_name,
                ) from e
        return installed
