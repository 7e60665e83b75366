"""
版本匹配服务

在门户返回的发布列表中选出与请求版本完全一致的发布。
不做范围匹配，也不会退而选择最新版本。
"""

from typing import Iterable, Optional

from modpackman.exceptions import NoMatchingVersionError
from modpackman.models import CatalogRelease, ModCatalogEntry, Version
from modpackman.models.version import VersionLike


class VersionMatcher:
    """版本匹配器"""

    def matches(self, version: VersionLike, target: VersionLike) -> bool:
        """
        检查两个版本是否逐分量相等

        Args:
            version: 要检查的版本
            target: 目标版本

        Returns:
            是否匹配
        """
        return Version.parse(version) == Version.parse(target)

    def find_release(
        self, releases: Iterable[CatalogRelease], requested: VersionLike
    ) -> Optional[CatalogRelease]:
        """按门户顺序返回第一个版本匹配的发布，没有则返回 None"""
        requested = Version.parse(requested)
        for release in releases:
            if release.version == requested:
                return release
        return None

    def select_release(
        self, entry: ModCatalogEntry, requested: VersionLike
    ) -> CatalogRelease:
        """
        选择与请求版本完全一致的发布

        Raises:
            NoMatchingVersionError: 没有匹配的发布
        """
        release = self.find_release(entry.releases, requested)
        if release is None:
            raise NoMatchingVersionError(entry.name, Version.parse(requested))
        return release
