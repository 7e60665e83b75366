"""
ModPackMan 服务层

包含业务逻辑服务：门户客户端、版本匹配、门户解析。
"""

from modpackman.services.api_client import ModPortalClient
from modpackman.services.version_matcher import VersionMatcher
from modpackman.services.catalog_resolver import CatalogResolver

__all__ = [
    "ModPortalClient",
    "VersionMatcher",
    "CatalogResolver",
]
