"""
ModPackMan 数据模型包

包含配置模型、版本模型、模组模型和门户模型定义。
"""

from modpackman.models.config import (
    FACTORIO_PORTAL_URL,
    PortalConfig,
    ServerConfig,
    DownloadConfig,
    LoggingConfig,
    ModPackManConfig,
)
from modpackman.models.version import Version
from modpackman.models.mod import ManifestEntry, ModEntry, parse_mod_file_name
from modpackman.models.catalog import CatalogRelease, ModCatalogEntry, InstallRequest

__all__ = [
    # 配置模型
    "FACTORIO_PORTAL_URL",
    "PortalConfig",
    "ServerConfig",
    "DownloadConfig",
    "LoggingConfig",
    "ModPackManConfig",
    # 版本模型
    "Version",
    # 模组模型
    "ManifestEntry",
    "ModEntry",
    "parse_mod_file_name",
    # 门户模型
    "CatalogRelease",
    "ModCatalogEntry",
    "InstallRequest",
]
