"""
配置模型

定义 ModPackMan 配置文件（toml / json / yaml）对应的数据类。
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from modpackman.exceptions import ConfigValidationError

FACTORIO_PORTAL_URL = "https://mods.factorio.com"
DEFAULT_CHUNK_SIZE = 64 * 1024
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def _section(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigValidationError(
            f"配置项 [{key}] 必须是一个表", context={"key": key}
        )
    return value


def _positive_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigValidationError(
            f"配置项 {key} 必须是正整数: {value!r}", context={"key": key}
        )
    return value


def _optional_str(value: Any, key: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ConfigValidationError(
            f"配置项 {key} 必须是字符串: {value!r}", context={"key": key}
        )
    return value


@dataclass
class PortalConfig:
    """模组门户配置"""

    base_url: str = FACTORIO_PORTAL_URL
    username: Optional[str] = None
    token: Optional[str] = None
    timeout: Optional[int] = 60

    @classmethod
    def from_dict(cls, data: dict) -> "PortalConfig":
        timeout = data.get("timeout", 60)
        return cls(
            base_url=(
                _optional_str(data.get("base_url"), "portal.base_url")
                or FACTORIO_PORTAL_URL
            ).rstrip("/"),
            username=_optional_str(data.get("username"), "portal.username"),
            token=_optional_str(data.get("token"), "portal.token"),
            timeout=None if timeout is None else _positive_int(timeout, "portal.timeout"),
        )


@dataclass
class ServerConfig:
    """HTTP 服务配置"""

    host: str = "127.0.0.1"
    port: int = 8080

    @classmethod
    def from_dict(cls, data: dict) -> "ServerConfig":
        return cls(
            host=_optional_str(data.get("host"), "server.host") or "127.0.0.1",
            port=_positive_int(data.get("port", 8080), "server.port"),
        )


@dataclass
class DownloadConfig:
    """下载配置"""

    chunk_size: int = DEFAULT_CHUNK_SIZE

    @classmethod
    def from_dict(cls, data: dict) -> "DownloadConfig":
        return cls(
            chunk_size=_positive_int(
                data.get("chunk_size", DEFAULT_CHUNK_SIZE), "download.chunk_size"
            )
        )


@dataclass
class LoggingConfig:
    """日志配置"""

    level: Optional[str] = None
    file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "LoggingConfig":
        level = _optional_str(data.get("level"), "logging.level")
        if level and level.upper() not in LOG_LEVELS:
            raise ConfigValidationError(
                f"未知的日志级别: {level}", context={"key": "logging.level"}
            )
        return cls(level=level, file=_optional_str(data.get("file"), "logging.file"))


@dataclass
class ModPackManConfig:
    """ModPackMan 总配置"""

    modpack_dir: str = "modpacks"
    portal: PortalConfig = field(default_factory=PortalConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    download: DownloadConfig = field(default_factory=DownloadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ModPackManConfig":
        """
        从字典创建配置

        Args:
            data: 配置文件解析后的字典，为空时全部使用默认值

        Returns:
            ModPackManConfig 对象
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigValidationError("配置文件顶层必须是一个表")

        return cls(
            modpack_dir=_optional_str(data.get("modpack_dir"), "modpack_dir")
            or "modpacks",
            portal=PortalConfig.from_dict(_section(data, "portal")),
            server=ServerConfig.from_dict(_section(data, "server")),
            download=DownloadConfig.from_dict(_section(data, "download")),
            logging=LoggingConfig.from_dict(_section(data, "logging")),
        )
