"""
模组数据模型

整合包内的模组记录与 mod-list.json 清单条目。
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from modpackman.exceptions import InvalidVersionError
from modpackman.models.version import Version


def parse_mod_file_name(file_name: str) -> Tuple[str, Optional[Version]]:
    """
    从文件名解析模组逻辑名称和版本

    遵循 <name>_<version>.zip 的命名约定；不符合约定时以去掉 .zip 后缀的文件名作为名称。

    Args:
        file_name: 模组文件名

    Returns:
        (名称, 版本或 None)
    """
    stem = file_name[:-4] if file_name.lower().endswith(".zip") else file_name
    name, sep, raw_version = stem.rpartition("_")
    if sep and name:
        try:
            return name, Version.parse(raw_version)
        except InvalidVersionError:
            pass
    return stem, None


@dataclass
class ManifestEntry:
    """清单中的一条 {name, enabled} 记录"""

    name: str
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "ManifestEntry":
        return cls(name=str(data["name"]), enabled=bool(data.get("enabled", True)))

    def to_dict(self) -> dict:
        return {"name": self.name, "enabled": self.enabled}


@dataclass
class ModEntry:
    """
    整合包中已安装的模组。

    同一逻辑模组可能存在多个版本的文件，file_name 指向版本最高的那个；
    清单中记录的模组若文件已不存在，则 file_name 为 None。
    """

    name: str
    enabled: bool = True
    file_name: Optional[str] = None
    version: Optional[Version] = None
    title: Optional[str] = None

    @property
    def present(self) -> bool:
        """文件是否存在于整合包目录中"""
        return self.file_name is not None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "fileName": self.file_name,
            "version": str(self.version) if self.version else None,
            "title": self.title,
            "enabled": self.enabled,
        }
