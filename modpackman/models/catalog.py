"""
模组门户数据模型

定义门户返回的模组信息、发布信息，以及批量安装请求。
"""

from dataclasses import dataclass, field
from typing import List, Optional

from modpackman.exceptions import ValidationError
from modpackman.models.version import Version, VersionLike


@dataclass
class CatalogRelease:
    """模组的一个发布版本"""

    version: Version
    download_url: str
    file_name: str
    released_at: Optional[str] = None
    factorio_version: Optional[str] = None

    @classmethod
    def from_portal(cls, data: dict) -> "CatalogRelease":
        """将门户 API 返回的 release 转换为 CatalogRelease 对象。"""
        info = data.get("info_json") or {}
        return cls(
            version=Version.parse(data["version"]),
            download_url=data["download_url"],
            file_name=data["file_name"],
            released_at=data.get("released_at"),
            factorio_version=info.get("factorio_version"),
        )


@dataclass
class ModCatalogEntry:
    """
    门户中的模组信息。

    releases 保持门户返回的顺序，版本选择以此顺序为准。
    """

    name: str
    releases: List[CatalogRelease] = field(default_factory=list)
    title: Optional[str] = None

    @classmethod
    def from_portal(cls, data: dict) -> "ModCatalogEntry":
        """将门户 API 返回的模组详情转换为 ModCatalogEntry 对象。"""
        return cls(
            name=data["name"],
            title=data.get("title"),
            releases=[
                CatalogRelease.from_portal(release)
                for release in data.get("releases", [])
            ],
        )


@dataclass
class InstallRequest:
    """批量安装中的一项：模组名 + 精确版本"""

    name: str
    version: Version

    @classmethod
    def create(cls, name: str, version: VersionLike) -> "InstallRequest":
        if not name:
            raise ValidationError("模组名称不能为空")
        return cls(name=name, version=Version.parse(version))

    @classmethod
    def from_dict(cls, data: dict) -> "InstallRequest":
        if not isinstance(data, dict) or "name" not in data or "version" not in data:
            raise ValidationError(
                "安装请求必须包含 name 和 version",
                context={"request": repr(data)},
            )
        return cls.create(str(data["name"]), data["version"])

    @classmethod
    def from_spec(cls, spec: str) -> "InstallRequest":
        """解析命令行中的 name@version 形式"""
        name, sep, version = spec.rpartition("@")
        if not sep:
            raise ValidationError(
                f"安装请求格式应为 name@version: '{spec}'",
                context={"request": spec},
            )
        return cls.create(name, version)

    def to_dict(self) -> dict:
        return {"name": self.name, "version": str(self.version)}
