"""
ModPackMan 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
所有错误都在 context 中记录涉及的整合包 / 模组名称。
"""

from typing import Any, Dict, Optional

import aiohttp


class ModPackError(Exception):
    """ModPackMan 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(ModPackError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ConfigParseError(ConfigError):
    """配置解析错误"""

    def _get_default_code(self) -> str:
        return "E101"


class ConfigValidationError(ConfigError):
    """配置验证错误"""

    def _get_default_code(self) -> str:
        return "E102"


class APIError(ModPackError):
    """模组门户 API 错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[aiohttp.ClientResponse] = None,
    ):
        super().__init__(message, code, context)
        self.response = response
        if response is not None:
            self.context["status_code"] = response.status
            self.context["url"] = str(response.url)

    def _get_default_code(self) -> str:
        return "E200"


class APIServerError(APIError):
    """API 服务器错误"""

    def _get_default_code(self) -> str:
        return "E201"


class NotFoundError(ModPackError):
    """请求的实体不存在"""

    def _get_default_code(self) -> str:
        return "E600"


class APINotFoundError(APIError, NotFoundError):
    """门户中不存在该模组"""

    def _get_default_code(self) -> str:
        return "E204"


class DownloadError(ModPackError):
    """下载相关错误"""

    def _get_default_code(self) -> str:
        return "E300"


class DownloadNetworkError(DownloadError):
    """下载网络错误"""

    def _get_default_code(self) -> str:
        return "E301"


class DownloadFileError(DownloadError):
    """下载文件操作错误"""

    def _get_default_code(self) -> str:
        return "E303"


class PackagerError(ModPackError):
    """打包相关错误"""

    def _get_default_code(self) -> str:
        return "E400"


class ZipError(PackagerError):
    """ZIP 生成错误"""

    def _get_default_code(self) -> str:
        return "E401"


class UnsupportedLayoutError(ZipError):
    """整合包目录中包含子目录，无法导出"""

    def _get_default_code(self) -> str:
        return "E402"


class ValidationError(ModPackError):
    """验证相关错误"""

    def _get_default_code(self) -> str:
        return "E500"


class InvalidNameError(ValidationError):
    """整合包名称或文件名不安全"""

    def _get_default_code(self) -> str:
        return "E501"


class InvalidVersionError(ValidationError):
    """版本号格式错误"""

    def _get_default_code(self) -> str:
        return "E502"


class ModPackNotFoundError(NotFoundError):
    """整合包不存在"""

    def __init__(self, pack_name: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"整合包 '{pack_name}' 不存在",
            context={"pack": pack_name, **(context or {})},
        )
        self.pack_name = pack_name

    def _get_default_code(self) -> str:
        return "E601"


class ModNotFoundError(NotFoundError):
    """整合包中不存在该模组"""

    def __init__(
        self,
        mod_name: str,
        pack_name: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            f"整合包 '{pack_name}' 中不存在模组 '{mod_name}'",
            context={"pack": pack_name, "mod": mod_name, **(context or {})},
        )
        self.mod_name = mod_name
        self.pack_name = pack_name

    def _get_default_code(self) -> str:
        return "E602"


class ModPackExistsError(ModPackError):
    """整合包名称已被占用"""

    def __init__(self, pack_name: str):
        super().__init__(
            f"整合包 '{pack_name}' 已存在",
            context={"pack": pack_name},
        )
        self.pack_name = pack_name

    def _get_default_code(self) -> str:
        return "E610"


class NoMatchingVersionError(NotFoundError):
    """门户中没有与请求版本完全一致的发布"""

    def __init__(self, mod_name: str, version: Any):
        super().__init__(
            f"模组 '{mod_name}' 没有版本 {version} 的发布",
            context={"mod": mod_name, "version": str(version)},
        )
        self.mod_name = mod_name
        self.version = version

    def _get_default_code(self) -> str:
        return "E700"


class BatchInstallError(ModPackError):
    """批量安装在某个模组处中止"""

    def __init__(
        self,
        mod_name: str,
        version: Any,
        installed: list,
        cause: ModPackError,
        pack_name: Optional[str] = None,
    ):
        super().__init__(
            f"批量安装在模组 '{mod_name}' ({version}) 处中止: {cause.message}",
            context={
                "pack": pack_name,
                "mod": mod_name,
                "version": str(version),
                "installed": list(installed),
                "cause": cause.to_dict(),
            },
        )
        self.mod_name = mod_name
        self.version = version
        self.installed = list(installed)
        self.cause = cause

    def _get_default_code(self) -> str:
        return "E701"


class StorageError(ModPackError):
    """本地文件系统错误"""

    def _get_default_code(self) -> str:
        return "E800"


class ManifestError(StorageError):
    """mod-list.json 无法解析"""

    def _get_default_code(self) -> str:
        return "E801"


__all__ = [
    # 基础异常
    "ModPackError",
    # 配置异常
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # API 异常
    "APIError",
    "APIServerError",
    "APINotFoundError",
    # 下载异常
    "DownloadError",
    "DownloadNetworkError",
    "DownloadFileError",
    # 打包异常
    "PackagerError",
    "ZipError",
    "UnsupportedLayoutError",
    # 验证异常
    "ValidationError",
    "InvalidNameError",
    "InvalidVersionError",
    # 实体异常
    "NotFoundError",
    "ModPackNotFoundError",
    "ModNotFoundError",
    "ModPackExistsError",
    # 版本解析
    "NoMatchingVersionError",
    "BatchInstallError",
    # 存储异常
    "StorageError",
    "ManifestError",
]
