"""
通用工具

配置文件加载、名称校验和文件分块读取。
"""

import json
import os
import re
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles
import toml
import yaml

from modpackman.exceptions import ConfigParseError, InvalidNameError
from modpackman.models import ModPackManConfig

MANIFEST_FILE = "mod-list.json"

# 整合包名称会直接作为目录名使用
_SAFE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._ -]*$")
_MAX_NAME_LENGTH = 128


def load_config(config_path: Optional[str]) -> ModPackManConfig:
    """
    加载配置文件

    Args:
        config_path: toml / json / yaml 文件路径，为空时使用默认配置

    Returns:
        ModPackManConfig 对象
    """
    if not config_path:
        return ModPackManConfig()

    path = Path(config_path)
    suffix = path.suffix.lower()

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigParseError(
            f"无法读取配置文件 {config_path}: {e}", context={"path": config_path}
        ) from e

    try:
        if suffix == ".toml":
            data = toml.loads(text)
        elif suffix == ".json":
            data = json.loads(text)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            raise ConfigParseError(
                f"不支持的配置文件格式: {suffix}", context={"path": config_path}
            )
    except (toml.TomlDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigParseError(
            f"配置文件解析失败 {config_path}: {e}", context={"path": config_path}
        ) from e

    return ModPackManConfig.from_dict(data)


def validate_pack_name(name: str) -> str:
    """检查整合包名称可以安全地作为目录名"""
    if (
        not isinstance(name, str)
        or len(name) > _MAX_NAME_LENGTH
        or name != name.strip()
        or not _SAFE_NAME_RE.match(name)
    ):
        raise InvalidNameError(
            f"整合包名称不合法: '{name}'", context={"pack": name}
        )
    return name


def validate_file_name(file_name: str) -> str:
    """检查模组文件名是单纯的文件名，且不与清单文件冲突"""
    if (
        not isinstance(file_name, str)
        or not file_name
        or file_name in (".", "..")
        or file_name.startswith(".")
        or file_name == MANIFEST_FILE
        or "/" in file_name
        or "\\" in file_name
        or "\x00" in file_name
        or os.path.basename(file_name) != file_name
    ):
        raise InvalidNameError(
            f"模组文件名不合法: '{file_name}'", context={"file": file_name}
        )
    return file_name


async def iter_file_chunks(path: str, chunk_size: int = 64 * 1024) -> AsyncIterator[bytes]:
    """按块异步读取本地文件"""
    async with aiofiles.open(path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            yield chunk
