"""
ModPackMan 存储层

整合包注册表、整合包、模组列表和清单。
"""

from modpackman.storage.manifest import ModManifest, pack_lock
from modpackman.storage.mod_list import ModList
from modpackman.storage.modpack import ModPack
from modpackman.storage.registry import ModPackMap

__all__ = [
    "ModManifest",
    "pack_lock",
    "ModList",
    "ModPack",
    "ModPackMap",
]
