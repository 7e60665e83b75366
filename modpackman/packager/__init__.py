"""
ModPackMan 打包层

包含整合包 zip 导出器。
"""

from modpackman.packager.zip import ZipExporter

__all__ = [
    "ZipExporter",
]
