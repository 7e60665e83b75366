"""
ModPackMan 下载层

流式下载与上传保存。
"""

from modpackman.download.manager import DownloadManager, DownloadStats

__all__ = [
    "DownloadManager",
    "DownloadStats",
]
