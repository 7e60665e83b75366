"""
日志模块

使用 loguru 提供统一的日志记录功能。服务端运行时可额外写入滚动日志文件。
"""

import os
import sys
from typing import Optional

from loguru import logger

DEBUG_ENV = "MODPACKMAN_DEBUG"
LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"


def resolve_level(level: Optional[str] = None) -> str:
    """显式级别优先，其次读取 MODPACKMAN_DEBUG 环境变量"""
    if level:
        return level.upper()
    return "DEBUG" if os.environ.get(DEBUG_ENV, "0") == "1" else "INFO"


def setup_logger(
    level: Optional[str] = None,
    sink=sys.stdout,
    log_file: Optional[str] = None,
    enqueue: bool = True,
    colorize: bool = True,
) -> None:
    """
    设置日志记录器

    Args:
        level: 日志级别 (DEBUG, INFO, WARNING, ERROR)，为空时读取环境变量
        sink: 控制台输出目标
        log_file: 额外的日志文件路径，按 10 MB 滚动
        enqueue: 是否启用队列（线程安全）
        colorize: 是否启用颜色
    """
    level = resolve_level(level)
    debug_mode = level == "DEBUG"

    logger.remove()
    logger.add(
        sink=sink,
        format=LOG_FORMAT,
        enqueue=enqueue,
        level=level,
        colorize=colorize,
        backtrace=debug_mode,
        diagnose=debug_mode,
    )

    if log_file:
        logger.add(
            log_file,
            format=LOG_FORMAT,
            enqueue=enqueue,
            level=level,
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )

    if debug_mode:
        logger.debug("DEBUG 模式已启用")


__all__ = ["logger", "setup_logger", "resolve_level", "DEBUG_ENV"]
