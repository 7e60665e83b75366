"""
ModPackMan - 游戏服务器整合包管理工具

管理多个可独立启用的整合包：创建、删除、加载、切换、更新、
从模组门户批量安装以及导出为 zip。
"""

__version__ = "0.1.0"
__author__ = "ModPackMan"
