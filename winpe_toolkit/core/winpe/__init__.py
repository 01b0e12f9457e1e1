# -*- coding: utf-8 -*-
"""
WinPE工作目录模块
负责工作目录的创建、验证、挂载、定制和写入U盘
"""

from .layout import WorkDirLayout
from .image_probe import ImageStateProbe
from .mount_manager import MountManager
from .workdir import WorkDirLifecycle
from .package_manager import PackageManager
from .module_manager import ModuleManager
from .media_writer import MediaWriter

__all__ = [
    'WorkDirLayout',
    'ImageStateProbe',
    'MountManager',
    'WorkDirLifecycle',
    'PackageManager',
    'ModuleManager',
    'MediaWriter'
]
