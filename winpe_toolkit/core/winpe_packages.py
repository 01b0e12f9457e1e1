#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
WinPE可选组件数据模块
基础包列表与架构无关，每个包配一个语言包
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

OPTIONAL_COMPONENTS_DIR = "WinPE_OCs"


@dataclass(frozen=True)
class WinPEPackage:
    """可选组件数据类"""
    package_name: str  # 包名称
    description: str   # 描述

    def cab_path(self, source_dir: Path) -> Path:
        """基础包路径: WinPE_OCs\\<name>.cab"""
        return Path(source_dir) / f"{self.package_name}.cab"

    def language_cab_path(self, source_dir: Path, language: str) -> Path:
        """语言包路径: WinPE_OCs\\<lang>\\<name>_<lang>.cab"""
        return Path(source_dir) / language / f"{self.package_name}_{language}.cab"


# 按此顺序安装和显示进度
BASE_PACKAGES: Tuple[WinPEPackage, ...] = (
    WinPEPackage("WinPE-WMI", "WMI 支持"),
    WinPEPackage("WinPE-NetFX", ".NET Framework 支持"),
    WinPEPackage("WinPE-Scripting", "脚本引擎"),
    WinPEPackage("WinPE-PowerShell", "PowerShell 支持"),
    WinPEPackage("WinPE-StorageWMI", "存储 WMI 支持"),
    WinPEPackage("WinPE-DismCmdlets", "DISM 命令行工具"),
    WinPEPackage("WinPE-EnhancedStorage", "增强存储支持"),
    WinPEPackage("WinPE-SecureStartup", "BitLocker 支持"),
)
