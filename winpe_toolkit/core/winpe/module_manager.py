#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PowerShell模块管理模块
负责把PowerShell模块复制到已挂载的WinPE镜像中
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import logging

from winpe_toolkit.core.adk_manager import quote_powershell
from winpe_toolkit.core.exceptions import BuildTreeCopyError, ModuleValidationError
from winpe_toolkit.core.options import ExecutionOptions
from winpe_toolkit.core.winpe.image_probe import ImageStateProbe
from winpe_toolkit.core.winpe.layout import WorkDirLayout, boot_wim_path, mount_dir_path
from winpe_toolkit.core.winpe.package_manager import require_mounted
from winpe_toolkit.utils.file_utils import copy_tree
from winpe_toolkit.utils.logger import log_build_step

logger = logging.getLogger("WinPEToolkit")

# 镜像内的系统模块目录
MODULES_DIR = Path("Program Files") / "WindowsPowerShell" / "Modules"


class ModuleManager:
    """PowerShell模块管理器"""

    def __init__(self, adk_manager, image_probe: Optional[ImageStateProbe] = None,
                 layout: Optional[WorkDirLayout] = None, options: Optional[ExecutionOptions] = None):
        self.adk = adk_manager
        self.image_probe = image_probe or ImageStateProbe(adk_manager)
        self.layout = layout or WorkDirLayout(self.image_probe)
        self.options = options or ExecutionOptions()
        self.last_failures: List[ModuleValidationError] = []

    def is_valid_module(self, module_dir: Path) -> Tuple[bool, str]:
        """用 Get-Module -ListAvailable 判断目录是否为可安装的模块

        Returns:
            Tuple[bool, str]: (是否有效, 模块名称或失败原因)
        """
        script = (
            f"Get-Module -ListAvailable -Name {quote_powershell(module_dir)} "
            "| Select-Object -First 1 -ExpandProperty Name"
        )
        success, stdout, stderr = self.adk.run_powershell_command(script)
        if not success:
            return False, (stderr or stdout).strip() or "Get-Module 执行失败"

        name = stdout.strip()
        if not name:
            return False, "不是有效的PowerShell模块"
        return True, name

    def install_modules(self, build_dir: Path, module_paths: Sequence[Path],
                        overwrite: bool = False) -> List[Path]:
        """安装PowerShell模块

        逐个处理：单个模块无效只记录错误并跳过，不影响其余模块。

        Args:
            build_dir: 工作目录或其 mount 子目录
            module_paths: 模块目录列表
            overwrite: 目标已存在时覆盖

        Returns:
            List[Path]: 成功创建的目标目录

        Raises:
            PreconditionError: 工作目录无效或未挂载
            BuildTreeCopyError: 复制失败
        """
        status = require_mounted(self.layout, self.adk, build_dir)
        handle = self.image_probe.find_mount(boot_wim_path(status.root))
        mount_dir = handle.mount_dir if handle else mount_dir_path(status.root)
        modules_root = mount_dir / MODULES_DIR

        self.last_failures = []
        installed = []
        total = len(module_paths)

        for i, module_path in enumerate(module_paths, 1):
            source = Path(module_path).absolute()
            logger.info(f"[{i}/{total}] 处理模块: {source}")

            try:
                destination = self._install_module(source, modules_root, overwrite)
            except ModuleValidationError as e:
                logger.error(f"  ❌ {e}")
                self.last_failures.append(e)
                continue

            installed.append(destination)

        log_build_step("安装模块", f"成功 {len(installed)}/{total} 个")
        return installed

    def _install_module(self, source: Path, modules_root: Path, overwrite: bool) -> Path:
        if not source.is_dir():
            raise ModuleValidationError(source, "不是目录")

        valid, detail = self.is_valid_module(source)
        if not valid:
            raise ModuleValidationError(source, detail)

        destination = modules_root / source.name
        if destination.exists() and not overwrite:
            raise ModuleValidationError(source, f"目标已存在: {destination}")

        if self.options.what_if:
            logger.info(f"What if: 复制模块 {source} 到 {destination}")
            return destination

        try:
            file_count = copy_tree(source, destination, overwrite=overwrite)
        except OSError as e:
            raise BuildTreeCopyError(destination, str(e)) from e

        logger.info(f"  ✅ 模块 {detail} 已安装到 {destination} ({file_count} 个文件)")
        return destination
