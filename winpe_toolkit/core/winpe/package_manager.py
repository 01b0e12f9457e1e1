#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
包管理模块
负责向已挂载的WinPE镜像添加基础可选组件
"""

from pathlib import Path
from typing import Callable, List, Optional
import logging

from winpe_toolkit.core.exceptions import (
    ImageNotMountedError,
    InvalidBuildTreeError,
    PackageInstallError,
    PackageSourceMissingError,
)
from winpe_toolkit.core.models import Architecture, LayoutStatus
from winpe_toolkit.core.options import ExecutionOptions
from winpe_toolkit.core.winpe.image_probe import ImageStateProbe
from winpe_toolkit.core.winpe.layout import WorkDirLayout, boot_wim_path, mount_dir_path
from winpe_toolkit.core.winpe.mount_manager import mount_arguments
from winpe_toolkit.core.winpe_packages import BASE_PACKAGES, OPTIONAL_COMPONENTS_DIR
from winpe_toolkit.utils.logger import log_build_step

logger = logging.getLogger("WinPEToolkit")


def require_mounted(layout: WorkDirLayout, adk_manager, build_dir: Path) -> LayoutStatus:
    """要求工作目录有效且镜像已挂载

    Raises:
        InvalidBuildTreeError: 不是有效的工作目录
        ImageNotMountedError: 镜像未挂载，错误中附带挂载命令
    """
    status = layout.validate(build_dir)
    if not status.valid:
        raise InvalidBuildTreeError(status.root or Path(build_dir), status.missing)
    if not status.mounted:
        root = status.root
        command = adk_manager.format_dism_command(
            mount_arguments(boot_wim_path(root), mount_dir_path(root))
        )
        raise ImageNotMountedError(root, command)
    return status


class PackageManager:
    """WinPE可选组件管理器"""

    def __init__(self, config, adk_manager, image_probe: Optional[ImageStateProbe] = None,
                 layout: Optional[WorkDirLayout] = None, options: Optional[ExecutionOptions] = None):
        self.config = config
        self.adk = adk_manager
        self.image_probe = image_probe or ImageStateProbe(adk_manager)
        self.layout = layout or WorkDirLayout(self.image_probe)
        self.options = options or ExecutionOptions()

    def get_package_source(self, architecture: Architecture) -> Path:
        """获取架构对应的可选组件目录

        Raises:
            PackageSourceMissingError: 目录不存在
        """
        source_dir = self.config.deployment_kit_root / Architecture.parse(architecture).value / OPTIONAL_COMPONENTS_DIR
        if not source_dir.is_dir():
            raise PackageSourceMissingError(source_dir)
        return source_dir

    def install_base_packages(self, build_dir: Path,
                              progress_callback: Optional[Callable] = None) -> List[Path]:
        """添加基础可选组件

        按固定顺序逐个安装，任一失败立即中止，不回滚已安装的包。

        Args:
            build_dir: 工作目录或其 mount 子目录
            progress_callback: 进度回调函数 (percent: int, message: str)

        Returns:
            List[Path]: 已添加（演练模式下为将要添加）的包文件

        Raises:
            PreconditionError: 未挂载、架构无法识别或组件目录缺失
            PackageInstallError: DISM添加包失败
        """
        status = require_mounted(self.layout, self.adk, build_dir)
        boot_wim = boot_wim_path(status.root)

        architecture = self.image_probe.get_architecture(boot_wim)
        source_dir = self.get_package_source(architecture)

        handle = self.image_probe.find_mount(boot_wim)
        mount_dir = handle.mount_dir if handle else mount_dir_path(status.root)

        language = self.config.language
        total = len(BASE_PACKAGES)
        installed = []

        logger.info(f"开始添加 {total} 个可选组件到WinPE镜像 ({architecture}, {language})")

        for i, package in enumerate(BASE_PACKAGES):
            message = f"[{i + 1}/{total}] 正在添加: {package.package_name} ({package.description})"
            logger.info(message)
            if progress_callback:
                progress_callback(i * 100 // total, message)

            for cab in (package.cab_path(source_dir), package.language_cab_path(source_dir, language)):
                self._add_package(mount_dir, cab)
                installed.append(cab)

        log_build_step("添加可选组件", f"完成 {total} 个组件")
        if progress_callback:
            progress_callback(100, "可选组件添加完成")
        return installed

    def _add_package(self, mount_dir: Path, cab: Path):
        args = [
            f"/Image:{mount_dir}",
            "/Add-Package",
            f"/PackagePath:{cab}",
        ]

        if self.options.what_if:
            logger.info(f"What if: 添加包 {cab} 到 {mount_dir}")
            return

        success, stdout, stderr = self.adk.run_dism_command(args)
        if not success:
            raise PackageInstallError(
                self.adk.format_dism_command(args),
                stderr or stdout,
                self.adk.last_returncode,
                f"添加包失败 {cab.name}",
            )
        logger.info(f"  ✅ 已添加: {cab.name}")
