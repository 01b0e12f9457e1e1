#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
WinPE工作目录创建模块
按copype的方式从ADK复制媒体文件、启动镜像和固件启动扇区文件
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from winpe_toolkit.core.exceptions import (
    BuildTreeCopyError,
    DestinationExistsError,
    SourceAssetMissingError,
    ToolNotFoundError,
)
from winpe_toolkit.core.models import Architecture, BuildTree
from winpe_toolkit.core.options import ExecutionOptions
from winpe_toolkit.core.winpe.layout import (
    BIOS_BOOT_SECTOR,
    BOOT_WIM,
    FWFILES_DIR,
    MEDIA_DIR,
    MOUNT_DIR,
    UEFI_BOOT_SECTOR,
)
from winpe_toolkit.core.winpe.mount_manager import MountManager
from winpe_toolkit.utils.file_utils import copy_file, copy_tree, force_remove_tree
from winpe_toolkit.utils.logger import get_logger, log_build_step


@dataclass
class SourceAssets:
    """某个架构在ADK中的源文件"""
    architecture: Architecture
    arch_root: Path
    media_dir: Path
    boot_wim: Path
    uefi_boot_sector: Path
    bios_boot_sector: Path


class WorkDirLifecycle:
    """WinPE工作目录创建"""

    def __init__(self, config, adk_manager=None, mount_manager: Optional[MountManager] = None,
                 options: Optional[ExecutionOptions] = None, progress_callback: Optional[Callable] = None):
        """
        Args:
            config: ToolkitConfig
            adk_manager: ADK管理器实例，挂载时需要
            mount_manager: 挂载管理器，默认基于adk_manager创建
            options: 执行选项
            progress_callback: 进度回调函数 (percent: int, message: str)
        """
        self.config = config
        self.options = options or ExecutionOptions()
        self.mount_manager = mount_manager
        if self.mount_manager is None and adk_manager is not None:
            self.mount_manager = MountManager(adk_manager, options=self.options)
        self.progress_callback = progress_callback
        self.logger = get_logger("WorkDirLifecycle")

    def _report(self, percent: int, message: str):
        self.logger.info(message)
        if self.progress_callback:
            self.progress_callback(percent, message)

    def get_source_assets(self, architecture) -> SourceAssets:
        """定位架构对应的源文件

        固件启动扇区文件取自目标架构的Oscdimg目录，
        即 %OSCDImgRoot%\\..\\..\\<arch>\\Oscdimg。
        """
        architecture = Architecture.parse(architecture)
        arch_root = self.config.deployment_kit_root / architecture.value
        firmware_dir = self.config.imaging_tool_root.parent.parent / architecture.value / "Oscdimg"
        return SourceAssets(
            architecture=architecture,
            arch_root=arch_root,
            media_dir=arch_root / "Media",
            boot_wim=arch_root / "en-us" / "winpe.wim",
            uefi_boot_sector=firmware_dir / UEFI_BOOT_SECTOR,
            bios_boot_sector=firmware_dir / BIOS_BOOT_SECTOR,
        )

    def check_preconditions(self, sources: SourceAssets, destination: Path):
        """检查前置条件，任一不满足立即失败"""
        if destination.exists():
            raise DestinationExistsError(destination)
        if not sources.arch_root.is_dir():
            raise SourceAssetMissingError(sources.arch_root, f"{sources.architecture}架构源目录")
        if not sources.media_dir.is_dir():
            raise SourceAssetMissingError(sources.media_dir, "媒体源目录")
        if not sources.boot_wim.is_file():
            raise SourceAssetMissingError(sources.boot_wim, "WinPE源镜像")
        if not sources.uefi_boot_sector.is_file():
            raise SourceAssetMissingError(sources.uefi_boot_sector, "UEFI启动扇区文件")

    def create_build_tree(self, architecture, destination: Path, mount: bool = False,
                          cleanup_on_failure: bool = False) -> BuildTree:
        """创建WinPE工作目录

        非事务操作：复制中途失败时已创建的部分保留在磁盘上，
        除非指定 cleanup_on_failure。

        Args:
            architecture: 架构 (amd64, x86, arm, arm64)
            destination: 目标目录，必须不存在
            mount: 创建后是否挂载 boot.wim
            cleanup_on_failure: 复制失败时删除已创建的目标目录

        Returns:
            BuildTree: 工作目录，挂载成功时 mount_handle 为挂载句柄

        Raises:
            PreconditionError: 目标已存在或源文件缺失
            BuildTreeCopyError: 创建目录或复制文件失败
            ImageMountError: 挂载失败
        """
        sources = self.get_source_assets(architecture)
        destination = Path(destination).absolute()
        build_tree = BuildTree(root=destination, architecture=sources.architecture)

        self.logger.info(f"开始创建WinPE工作目录: {sources.architecture} -> {destination}")
        self.check_preconditions(sources, destination)

        if self.options.what_if:
            self._describe_plan(sources, build_tree, mount)
            return build_tree

        try:
            self._populate(sources, build_tree)
        except BuildTreeCopyError:
            if cleanup_on_failure and destination.exists():
                self.logger.warning(f"清理未完成的工作目录: {destination}")
                force_remove_tree(destination)
            else:
                self.logger.warning(f"未完成的工作目录保留在: {destination}")
            raise

        if mount:
            if self.mount_manager is None:
                raise ToolNotFoundError("dism.exe")
            self._report(90, "挂载启动镜像")
            build_tree.mount_handle = self.mount_manager.mount_image(
                build_tree.boot_wim, build_tree.mount_dir, index=1
            )

        self._report(100, f"WinPE工作目录创建完成: {destination}")
        return build_tree

    def _populate(self, sources: SourceAssets, build_tree: BuildTree):
        root = build_tree.root

        self._report(5, "创建目录结构")
        for directory in (root, root / FWFILES_DIR, root / MEDIA_DIR, root / MOUNT_DIR):
            try:
                directory.mkdir(parents=(directory == root))
            except OSError as e:
                raise BuildTreeCopyError(directory, str(e)) from e

        self._report(10, f"复制媒体文件: {sources.media_dir}")
        log_build_step("复制媒体文件", f"{sources.media_dir} -> {build_tree.media_dir}")
        try:
            file_count = copy_tree(sources.media_dir, build_tree.media_dir, overwrite=True)
        except OSError as e:
            raise BuildTreeCopyError(build_tree.media_dir, str(e)) from e
        self.logger.info(f"已复制 {file_count} 个媒体文件")

        self._report(60, "复制启动镜像")
        log_build_step("复制启动镜像", f"{sources.boot_wim} -> {build_tree.boot_wim}")
        self._copy(sources.boot_wim, root / BOOT_WIM)

        self._report(80, "复制固件启动扇区文件")
        self._copy(sources.uefi_boot_sector, build_tree.fwfiles_dir / UEFI_BOOT_SECTOR)
        if sources.bios_boot_sector.is_file():
            self._copy(sources.bios_boot_sector, build_tree.fwfiles_dir / BIOS_BOOT_SECTOR)
        else:
            self.logger.info(f"{sources.architecture}没有BIOS启动扇区文件，跳过")

    def _copy(self, source: Path, destination: Path):
        try:
            copy_file(source, destination)
        except OSError as e:
            raise BuildTreeCopyError(destination, str(e)) from e

    def _describe_plan(self, sources: SourceAssets, build_tree: BuildTree, mount: bool):
        root = build_tree.root
        self.logger.info(f"What if: 创建目录 {root} 及 {FWFILES_DIR}, {MEDIA_DIR}, {MOUNT_DIR}")
        self.logger.info(f"What if: 复制 {sources.media_dir} 到 {build_tree.media_dir}")
        self.logger.info(f"What if: 复制 {sources.boot_wim} 到 {build_tree.boot_wim}")
        self.logger.info(f"What if: 复制 {sources.uefi_boot_sector} 到 {build_tree.fwfiles_dir}")
        if sources.bios_boot_sector.is_file():
            self.logger.info(f"What if: 复制 {sources.bios_boot_sector} 到 {build_tree.fwfiles_dir}")
        if mount:
            self.logger.info(f"What if: 挂载 {build_tree.boot_wim} 到 {build_tree.mount_dir}")
