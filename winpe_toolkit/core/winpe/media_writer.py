#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
启动U盘制作模块
清除可移动磁盘、创建FAT32活动分区、复制媒体文件并写入引导代码
"""

from pathlib import Path
from typing import Callable, Optional

from winpe_toolkit.core.disk_manager import DiskManager
from winpe_toolkit.core.exceptions import (
    BootCodeError,
    BuildTreeCopyError,
    ConfirmationDeclinedError,
    ImageStillMountedError,
    InvalidBuildTreeError,
    NotRemovableVolumeError,
    ToolNotFoundError,
)
from winpe_toolkit.core.models import VolumeInfo
from winpe_toolkit.core.options import ExecutionOptions
from winpe_toolkit.core.winpe.image_probe import ImageStateProbe
from winpe_toolkit.core.winpe.layout import MEDIA_DIR, WorkDirLayout, mount_dir_path
from winpe_toolkit.core.winpe.mount_manager import unmount_arguments
from winpe_toolkit.utils.file_utils import copy_tree
from winpe_toolkit.utils.logger import get_logger, log_build_step

VOLUME_LABEL = "WinPE"
FILE_SYSTEM = "FAT32"
PARTITION_STYLE = "MBR"


class MediaWriter:
    """启动U盘制作"""

    TOTAL_STEPS = 4

    def __init__(self, adk_manager, disk_manager: Optional[DiskManager] = None,
                 image_probe: Optional[ImageStateProbe] = None, layout: Optional[WorkDirLayout] = None,
                 options: Optional[ExecutionOptions] = None,
                 confirm_callback: Optional[Callable[[str], bool]] = None):
        """
        Args:
            adk_manager: ADK管理器实例
            disk_manager: 磁盘管理器
            image_probe: 镜像状态查询
            layout: 工作目录结构验证
            options: 执行选项
            confirm_callback: 写入引导代码前的确认函数，接收提示文本，返回是否继续
        """
        self.adk = adk_manager
        self.options = options or ExecutionOptions()
        self.disk_manager = disk_manager or DiskManager(adk_manager, self.options)
        self.image_probe = image_probe or ImageStateProbe(adk_manager)
        self.layout = layout or WorkDirLayout(self.image_probe)
        self.confirm_callback = confirm_callback
        self.logger = get_logger("MediaWriter")

    def _step(self, step: int, message: str, progress_callback: Optional[Callable]):
        text = f"[{step}/{self.TOTAL_STEPS}] {message}"
        log_build_step(f"U盘制作 {step}/{self.TOTAL_STEPS}", message)
        if progress_callback:
            progress_callback((step - 1) * 100 // self.TOTAL_STEPS, text)

    def write_to_removable_media(self, build_dir: Path, target: str, force: bool = False,
                                 progress_callback: Optional[Callable] = None) -> Optional[VolumeInfo]:
        """把工作目录写入可移动介质

        四个步骤依次执行，不可恢复；任一步失败立即中止，磁盘保持当时状态。

        Args:
            build_dir: 工作目录
            target: 目标盘符或卷ID
            force: 写入引导代码前不询问
            progress_callback: 进度回调函数 (percent: int, message: str)

        Returns:
            Optional[VolumeInfo]: 新卷信息，演练模式下为None

        Raises:
            PreconditionError: 目标不是可移动卷、工作目录无效或仍挂载
            DiskOperationError: 清除、分区或格式化失败
            BuildTreeCopyError: 复制媒体文件失败
            BootCodeError: bootsect返回非零
        """
        volume = self.disk_manager.find_removable_volume(target)
        if volume is None:
            raise NotRemovableVolumeError(str(target))

        status = self.layout.validate(build_dir)
        if not status.valid:
            raise InvalidBuildTreeError(status.root or Path(build_dir), status.missing)
        if status.mounted:
            command = self.adk.format_dism_command(unmount_arguments(mount_dir_path(status.root)))
            raise ImageStillMountedError(status.root, command)

        if not self.adk.get_bootsect_path():
            raise ToolNotFoundError("bootsect.exe")

        disk = self.disk_manager.get_disk_for_volume(volume)
        media_dir = status.root / MEDIA_DIR
        self.logger.info(f"开始制作WinPE启动U盘: {media_dir} -> {volume.drive_letter}: (磁盘 {disk.number})")

        self._step(1, f"清除磁盘 {disk.number}", progress_callback)
        self.disk_manager.clear_disk(disk.number)

        self._step(2, f"创建{FILE_SYSTEM}活动分区 ({VOLUME_LABEL})", progress_callback)
        new_volume = self.disk_manager.create_boot_partition(
            disk.number, label=VOLUME_LABEL, file_system=FILE_SYSTEM, partition_style=PARTITION_STYLE
        )
        target_volume = new_volume or volume
        drive_letter = target_volume.drive_letter
        volume_root = target_volume.root_path

        self._step(3, f"复制媒体文件到 {volume_root}", progress_callback)
        if self.options.what_if:
            self.logger.info(f"What if: 复制 {media_dir} 到 {volume_root}")
        else:
            try:
                file_count = copy_tree(media_dir, volume_root, overwrite=True)
            except OSError as e:
                raise BuildTreeCopyError(volume_root, str(e)) from e
            self.logger.info(f"已复制 {file_count} 个文件")

        self._step(4, f"写入引导代码到 {drive_letter}:", progress_callback)
        self._write_boot_code(drive_letter, force)

        if progress_callback:
            progress_callback(100, "WinPE启动U盘制作完成")

        if self.options.what_if:
            return None
        return self.disk_manager.get_volume(drive_letter)

    def _write_boot_code(self, drive_letter: str, force: bool):
        args = ["/nt60", f"{drive_letter}:", "/force", "/mbr"]

        if self.options.what_if:
            self.logger.info(f"What if: bootsect {' '.join(args)}")
            return

        if not force:
            prompt = f"即将向 {drive_letter}: 写入引导代码，是否继续?"
            if self.confirm_callback is None or not self.confirm_callback(prompt):
                raise ConfirmationDeclinedError(f"写入引导代码到 {drive_letter}:")

        success, stdout, stderr = self.adk.run_bootsect_command(args)
        if not success:
            raise BootCodeError(
                f"bootsect.exe {' '.join(args)}",
                stderr or stdout,
                self.adk.last_returncode,
                "写入引导代码失败",
            )
        self.logger.info("✅ 引导代码写入成功")
