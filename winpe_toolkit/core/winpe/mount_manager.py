#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
镜像挂载管理模块
负责WinPE镜像的挂载和卸载操作
"""

from pathlib import Path
from typing import Optional
import logging

from winpe_toolkit.core.exceptions import ImageMountError, ImageUnmountError, ToolNotFoundError
from winpe_toolkit.core.models import MountedImage
from winpe_toolkit.core.options import ExecutionOptions
from winpe_toolkit.core.winpe.image_probe import ImageStateProbe
from winpe_toolkit.utils.logger import log_build_step

logger = logging.getLogger("WinPEToolkit")


def mount_arguments(image_path: Path, mount_dir: Path, index: int = 1) -> list:
    return [
        "/Mount-Image",
        f"/ImageFile:{image_path}",
        f"/Index:{index}",
        f"/MountDir:{mount_dir}",
    ]


def unmount_arguments(mount_dir: Path, commit: bool = True) -> list:
    return [
        "/Unmount-Image",
        f"/MountDir:{mount_dir}",
        "/Commit" if commit else "/Discard",
    ]


class MountManager:
    """WinPE镜像挂载管理器"""

    def __init__(self, adk_manager, image_probe: Optional[ImageStateProbe] = None,
                 options: Optional[ExecutionOptions] = None):
        self.adk = adk_manager
        self.image_probe = image_probe or ImageStateProbe(adk_manager)
        self.options = options or ExecutionOptions()

    def mount_image(self, image_path: Path, mount_dir: Path, index: int = 1) -> MountedImage:
        """挂载WinPE镜像

        Args:
            image_path: WIM文件路径
            mount_dir: 挂载目录
            index: 镜像索引

        Returns:
            MountedImage: 挂载句柄

        Raises:
            ImageMountError: DISM挂载失败
        """
        image_path = Path(image_path).absolute()
        mount_dir = Path(mount_dir).absolute()
        args = mount_arguments(image_path, mount_dir, index)

        logger.info(f"准备挂载WIM镜像: {image_path}")
        logger.info(f"挂载目录: {mount_dir}")

        if self.options.what_if:
            logger.info(f"What if: 挂载 {image_path} (索引 {index}) 到 {mount_dir}")
            return MountedImage(mount_dir=mount_dir, image_path=image_path, index=index)

        if not self.adk.get_dism_path():
            raise ToolNotFoundError("dism.exe")

        log_build_step("挂载镜像", f"{image_path} -> {mount_dir}")
        success, stdout, stderr = self.adk.run_dism_command(args)
        if not success:
            raise ImageMountError(
                self.adk.format_dism_command(args),
                stderr or stdout,
                self.adk.last_returncode,
                "挂载WinPE镜像失败",
            )

        logger.info("WinPE镜像挂载成功")
        handle = self.image_probe.find_mount(image_path)
        return handle or MountedImage(mount_dir=mount_dir, image_path=image_path, index=index)

    def unmount_image(self, mount_dir: Path, commit: bool = True) -> None:
        """卸载WinPE镜像

        Args:
            mount_dir: 挂载目录
            commit: True提交更改，False放弃更改

        Raises:
            ImageUnmountError: DISM卸载失败
        """
        mount_dir = Path(mount_dir).absolute()
        args = unmount_arguments(mount_dir, commit)
        action = "提交更改并" if commit else "放弃更改并"

        if self.options.what_if:
            logger.info(f"What if: {action}卸载 {mount_dir}")
            return

        if not self.adk.get_dism_path():
            raise ToolNotFoundError("dism.exe")

        log_build_step("卸载镜像", f"{action}卸载 {mount_dir}")
        success, stdout, stderr = self.adk.run_dism_command(args)
        if not success:
            raise ImageUnmountError(
                self.adk.format_dism_command(args),
                stderr or stdout,
                self.adk.last_returncode,
                "卸载WinPE镜像失败",
            )
        logger.info(f"WinPE镜像{action}卸载成功")
