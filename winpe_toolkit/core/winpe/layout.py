#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
工作目录结构模块
定义并验证WinPE工作目录的固定骨架

    <root>/
        fwfiles/efisys.bin
        media/bootmgr
        media/bootmgr.efi
        media/Boot/BCD
        media/sources/boot.wim
        mount/
"""

from pathlib import Path
from typing import List, Optional

from winpe_toolkit.core.models import LayoutStatus
from winpe_toolkit.utils.logger import get_logger

FWFILES_DIR = "fwfiles"
MEDIA_DIR = "media"
MOUNT_DIR = "mount"

BOOT_WIM = Path(MEDIA_DIR) / "sources" / "boot.wim"
UEFI_BOOT_SECTOR = "efisys.bin"
BIOS_BOOT_SECTOR = "etfsboot.com"

REQUIRED_ENTRIES = (
    Path(FWFILES_DIR),
    Path(MEDIA_DIR),
    Path(MOUNT_DIR),
    Path(FWFILES_DIR) / UEFI_BOOT_SECTOR,
    Path(MEDIA_DIR) / "bootmgr",
    Path(MEDIA_DIR) / "bootmgr.efi",
    BOOT_WIM,
    Path(MEDIA_DIR) / "Boot" / "BCD",
)


def normalize_root(path) -> Path:
    """挂载子目录归一化为工作目录根

    名为 mount 但自身含有启动镜像的目录是工作目录根，保持不变。
    """
    path = Path(path).absolute()
    if path.name.lower() == MOUNT_DIR and not (path / BOOT_WIM).exists():
        return path.parent
    return path


def boot_wim_path(root) -> Path:
    return Path(root) / BOOT_WIM


def mount_dir_path(root) -> Path:
    return Path(root) / MOUNT_DIR


class WorkDirLayout:
    """WinPE工作目录结构验证"""

    def __init__(self, image_probe=None):
        self.image_probe = image_probe
        self.logger = get_logger("WorkDirLayout")

    def missing_entries(self, root: Path) -> List[str]:
        """返回缺失的骨架条目（相对路径）"""
        return [str(entry) for entry in REQUIRED_ENTRIES if not (Path(root) / entry).exists()]

    def validate(self, path: Optional[Path]) -> LayoutStatus:
        """验证工作目录

        只读检查：骨架条目全部存在且启动镜像可被识别时有效；
        挂载状态总是通过DISM实时查询。

        Args:
            path: 工作目录根或其 mount 子目录

        Returns:
            LayoutStatus: 验证结果
        """
        if not path:
            return LayoutStatus(valid=False, mounted=False)

        root = normalize_root(path)
        if not root.is_dir():
            self.logger.debug(f"工作目录不存在: {root}")
            return LayoutStatus(valid=False, mounted=False, root=root)

        missing = self.missing_entries(root)
        if missing:
            self.logger.debug(f"工作目录缺少: {', '.join(missing)}")
            return LayoutStatus(valid=False, mounted=False, root=root, missing=missing)

        if self.image_probe is None:
            return LayoutStatus(valid=True, mounted=False, root=root)

        boot_wim = boot_wim_path(root)
        info = self.image_probe.describe_image(boot_wim)
        if not info.exists:
            self.logger.warning(f"无法识别启动镜像: {boot_wim}")
            return LayoutStatus(valid=False, mounted=False, root=root)

        mounted = self.image_probe.is_mounted(boot_wim)
        self.logger.debug(f"工作目录有效: {root} (已挂载: {mounted})")
        return LayoutStatus(valid=True, mounted=mounted, root=root)
