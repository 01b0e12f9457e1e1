#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
统一操作接口
进程启动时创建一次，命令行和界面都通过它调用各个管理器
"""

from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence

from winpe_toolkit.core.adk_manager import ADKManager
from winpe_toolkit.core.config_manager import ConfigManager, ToolkitConfig
from winpe_toolkit.core.disk_manager import DiskManager
from winpe_toolkit.core.models import BuildTree, LayoutStatus, MountedImage, VolumeInfo
from winpe_toolkit.core.options import ExecutionOptions
from winpe_toolkit.core.winpe import (
    ImageStateProbe,
    MediaWriter,
    ModuleManager,
    MountManager,
    PackageManager,
    WorkDirLayout,
    WorkDirLifecycle,
)
from winpe_toolkit.core.winpe.layout import boot_wim_path, mount_dir_path, normalize_root
from winpe_toolkit.core.exceptions import InvalidBuildTreeError
from winpe_toolkit.utils.logger import get_logger


class WinPEToolkit:
    """统一操作接口"""

    def __init__(self, config: ToolkitConfig, options: Optional[ExecutionOptions] = None,
                 adk_manager: Optional[ADKManager] = None,
                 confirm_callback: Optional[Callable[[str], bool]] = None):
        self.config = config
        self.options = options or ExecutionOptions()
        self.adk = adk_manager or ADKManager(config, verbose=self.options.verbose)
        self.logger = get_logger("WinPEToolkit")

        self.image_probe = ImageStateProbe(self.adk)
        self.layout = WorkDirLayout(self.image_probe)
        self.mount_manager = MountManager(self.adk, self.image_probe, self.options)
        self.lifecycle = WorkDirLifecycle(config, self.adk, self.mount_manager, self.options)
        self.package_manager = PackageManager(config, self.adk, self.image_probe, self.layout, self.options)
        self.module_manager = ModuleManager(self.adk, self.image_probe, self.layout, self.options)
        self.disk_manager = DiskManager(self.adk, self.options)
        self.media_writer = MediaWriter(self.adk, self.disk_manager, self.image_probe, self.layout,
                                        self.options, confirm_callback)

    @classmethod
    def from_config_manager(cls, config_manager: ConfigManager, options: Optional[ExecutionOptions] = None,
                            environ: Optional[Mapping[str, str]] = None, **kwargs) -> "WinPEToolkit":
        """从配置管理器创建，ADK根目录未配置时立即失败"""
        return cls(config_manager.get_toolkit_config(environ), options, **kwargs)

    def set_progress_callback(self, callback: Optional[Callable]):
        self.lifecycle.progress_callback = callback

    def create_build_tree(self, architecture, destination: Path, mount: bool = False,
                          cleanup_on_failure: bool = False) -> BuildTree:
        return self.lifecycle.create_build_tree(architecture, destination, mount, cleanup_on_failure)

    def validate(self, path: Path) -> LayoutStatus:
        return self.layout.validate(path)

    def mount(self, build_dir: Path) -> MountedImage:
        """挂载工作目录的启动镜像到其 mount 子目录"""
        status = self.layout.validate(build_dir)
        if not status.valid:
            raise InvalidBuildTreeError(status.root or Path(build_dir), status.missing)
        if status.mounted:
            self.logger.info(f"镜像已挂载: {status.root}")
            return self.image_probe.find_mount(boot_wim_path(status.root))
        return self.mount_manager.mount_image(boot_wim_path(status.root), mount_dir_path(status.root))

    def unmount(self, build_dir: Path, commit: bool = True) -> None:
        """卸载工作目录的启动镜像"""
        root = normalize_root(build_dir)
        handle = self.image_probe.find_mount(boot_wim_path(root))
        mount_dir = handle.mount_dir if handle else mount_dir_path(root)
        self.mount_manager.unmount_image(mount_dir, commit)

    def list_mounted(self) -> List[MountedImage]:
        return self.image_probe.get_mounted_images()

    def install_base_packages(self, build_dir: Path, progress_callback: Optional[Callable] = None) -> List[Path]:
        return self.package_manager.install_base_packages(build_dir, progress_callback)

    def install_modules(self, build_dir: Path, module_paths: Sequence[Path], overwrite: bool = False) -> List[Path]:
        return self.module_manager.install_modules(build_dir, module_paths, overwrite)

    def write_to_removable_media(self, build_dir: Path, target: str, force: bool = False,
                                 progress_callback: Optional[Callable] = None) -> Optional[VolumeInfo]:
        return self.media_writer.write_to_removable_media(build_dir, target, force, progress_callback)
