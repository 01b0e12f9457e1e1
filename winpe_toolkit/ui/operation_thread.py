#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
操作线程模块
在后台线程中执行工作目录操作，避免阻塞界面
"""

from pathlib import Path
from typing import Tuple

from PyQt5.QtCore import QThread, pyqtSignal

from winpe_toolkit.core.exceptions import WinPEToolkitError
from winpe_toolkit.utils.logger import get_logger, log_error


class OperationThread(QThread):
    """操作线程 - 统一处理所有工作目录操作"""

    progress_signal = pyqtSignal(int)
    log_signal = pyqtSignal(str)
    finished_signal = pyqtSignal(bool, str)
    error_signal = pyqtSignal(str)

    OPERATIONS = (
        "create", "validate", "mount", "unmount_commit", "unmount_discard",
        "install_packages", "install_modules", "write_media",
    )

    def __init__(self, toolkit, operation: str, build_dir: Path, **kwargs):
        super().__init__()
        self.toolkit = toolkit
        self.operation = operation
        self.build_dir = Path(build_dir)
        self.kwargs = kwargs
        self.logger = get_logger("OperationThread")

    def _on_progress(self, percent: int, message: str):
        self.progress_signal.emit(percent)
        self.log_signal.emit(message)

    def run(self):
        """执行操作"""
        self.logger.info(f"开始执行操作: {self.operation}")
        try:
            if self.operation not in self.OPERATIONS:
                success, message = False, f"不支持的操作类型: {self.operation}"
            else:
                self.progress_signal.emit(5)
                success, message = getattr(self, f"_{self.operation}_operation")()
            self.progress_signal.emit(100)
            self.finished_signal.emit(success, message)

        except WinPEToolkitError as e:
            log_error(e, self.operation)
            self.error_signal.emit(str(e))
        except Exception as e:
            log_error(e, self.operation)
            self.error_signal.emit(f"操作过程中发生错误: {str(e)}")

    def _create_operation(self) -> Tuple[bool, str]:
        self.toolkit.set_progress_callback(self._on_progress)
        try:
            tree = self.toolkit.create_build_tree(
                self.kwargs["architecture"], self.build_dir, self.kwargs.get("mount", False)
            )
        finally:
            self.toolkit.set_progress_callback(None)
        message = f"工作目录创建完成: {tree.root}"
        if tree.mount_handle:
            message += f"，已挂载到 {tree.mount_handle.mount_dir}"
        return True, message

    def _validate_operation(self) -> Tuple[bool, str]:
        status = self.toolkit.validate(self.build_dir)
        if not status.valid:
            detail = f"，缺少: {', '.join(status.missing)}" if status.missing else ""
            return False, f"不是有效的WinPE工作目录{detail}"
        state = "已挂载" if status.mounted else "未挂载"
        return True, f"工作目录有效，镜像{state}"

    def _mount_operation(self) -> Tuple[bool, str]:
        self.log_signal.emit("正在挂载启动镜像...")
        handle = self.toolkit.mount(self.build_dir)
        return True, f"镜像已挂载到 {handle.mount_dir}"

    def _unmount_commit_operation(self) -> Tuple[bool, str]:
        self.log_signal.emit("正在保存更改并卸载...")
        self.toolkit.unmount(self.build_dir, commit=True)
        return True, "镜像已保存并卸载"

    def _unmount_discard_operation(self) -> Tuple[bool, str]:
        self.log_signal.emit("正在放弃更改并卸载...")
        self.toolkit.unmount(self.build_dir, commit=False)
        return True, "镜像已放弃更改并卸载"

    def _install_packages_operation(self) -> Tuple[bool, str]:
        installed = self.toolkit.install_base_packages(self.build_dir, self._on_progress)
        return True, f"已添加 {len(installed)} 个包"

    def _install_modules_operation(self) -> Tuple[bool, str]:
        module_paths = self.kwargs.get("module_paths", [])
        installed = self.toolkit.install_modules(
            self.build_dir, module_paths, overwrite=self.kwargs.get("overwrite", False)
        )
        for failure in self.toolkit.module_manager.last_failures:
            self.log_signal.emit(f"❌ {failure}")
        success = len(installed) == len(module_paths)
        return success, f"已安装 {len(installed)}/{len(module_paths)} 个模块"

    def _write_media_operation(self) -> Tuple[bool, str]:
        volume = self.toolkit.write_to_removable_media(
            self.build_dir, self.kwargs["target"], force=True, progress_callback=self._on_progress
        )
        if volume is None:
            return True, "演练完成，没有修改磁盘"
        return True, f"WinPE启动U盘制作完成: {volume.drive_letter}: ({volume.label})"
