#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
异常定义模块

异常层次:
    WinPEToolkitError
        ├── PreconditionError            前置条件不满足，立即失败，不重试
        │   ├── EnvironmentNotConfiguredError
        │   ├── InvalidArchitectureError
        │   ├── DestinationExistsError
        │   ├── SourceAssetMissingError
        │   ├── InvalidBuildTreeError
        │   ├── ImageNotMountedError
        │   ├── ImageStillMountedError
        │   ├── UnknownImageArchitectureError
        │   ├── PackageSourceMissingError
        │   ├── NotRemovableVolumeError
        │   ├── ToolNotFoundError
        │   └── ConfirmationDeclinedError
        ├── ExternalCommandError         外部工具执行失败，原样传递输出
        │   ├── ImageMountError
        │   ├── ImageUnmountError
        │   ├── ImageQueryError
        │   ├── PackageInstallError
        │   ├── DiskOperationError
        │   └── BootCodeError
        ├── BuildTreeCopyError           目录创建或文件复制失败
        └── ModuleValidationError        单个模块校验失败，只报告不中断批处理
"""

from pathlib import Path
from typing import List, Optional


class WinPEToolkitError(Exception):
    """所有工具箱异常的基类"""


class PreconditionError(WinPEToolkitError):
    """前置条件错误基类"""


class EnvironmentNotConfiguredError(PreconditionError):
    """缺少ADK根目录配置"""

    def __init__(self, variable: str, config_key: str = ""):
        self.variable = variable
        self.config_key = config_key
        message = f"未配置环境变量 {variable}"
        if config_key:
            message += f"（也可在配置文件中设置 {config_key}）"
        super().__init__(message)


class InvalidArchitectureError(PreconditionError):
    """不支持的架构"""

    def __init__(self, architecture: str, supported: Optional[List[str]] = None):
        self.architecture = architecture
        self.supported = supported or []
        message = f"不支持的架构: {architecture}"
        if self.supported:
            message += f"，可选: {', '.join(self.supported)}"
        super().__init__(message)


class DestinationExistsError(PreconditionError):
    """目标路径已存在"""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"目标路径已存在: {path}")


class SourceAssetMissingError(PreconditionError):
    """ADK中的源文件或目录缺失"""

    def __init__(self, path: Path, description: str = ""):
        self.path = path
        self.description = description
        label = description or "源文件"
        super().__init__(f"{label}不存在: {path}")


class InvalidBuildTreeError(PreconditionError):
    """不是有效的WinPE工作目录"""

    def __init__(self, path: Path, missing: Optional[List[str]] = None):
        self.path = path
        self.missing = missing or []
        message = f"不是有效的WinPE工作目录: {path}"
        if self.missing:
            message += f"，缺少: {', '.join(self.missing)}"
        super().__init__(message)


class ImageNotMountedError(PreconditionError):
    """镜像未挂载"""

    def __init__(self, path: Path, mount_command: str = ""):
        self.path = path
        self.mount_command = mount_command
        message = f"WinPE镜像未挂载: {path}"
        if mount_command:
            message += f"\n请先挂载镜像: {mount_command}"
        super().__init__(message)


class ImageStillMountedError(PreconditionError):
    """镜像仍处于挂载状态"""

    def __init__(self, path: Path, unmount_command: str = ""):
        self.path = path
        self.unmount_command = unmount_command
        message = f"WinPE镜像仍处于挂载状态: {path}"
        if unmount_command:
            message += f"\n请先卸载镜像: {unmount_command}"
        super().__init__(message)


class UnknownImageArchitectureError(PreconditionError):
    """无法从镜像名称识别架构"""

    def __init__(self, image_path: Path, image_name: str = ""):
        self.image_path = image_path
        self.image_name = image_name
        super().__init__(f"无法识别镜像架构: {image_path} (名称: {image_name or '未知'})")


class PackageSourceMissingError(PreconditionError):
    """可选组件目录缺失"""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"可选组件目录不存在: {path}")


class NotRemovableVolumeError(PreconditionError):
    """目标卷不存在或不是可移动设备"""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"未找到可移动卷: {identifier}")


class ToolNotFoundError(PreconditionError):
    """找不到外部工具"""

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"找不到工具: {tool}")


class ConfirmationDeclinedError(PreconditionError):
    """用户拒绝继续操作"""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"用户取消了操作: {action}")


class ExternalCommandError(WinPEToolkitError):
    """外部命令执行失败"""

    def __init__(self, command: str, output: str = "", returncode: Optional[int] = None,
                 description: str = ""):
        self.command = command
        self.output = output
        self.returncode = returncode
        self.description = description
        message = f"{description or '命令执行失败'}: {command}"
        if returncode is not None:
            message += f" (返回码: {returncode})"
        if output:
            message += f"\n{output.strip()}"
        super().__init__(message)


class ImageMountError(ExternalCommandError):
    """DISM挂载失败"""


class ImageUnmountError(ExternalCommandError):
    """DISM卸载失败"""


class ImageQueryError(ExternalCommandError):
    """DISM查询挂载镜像失败"""


class PackageInstallError(ExternalCommandError):
    """DISM添加包失败"""


class DiskOperationError(ExternalCommandError):
    """磁盘分区、清除或格式化失败"""


class BootCodeError(ExternalCommandError):
    """bootsect写入引导代码失败"""


class BuildTreeCopyError(WinPEToolkitError):
    """创建目录或复制文件失败"""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"复制失败: {path} ({reason})")


class ModuleValidationError(WinPEToolkitError):
    """单个模块路径无效"""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"无效的模块 {path}: {reason}")
