#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Windows ADK工具管理模块
负责定位并执行DISM、bootsect和PowerShell
"""

import ctypes
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple
import logging

from winpe_toolkit.core.config_manager import ToolkitConfig
from winpe_toolkit.utils.encoding import safe_decode
from winpe_toolkit.utils.logger import log_command

logger = logging.getLogger("WinPEToolkit")

# 非Windows平台上没有这个标志
CREATE_NO_WINDOW = getattr(subprocess, "CREATE_NO_WINDOW", 0)


def quote_argument(value) -> str:
    """为显示用途给含空格的参数加引号"""
    text = str(value)
    if " " in text and not text.startswith('"'):
        return f'"{text}"'
    return text


def quote_powershell(value) -> str:
    """PowerShell单引号字符串"""
    return "'" + str(value).replace("'", "''") + "'"


class ADKManager:
    """Windows ADK工具管理器类"""

    POWERSHELL = "powershell.exe"

    def __init__(self, config: ToolkitConfig, verbose: bool = False):
        self.config = config
        self.verbose = verbose
        self.last_returncode: Optional[int] = None

    def get_deployment_tools_path(self) -> Path:
        """获取部署工具架构目录 (Oscdimg的上级目录)"""
        return self.config.imaging_tool_root.parent

    def get_dism_path(self) -> Optional[Path]:
        """获取DISM工具路径"""
        dism_path = self.get_deployment_tools_path() / "DISM" / "dism.exe"
        if dism_path.exists():
            return dism_path

        system_dism = shutil.which("dism.exe")
        if system_dism:
            return Path(system_dism)

        return None

    def get_bootsect_path(self) -> Optional[Path]:
        """获取bootsect工具路径"""
        bootsect_path = self.get_deployment_tools_path() / "BCDBoot" / "bootsect.exe"
        if bootsect_path.exists():
            return bootsect_path

        system_bootsect = shutil.which("bootsect.exe")
        if system_bootsect:
            return Path(system_bootsect)

        return None

    def get_powershell_path(self) -> str:
        """获取PowerShell路径"""
        return shutil.which(self.POWERSHELL) or self.POWERSHELL

    def check_admin_privileges(self) -> bool:
        """检查是否具有管理员权限"""
        try:
            return ctypes.windll.shell32.IsUserAnAdmin() != 0
        except (AttributeError, OSError):
            return False

    def format_dism_command(self, args: List[str]) -> str:
        """生成可直接在命令行运行的DISM命令"""
        dism_path = self.get_dism_path()
        parts = [str(dism_path) if dism_path else "dism.exe"] + list(args)
        return " ".join(quote_argument(part) for part in parts)

    def run_command(self, cmd: List[str]) -> Tuple[bool, str, str]:
        """运行外部命令，阻塞直到结束

        Args:
            cmd: 命令及参数

        Returns:
            Tuple[bool, str, str]: (成功状态, 标准输出, 错误输出)
        """
        log_command(" ".join(quote_argument(part) for part in cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=False,
                creationflags=CREATE_NO_WINDOW
            )
        except OSError as e:
            self.last_returncode = None
            error_msg = f"无法启动命令 {cmd[0]}: {str(e)}"
            logger.error(error_msg)
            return False, "", error_msg

        self.last_returncode = result.returncode
        stdout = safe_decode(result.stdout)
        stderr = safe_decode(result.stderr)
        success = result.returncode == 0

        logger.debug(f"命令执行完成，返回码: {result.returncode}")
        if success:
            if stdout and self.verbose:
                logger.info(stdout.strip())
        else:
            logger.error(f"命令执行失败，返回码: {result.returncode}")
            if stderr:
                logger.error(f"错误输出: {stderr[:200]}")
            if stdout:
                logger.debug(f"标准输出: {stdout[:200]}")

        return success, stdout, stderr

    def run_dism_command(self, args: List[str]) -> Tuple[bool, str, str]:
        """运行DISM命令

        输出固定为英文，便于解析。

        Args:
            args: DISM命令参数

        Returns:
            Tuple[bool, str, str]: (成功状态, 标准输出, 错误输出)
        """
        dism_path = self.get_dism_path()
        if not dism_path:
            self.last_returncode = None
            return False, "", "找不到DISM工具"

        return self.run_command([str(dism_path), "/English"] + list(args))

    def run_powershell_command(self, script: str) -> Tuple[bool, str, str]:
        """运行PowerShell脚本

        Args:
            script: PowerShell命令文本

        Returns:
            Tuple[bool, str, str]: (成功状态, 标准输出, 错误输出)
        """
        cmd = [
            self.get_powershell_path(),
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy", "Bypass",
            "-Command", script,
        ]
        return self.run_command(cmd)

    def run_bootsect_command(self, args: List[str]) -> Tuple[bool, str, str]:
        """运行bootsect命令

        Args:
            args: bootsect命令参数

        Returns:
            Tuple[bool, str, str]: (成功状态, 标准输出, 错误输出)
        """
        bootsect_path = self.get_bootsect_path()
        if not bootsect_path:
            self.last_returncode = None
            return False, "", "找不到bootsect工具"

        return self.run_command([str(bootsect_path)] + list(args))
