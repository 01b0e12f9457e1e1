#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
配置管理模块
负责管理配置文件，并解析ADK相关的根目录
"""

import copy
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import logging

from winpe_toolkit.core.exceptions import EnvironmentNotConfiguredError

logger = logging.getLogger("WinPEToolkit")

# ADK部署工具环境 (DandISetEnv.bat) 设置的环境变量
WINPE_ROOT_ENV = "WinPERoot"
OSCDIMG_ROOT_ENV = "OSCDImgRoot"


@dataclass(frozen=True)
class ToolkitConfig:
    """进程启动时解析一次，传给所有入口

    Attributes:
        deployment_kit_root: WinPE加载项根目录 (%WinPERoot%)
        imaging_tool_root: Oscdimg目录 (%OSCDImgRoot%)
        language: 可选组件语言包的语言
    """
    deployment_kit_root: Path
    imaging_tool_root: Path
    language: str = "en-us"


class ConfigManager:
    """配置管理器类"""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = Path(config_file) if config_file else Path.cwd() / "config" / "winpe_config.json"
        self.config_dir = self.config_file.parent
        self.default_config = self._get_default_config()
        self.config = self._load_config()

    def _get_default_config(self) -> Dict[str, Any]:
        """获取默认配置"""
        return {
            "adk": {
                "winpe_root": "",    # 留空时使用 %WinPERoot%
                "oscdimg_root": ""   # 留空时使用 %OSCDImgRoot%
            },
            "winpe": {
                "architecture": "amd64",  # amd64, x86, arm, arm64
                "language": "en-us"       # 可选组件语言包
            },
            "output": {
                "workspace": ""   # 工作目录
            },
            "logging": {
                "log_file": "logs/run.log",
                "level": "INFO"
            }
        }

    def _load_config(self) -> Dict[str, Any]:
        """从文件加载配置"""
        try:
            if self.config_file.exists():
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    config = json.load(f)
                logger.info(f"配置文件加载成功: {self.config_file}")
                return self._merge_config(self.default_config, config)
            else:
                logger.debug("配置文件不存在，使用默认配置")
                return copy.deepcopy(self.default_config)
        except (OSError, ValueError) as e:
            logger.error(f"加载配置文件失败: {str(e)}")
            return copy.deepcopy(self.default_config)

    def _merge_config(self, default: Dict, loaded: Dict) -> Dict:
        """合并配置，确保所有必要的键都存在"""
        result = copy.deepcopy(default)
        for key, value in loaded.items():
            if isinstance(value, dict) and isinstance(result.get(key), dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def save_config(self) -> bool:
        """保存配置到文件"""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, ensure_ascii=False, indent=2)
            logger.info(f"配置文件保存成功: {self.config_file}")
            return True
        except OSError as e:
            logger.error(f"保存配置文件失败: {str(e)}")
            return False

    def get(self, key_path: str, default: Any = None) -> Any:
        """获取配置值，支持点号分隔的路径

        Args:
            key_path: 配置键路径，如 'winpe.architecture'
            default: 默认值
        """
        keys = key_path.split('.')
        value = self.config
        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key_path: str, value: Any) -> bool:
        """设置配置值

        Args:
            key_path: 配置键路径，如 'winpe.architecture'
            value: 要设置的值
        """
        keys = key_path.split('.')
        config = self.config
        for key in keys[:-1]:
            if not isinstance(config.get(key), dict):
                config[key] = {}
            config = config[key]
        config[keys[-1]] = value
        logger.debug(f"配置更新: {key_path} = {value}")
        return True

    def get_log_file(self) -> Optional[Path]:
        """日志文件路径，相对路径以配置目录的上级目录为基准"""
        log_file = self.get("logging.log_file")
        if not log_file:
            return None
        log_path = Path(log_file)
        if not log_path.is_absolute():
            log_path = self.config_dir.parent / log_path
        return log_path

    def get_toolkit_config(self, environ: Optional[Mapping[str, str]] = None) -> ToolkitConfig:
        """解析ADK根目录

        配置文件中的值优先，其次是环境变量。

        Args:
            environ: 环境变量，默认为 os.environ

        Returns:
            ToolkitConfig: 解析后的配置

        Raises:
            EnvironmentNotConfiguredError: 任一根目录都未配置
        """
        environ = os.environ if environ is None else environ

        winpe_root = self.get("adk.winpe_root") or environ.get(WINPE_ROOT_ENV)
        if not winpe_root:
            raise EnvironmentNotConfiguredError(WINPE_ROOT_ENV, "adk.winpe_root")

        oscdimg_root = self.get("adk.oscdimg_root") or environ.get(OSCDIMG_ROOT_ENV)
        if not oscdimg_root:
            raise EnvironmentNotConfiguredError(OSCDIMG_ROOT_ENV, "adk.oscdimg_root")

        toolkit_config = ToolkitConfig(
            deployment_kit_root=Path(winpe_root),
            imaging_tool_root=Path(oscdimg_root),
            language=self.get("winpe.language", "en-us") or "en-us",
        )
        logger.debug(f"WinPE根目录: {toolkit_config.deployment_kit_root}")
        logger.debug(f"Oscdimg目录: {toolkit_config.imaging_tool_root}")
        return toolkit_config
