#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
日志工具模块
提供统一的日志记录功能，所有组件日志都挂在 WinPEToolkit 记录器下
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

APP_LOGGER_NAME = "WinPEToolkit"

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%H:%M:%S'


def setup_logger(
    log_file_path: Optional[Path] = None,
    level: Union[int, str] = logging.INFO,
    console: bool = True
) -> logging.Logger:
    """设置日志记录器

    重复调用是安全的，旧的处理器会先被移除。

    Args:
        log_file_path: 日志文件路径，为None时只输出到控制台
        level: 日志级别
        console: 是否输出到控制台

    Returns:
        logging.Logger: 配置好的日志记录器
    """
    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    if isinstance(level, str):
        level = level.upper()

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if log_file_path:
        log_file_path = Path(log_file_path)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file_path,
            maxBytes=2 * 1024 * 1024,  # 2MB
            backupCount=3,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        # 控制台可能不是UTF-8
        if hasattr(sys.stderr, 'reconfigure'):
            try:
                sys.stderr.reconfigure(encoding='utf-8')
            except (ValueError, OSError):
                pass

        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.debug("日志系统初始化完成")
    return logger


def get_logger(name: str = APP_LOGGER_NAME) -> logging.Logger:
    """获取日志记录器

    Args:
        name: 组件名称，会挂在应用记录器之下

    Returns:
        logging.Logger: 日志记录器实例
    """
    if name == APP_LOGGER_NAME or name.startswith(APP_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")


def log_command(command: str, description: str = ""):
    """记录执行的命令

    Args:
        command: 执行的命令
        description: 命令描述
    """
    logger = logging.getLogger(APP_LOGGER_NAME)
    message = f"执行命令: {command}"
    if description:
        message += f" ({description})"
    logger.info(message)


def log_error(error: Exception, context: str = ""):
    """记录错误信息

    Args:
        error: 异常对象
        context: 错误上下文
    """
    logger = logging.getLogger(APP_LOGGER_NAME)
    message = f"发生错误: {str(error)}"
    if context:
        message += f" (上下文: {context})"
    logger.error(message, exc_info=logger.isEnabledFor(logging.DEBUG))


def log_build_step(step_name: str, details: str = "", level: str = "info"):
    """记录构建步骤

    Args:
        step_name: 步骤名称
        details: 详细信息
        level: 日志级别 (info, warning, error)
    """
    logger = logging.getLogger(APP_LOGGER_NAME)
    message = f"构建步骤: {step_name}"
    if details:
        message += f" - {details}"

    if level.lower() == "error":
        logger.error(message)
    elif level.lower() == "warning":
        logger.warning(message)
    else:
        logger.info(message)
