#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
WinPE工具箱图形界面入口
"""

import sys

from PyQt5.QtWidgets import QApplication, QMessageBox

from winpe_toolkit import __version__
from winpe_toolkit.core.config_manager import ConfigManager
from winpe_toolkit.core.exceptions import EnvironmentNotConfiguredError
from winpe_toolkit.core.options import ExecutionOptions
from winpe_toolkit.core.toolkit import WinPEToolkit
from winpe_toolkit.ui.main_window import MainWindow
from winpe_toolkit.utils.logger import log_error, setup_logger


def setup_application() -> QApplication:
    """设置应用程序基本配置"""
    app = QApplication(sys.argv)
    app.setApplicationName("WinPE工具箱")
    app.setApplicationVersion(__version__)
    return app


def main() -> int:
    """主函数"""
    config_manager = ConfigManager()
    logger = setup_logger(
        log_file_path=config_manager.get_log_file(),
        level=config_manager.get("logging.level", "INFO"),
    )
    logger.info("应用程序启动")

    app = setup_application()

    try:
        options = ExecutionOptions(what_if="--what-if" in sys.argv[1:])
        toolkit = WinPEToolkit.from_config_manager(config_manager, options)
    except EnvironmentNotConfiguredError as e:
        log_error(e, "程序启动")
        QMessageBox.critical(None, "ADK环境未配置", str(e))
        return 1

    if not toolkit.adk.check_admin_privileges():
        QMessageBox.warning(None, "权限提示", "当前没有管理员权限，DISM和磁盘操作可能失败")

    main_window = MainWindow(config_manager, toolkit)
    main_window.show()
    return app.exec_()


if __name__ == "__main__":
    sys.exit(main())
