#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
主窗口模块
提供工作目录创建、定制和U盘制作的图形界面
"""

import datetime
from pathlib import Path
from typing import Optional

from PyQt5.QtCore import Qt
from PyQt5.QtGui import QColor
from PyQt5.QtWidgets import (
    QCheckBox, QComboBox, QFileDialog, QGridLayout, QGroupBox, QHBoxLayout, QLabel, QLineEdit,
    QMainWindow, QMessageBox, QProgressBar, QPushButton, QTextEdit, QVBoxLayout, QWidget
)

from winpe_toolkit.core.config_manager import ConfigManager
from winpe_toolkit.core.models import Architecture
from winpe_toolkit.core.toolkit import WinPEToolkit
from winpe_toolkit.ui.operation_thread import OperationThread
from winpe_toolkit.utils.logger import get_logger


class MainWindow(QMainWindow):
    """主窗口类"""

    def __init__(self, config_manager: ConfigManager, toolkit: WinPEToolkit):
        super().__init__()
        self.config_manager = config_manager
        self.toolkit = toolkit
        self.logger = get_logger("MainWindow")
        self.operation_thread: Optional[OperationThread] = None
        self.action_buttons = []

        self.setWindowTitle("WinPE工具箱")
        self.resize(820, 620)
        self.init_ui()
        self.log_message("=== WinPE工具箱已启动 ===")

    def init_ui(self):
        """初始化用户界面"""
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout(central_widget)

        # 工作目录
        workdir_group = QGroupBox("工作目录")
        workdir_layout = QGridLayout(workdir_group)

        workdir_layout.addWidget(QLabel("目录:"), 0, 0)
        self.build_dir_edit = QLineEdit(self.config_manager.get("output.workspace", ""))
        workdir_layout.addWidget(self.build_dir_edit, 0, 1)
        browse_btn = QPushButton("浏览...")
        browse_btn.clicked.connect(self.browse_build_dir)
        workdir_layout.addWidget(browse_btn, 0, 2)

        workdir_layout.addWidget(QLabel("架构:"), 1, 0)
        self.arch_combo = QComboBox()
        self.arch_combo.addItems([a.value for a in Architecture])
        current_arch = self.config_manager.get("winpe.architecture", "amd64")
        index = self.arch_combo.findText(current_arch)
        if index >= 0:
            self.arch_combo.setCurrentIndex(index)
        workdir_layout.addWidget(self.arch_combo, 1, 1)

        self.mount_after_create_check = QCheckBox("创建后挂载")
        workdir_layout.addWidget(self.mount_after_create_check, 1, 2)
        main_layout.addWidget(workdir_group)

        # 操作按钮
        actions_group = QGroupBox("操作")
        actions_layout = QGridLayout(actions_group)
        buttons = [
            ("创建工作目录", self.create_build_tree),
            ("验证", lambda: self.start_operation("validate")),
            ("挂载", lambda: self.start_operation("mount")),
            ("保存并卸载", lambda: self.start_operation("unmount_commit")),
            ("放弃并卸载", lambda: self.start_operation("unmount_discard")),
            ("添加基础组件", lambda: self.start_operation("install_packages")),
            ("安装PowerShell模块", self.install_modules),
        ]
        for i, (text, handler) in enumerate(buttons):
            button = QPushButton(text)
            button.clicked.connect(handler)
            actions_layout.addWidget(button, i // 4, i % 4)
            self.action_buttons.append(button)
        main_layout.addWidget(actions_group)

        # U盘制作
        usb_group = QGroupBox("启动U盘")
        usb_layout = QHBoxLayout(usb_group)
        usb_layout.addWidget(QLabel("盘符:"))
        self.target_edit = QLineEdit()
        self.target_edit.setPlaceholderText("E:")
        self.target_edit.setMaximumWidth(80)
        usb_layout.addWidget(self.target_edit)
        self.what_if_check = QCheckBox("演练模式")
        self.what_if_check.setChecked(self.toolkit.options.what_if)
        self.what_if_check.setEnabled(False)
        usb_layout.addWidget(self.what_if_check)
        usb_layout.addStretch()
        write_btn = QPushButton("制作启动U盘")
        write_btn.clicked.connect(self.write_media)
        usb_layout.addWidget(write_btn)
        self.action_buttons.append(write_btn)
        main_layout.addWidget(usb_group)

        # 日志
        log_group = QGroupBox("日志")
        log_layout = QVBoxLayout(log_group)
        self.log_text = QTextEdit()
        self.log_text.setReadOnly(True)
        log_layout.addWidget(self.log_text)
        clear_btn = QPushButton("清空日志")
        clear_btn.clicked.connect(self.clear_log)
        log_layout.addWidget(clear_btn, alignment=Qt.AlignRight)
        main_layout.addWidget(log_group, 1)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 100)
        self.progress_bar.setValue(0)
        main_layout.addWidget(self.progress_bar)

    def log_message(self, message: str):
        """添加日志消息"""
        timestamp = datetime.datetime.now().strftime("%H:%M:%S")
        if message.startswith("✅"):
            self.log_text.setTextColor(QColor("green"))
        elif message.startswith("❌"):
            self.log_text.setTextColor(QColor("red"))
        elif message.startswith("==="):
            self.log_text.setTextColor(QColor("#0066CC"))
        else:
            self.log_text.setTextColor(QColor("black"))
        self.log_text.append(f"[{timestamp}] {message}")
        scrollbar = self.log_text.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())

    def clear_log(self):
        self.log_text.clear()
        self.log_message("=== 日志已清空 ===")

    def browse_build_dir(self):
        directory = QFileDialog.getExistingDirectory(self, "选择工作目录", self.build_dir_edit.text())
        if directory:
            self.build_dir_edit.setText(directory)

    def _build_dir(self) -> Optional[Path]:
        text = self.build_dir_edit.text().strip()
        if not text:
            QMessageBox.warning(self, "提示", "请先选择工作目录")
            return None
        return Path(text)

    def set_busy(self, busy: bool):
        for button in self.action_buttons:
            button.setEnabled(not busy)

    def start_operation(self, operation: str, **kwargs):
        """在后台线程中启动操作"""
        if self.operation_thread is not None and self.operation_thread.isRunning():
            QMessageBox.warning(self, "提示", "已有操作正在进行中")
            return
        build_dir = self._build_dir()
        if build_dir is None:
            return

        self.progress_bar.setValue(0)
        self.set_busy(True)
        self.operation_thread = OperationThread(self.toolkit, operation, build_dir, **kwargs)
        self.operation_thread.progress_signal.connect(self.progress_bar.setValue)
        self.operation_thread.log_signal.connect(self.log_message)
        self.operation_thread.finished_signal.connect(self.on_operation_finished)
        self.operation_thread.error_signal.connect(self.on_operation_error)
        self.operation_thread.start()

    def create_build_tree(self):
        self.start_operation(
            "create",
            architecture=self.arch_combo.currentText(),
            mount=self.mount_after_create_check.isChecked(),
        )

    def install_modules(self):
        directory = QFileDialog.getExistingDirectory(self, "选择PowerShell模块目录")
        if directory:
            self.start_operation("install_modules", module_paths=[Path(directory)])

    def write_media(self):
        target = self.target_edit.text().strip()
        if not target:
            QMessageBox.warning(self, "提示", "请输入U盘盘符")
            return

        reply = QMessageBox.question(
            self, "确认",
            f"即将清除 {target} 所在磁盘上的全部数据并写入引导代码，是否继续?",
            QMessageBox.Yes | QMessageBox.No, QMessageBox.No
        )
        if reply != QMessageBox.Yes:
            self.log_message("已取消制作启动U盘")
            return
        self.start_operation("write_media", target=target)

    def on_operation_finished(self, success: bool, message: str):
        self.set_busy(False)
        if success:
            self.log_message(f"✅ {message}")
        else:
            self.log_message(f"❌ {message}")

    def on_operation_error(self, message: str):
        self.set_busy(False)
        self.progress_bar.setValue(0)
        self.log_message(f"❌ {message}")
        QMessageBox.critical(self, "错误", message)
