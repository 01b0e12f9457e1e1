#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
命令行入口
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from winpe_toolkit import __version__
from winpe_toolkit.core.config_manager import ConfigManager
from winpe_toolkit.core.exceptions import WinPEToolkitError
from winpe_toolkit.core.models import Architecture
from winpe_toolkit.core.options import ExecutionOptions
from winpe_toolkit.core.toolkit import WinPEToolkit
from winpe_toolkit.utils.logger import log_error, setup_logger

logger = logging.getLogger("WinPEToolkit")


def console_confirm(prompt: str) -> bool:
    """控制台确认"""
    choice = input(f"{prompt} (y/n): ").lower().strip()
    return choice in ['y', 'yes', '是']


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="winpe-toolkit",
        description="WinPE工作目录创建、定制和U盘制作工具",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, help="配置文件路径 (默认 config/winpe_config.json)")
    parser.add_argument("--log-file", type=Path, help="日志文件路径")
    parser.add_argument("--what-if", action="store_true", help="演练模式，只检查并显示将要进行的操作")
    parser.add_argument("-v", "--verbose", action="store_true", help="显示外部命令的完整输出")

    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="创建WinPE工作目录")
    create.add_argument("architecture", choices=[a.value for a in Architecture])
    create.add_argument("destination", type=Path)
    create.add_argument("--mount", action="store_true", help="创建后挂载 boot.wim")
    create.add_argument("--cleanup-on-failure", action="store_true", help="复制失败时删除未完成的目录")

    validate = subparsers.add_parser("validate", help="验证工作目录")
    validate.add_argument("path", type=Path)

    mount = subparsers.add_parser("mount", help="挂载工作目录的 boot.wim")
    mount.add_argument("path", type=Path)

    unmount = subparsers.add_parser("unmount", help="卸载工作目录的 boot.wim")
    unmount.add_argument("path", type=Path)
    unmount.add_argument("--discard", action="store_true", help="放弃更改")

    subparsers.add_parser("list-mounted", help="列出当前挂载的镜像")

    packages = subparsers.add_parser("install-packages", help="添加基础可选组件")
    packages.add_argument("path", type=Path)

    modules = subparsers.add_parser("install-modules", help="安装PowerShell模块")
    modules.add_argument("path", type=Path)
    modules.add_argument("modules", type=Path, nargs="+")
    modules.add_argument("--force", action="store_true", help="覆盖已存在的模块")

    media = subparsers.add_parser("write-media", help="写入可移动介质")
    media.add_argument("path", type=Path)
    media.add_argument("target", help="盘符 (如 E:) 或卷ID")
    media.add_argument("--force", action="store_true", help="写入引导代码前不询问")

    return parser


def _print_progress(percent: int, message: str):
    print(f"{percent:3d}% {message}")


def run_command(args: argparse.Namespace, toolkit: WinPEToolkit) -> int:
    """执行子命令，返回退出码"""
    if args.command == "create":
        toolkit.set_progress_callback(_print_progress)
        tree = toolkit.create_build_tree(args.architecture, args.destination, args.mount,
                                         args.cleanup_on_failure)
        print(f"工作目录: {tree.root}")
        if tree.mount_handle:
            print(f"已挂载到: {tree.mount_handle.mount_dir}")

    elif args.command == "validate":
        status = toolkit.validate(args.path)
        print(f"有效: {'是' if status.valid else '否'}")
        print(f"已挂载: {'是' if status.mounted else '否'}")
        for entry in status.missing:
            print(f"  缺少: {entry}")
        return 0 if status.valid else 1

    elif args.command == "mount":
        handle = toolkit.mount(args.path)
        if handle:
            print(f"已挂载到: {handle.mount_dir}")

    elif args.command == "unmount":
        toolkit.unmount(args.path, commit=not args.discard)

    elif args.command == "list-mounted":
        mounted = toolkit.list_mounted()
        if not mounted:
            print("没有挂载的镜像")
        for image in mounted:
            print(f"{image.image_path} [{image.index}] -> {image.mount_dir} ({image.status})")

    elif args.command == "install-packages":
        toolkit.install_base_packages(args.path, _print_progress)

    elif args.command == "install-modules":
        installed = toolkit.install_modules(args.path, args.modules, overwrite=args.force)
        for destination in installed:
            print(f"已安装: {destination}")
        for failure in toolkit.module_manager.last_failures:
            print(f"失败: {failure}", file=sys.stderr)

    elif args.command == "write-media":
        volume = toolkit.write_to_removable_media(args.path, args.target, args.force, _print_progress)
        if volume:
            print(f"卷 {volume.drive_letter}: {volume.label} ({volume.file_system}, {volume.size} 字节)")

    return 0


def main(argv: Optional[List[str]] = None, environ: Optional[Mapping[str, str]] = None,
         confirm: Callable[[str], bool] = console_confirm, adk_manager=None) -> int:
    """命令行主函数"""
    parser = build_parser()
    args = parser.parse_args(argv)

    config_manager = ConfigManager(args.config)
    setup_logger(
        log_file_path=args.log_file or config_manager.get_log_file(),
        level=logging.DEBUG if args.verbose else config_manager.get("logging.level", "INFO"),
    )

    try:
        options = ExecutionOptions(what_if=args.what_if, verbose=args.verbose)
        toolkit = WinPEToolkit.from_config_manager(
            config_manager, options, environ,
            adk_manager=adk_manager, confirm_callback=confirm,
        )

        if not toolkit.adk.check_admin_privileges() and args.command != "validate":
            logger.warning("当前没有管理员权限，DISM和磁盘操作可能失败")

        return run_command(args, toolkit)

    except WinPEToolkitError as e:
        log_error(e, args.command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
