"""
文件操作工具函数
目录树复制以及Windows下只读文件的删除处理
"""

import os
import shutil
import stat
import sys
from pathlib import Path
from typing import Callable, Optional


def count_files(directory: Path) -> int:
    """递归统计文件数量"""
    try:
        return sum(1 for item in Path(directory).rglob("*") if item.is_file())
    except OSError:
        return 0


def copy_tree(source: Path, destination: Path, overwrite: bool = False,
              progress_callback: Optional[Callable[[str], None]] = None) -> int:
    """
    递归复制目录树

    Args:
        source: 源目录
        destination: 目标目录
        overwrite: 目标目录已存在时是否覆盖其中的同名文件
        progress_callback: 进度回调函数，接收当前复制的文件路径

    Returns:
        int: 复制的文件数量

    Raises:
        FileExistsError: 目标已存在且未指定覆盖
        OSError: 复制失败
    """
    source = Path(source)
    destination = Path(destination)
    copied = []

    def _copy(src, dst):
        if progress_callback:
            progress_callback(src)
        copied.append(src)
        return shutil.copy2(src, dst)

    shutil.copytree(source, destination, copy_function=_copy, dirs_exist_ok=overwrite)
    return len(copied)


def copy_file(source: Path, destination: Path) -> Path:
    """复制单个文件，自动创建目标目录"""
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)
    return destination


def force_remove_tree(directory_path: Path,
                      progress_callback: Optional[Callable[[str], None]] = None) -> bool:
    """
    强制删除目录树，处理只读文件

    Args:
        directory_path: 要删除的目录路径
        progress_callback: 进度回调函数，接收无法删除的路径

    Returns:
        bool: 目录是否已不存在

    Raises:
        ValueError: 尝试删除受保护的目录
    """
    if not _is_safe_to_delete(directory_path):
        raise ValueError(f"拒绝删除受保护的目录: {directory_path}")

    def on_exc(func, path, exc):
        if isinstance(exc, PermissionError):
            try:
                os.chmod(path, stat.S_IWRITE)
                func(path)
            except OSError:
                if progress_callback:
                    progress_callback(f"无法删除: {path}")
        else:
            raise exc

    if os.path.exists(directory_path):
        if sys.version_info >= (3, 12):
            shutil.rmtree(directory_path, onexc=on_exc)
        else:
            shutil.rmtree(directory_path, onerror=lambda func, path, exc_info: on_exc(func, path, exc_info[1]))
    return not os.path.exists(directory_path)


def _is_safe_to_delete(directory_path: Path) -> bool:
    """防止删除根目录、当前工作目录和系统目录"""
    path = Path(directory_path).resolve()

    if path == Path(path.anchor) or len(path.parts) <= 2:
        return False

    if path == Path.cwd().resolve():
        return False

    dangerous_names = [
        "system32", "syswow64", "windows", "program files",
        "program files (x86)", "programdata", "users",
    ]
    return path.name.lower() not in dangerous_names
