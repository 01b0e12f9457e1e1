#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
镜像状态查询模块
通过DISM查询镜像信息和当前挂载的镜像，挂载状态从不保存在工作目录中
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

from winpe_toolkit.core.exceptions import ImageQueryError, ToolNotFoundError, UnknownImageArchitectureError
from winpe_toolkit.core.models import Architecture, ImageInfo, MountedImage
from winpe_toolkit.utils.logger import get_logger

# 镜像名称到架构的固定映射
IMAGE_NAME_ARCHITECTURES: Dict[str, Architecture] = {
    "Microsoft Windows PE (amd64)": Architecture.AMD64,
    "Microsoft Windows PE (x86)": Architecture.X86,
}


def parse_dism_records(output: str) -> List[Dict[str, str]]:
    """解析DISM的 "Key : Value" 输出

    空行分隔记录，没有键值对的段落（标题、结尾提示）被忽略。

    Args:
        output: DISM标准输出

    Returns:
        List[Dict[str, str]]: 记录列表
    """
    records = []
    current: Dict[str, str] = {}

    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line:
            if current:
                records.append(current)
                current = {}
            continue

        # 路径中也有冒号，所以只按 " : " 分割
        if " : " in line:
            key, value = line.split(" : ", 1)
            current[key.strip()] = value.strip()

    if current:
        records.append(current)
    return records


def normalize_path(path) -> str:
    """按Windows语义比较路径"""
    return os.path.normcase(os.path.normpath(os.path.abspath(str(path))))


def same_path(first, second) -> bool:
    return normalize_path(first) == normalize_path(second)


class ImageStateProbe:
    """镜像状态查询"""

    def __init__(self, adk_manager):
        self.adk = adk_manager
        self.logger = get_logger("ImageStateProbe")

    def _ensure_dism(self):
        if not self.adk.get_dism_path():
            raise ToolNotFoundError("dism.exe")

    def get_mounted_images(self) -> List[MountedImage]:
        """列出当前挂载的所有镜像

        Returns:
            List[MountedImage]: 挂载列表

        Raises:
            ImageQueryError: DISM查询失败，此时挂载状态未知
        """
        self._ensure_dism()
        args = ["/Get-MountedImageInfo"]
        success, stdout, stderr = self.adk.run_dism_command(args)
        if not success:
            raise ImageQueryError(
                self.adk.format_dism_command(args),
                stderr or stdout,
                self.adk.last_returncode,
                "查询挂载镜像失败",
            )

        mounted = []
        for record in parse_dism_records(stdout):
            if "Mount Dir" not in record or "Image File" not in record:
                continue
            try:
                index = int(record.get("Image Index", "1"))
            except ValueError:
                index = 1
            mounted.append(MountedImage(
                mount_dir=Path(record["Mount Dir"]),
                image_path=Path(record["Image File"]),
                index=index,
                read_write=record.get("Mounted Read/Write", "Yes").lower() == "yes",
                status=record.get("Status", ""),
            ))

        self.logger.debug(f"当前挂载的镜像数量: {len(mounted)}")
        return mounted

    def find_mount(self, image_path: Path) -> Optional[MountedImage]:
        """按镜像绝对路径查找挂载记录"""
        for mounted in self.get_mounted_images():
            if same_path(mounted.image_path, image_path):
                return mounted
        return None

    def is_mounted(self, image_path: Path) -> bool:
        """检查镜像是否已挂载

        Args:
            image_path: WIM文件路径

        Returns:
            bool: 是否已挂载
        """
        return self.find_mount(image_path) is not None

    def describe_image(self, image_path: Path, index: int = 1) -> ImageInfo:
        """查询镜像信息

        文件不存在或DISM无法识别时 exists 为 False。

        Args:
            image_path: WIM文件路径
            index: 镜像索引

        Returns:
            ImageInfo: 镜像信息
        """
        image_path = Path(image_path)
        if not image_path.is_file():
            return ImageInfo(image_path=image_path, exists=False, index=index)

        self._ensure_dism()
        success, stdout, stderr = self.adk.run_dism_command([
            "/Get-ImageInfo",
            f"/ImageFile:{image_path}",
            f"/Index:{index}",
        ])
        if not success:
            self.logger.warning(f"无法读取镜像信息: {image_path} ({(stderr or stdout).strip()})")
            return ImageInfo(image_path=image_path, exists=False, index=index)

        name = ""
        for record in parse_dism_records(stdout):
            if "Name" in record:
                name = record["Name"]
                break

        if not name:
            self.logger.warning(f"DISM输出中没有镜像名称: {image_path}")
            return ImageInfo(image_path=image_path, exists=False, index=index)

        architecture = IMAGE_NAME_ARCHITECTURES.get(name)
        if architecture is None:
            self.logger.warning(f"未知的镜像名称: {name}")
        return ImageInfo(
            image_path=image_path,
            exists=True,
            name=name,
            index=index,
            architecture=architecture,
        )

    def get_architecture(self, image_path: Path) -> Architecture:
        """获取镜像架构，无法识别时失败

        Raises:
            UnknownImageArchitectureError: 镜像名称不在映射表中
        """
        info = self.describe_image(image_path)
        if info.architecture is None:
            raise UnknownImageArchitectureError(Path(image_path), info.name)
        return info.architecture
