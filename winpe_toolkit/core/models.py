#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
数据模型
工作目录、镜像、卷和磁盘的数据类
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from winpe_toolkit.core.exceptions import InvalidArchitectureError


class Architecture(str, Enum):
    """WinPE架构"""
    AMD64 = "amd64"
    X86 = "x86"
    ARM = "arm"
    ARM64 = "arm64"

    @classmethod
    def parse(cls, value) -> "Architecture":
        """从字符串解析架构，大小写不敏感"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidArchitectureError(str(value), [a.value for a in cls]) from None

    def __str__(self) -> str:
        return self.value


@dataclass
class ImageInfo:
    """WIM镜像描述"""
    image_path: Path
    exists: bool
    name: str = ""
    index: int = 1
    architecture: Optional[Architecture] = None


@dataclass
class MountedImage:
    """已挂载镜像，即挂载句柄"""
    mount_dir: Path
    image_path: Path
    index: int = 1
    read_write: bool = True
    status: str = "Ok"


@dataclass
class LayoutStatus:
    """工作目录验证结果"""
    valid: bool
    mounted: bool
    root: Optional[Path] = None
    missing: List[str] = field(default_factory=list)

    def __iter__(self):
        # 支持 valid, mounted = layout.validate(path)
        yield self.valid
        yield self.mounted


@dataclass
class BuildTree:
    """WinPE工作目录"""
    root: Path
    architecture: Architecture
    mount_handle: Optional[MountedImage] = None

    @property
    def fwfiles_dir(self) -> Path:
        return self.root / "fwfiles"

    @property
    def media_dir(self) -> Path:
        return self.root / "media"

    @property
    def mount_dir(self) -> Path:
        return self.root / "mount"

    @property
    def boot_wim(self) -> Path:
        return self.media_dir / "sources" / "boot.wim"

    @property
    def mounted(self) -> bool:
        return self.mount_handle is not None


@dataclass
class VolumeInfo:
    """卷信息，对应 Get-Volume 的输出"""
    drive_letter: str
    unique_id: str = ""
    label: str = ""
    file_system: str = ""
    drive_type: str = ""
    size: int = 0
    size_remaining: int = 0

    @property
    def root_path(self) -> Path:
        return Path(f"{self.drive_letter}:\\")

    @property
    def is_removable(self) -> bool:
        return self.drive_type.lower() == "removable"

    @classmethod
    def from_powershell(cls, data: Dict[str, Any]) -> "VolumeInfo":
        letter = data.get("DriveLetter") or ""
        return cls(
            drive_letter=str(letter).rstrip(":"),
            unique_id=data.get("UniqueId") or "",
            label=data.get("FileSystemLabel") or "",
            file_system=data.get("FileSystem") or "",
            drive_type=str(data.get("DriveType") or ""),
            size=int(data.get("Size") or 0),
            size_remaining=int(data.get("SizeRemaining") or 0),
        )


@dataclass
class DiskInfo:
    """磁盘信息，对应 Get-Disk 的输出"""
    number: int
    friendly_name: str = ""
    size: int = 0
    bus_type: str = ""
    partition_style: str = ""

    @classmethod
    def from_powershell(cls, data: Dict[str, Any]) -> "DiskInfo":
        return cls(
            number=int(data["Number"]),
            friendly_name=data.get("FriendlyName") or "",
            size=int(data.get("Size") or 0),
            bus_type=str(data.get("BusType") or ""),
            partition_style=str(data.get("PartitionStyle") or ""),
        )
