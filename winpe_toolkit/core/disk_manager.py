#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
磁盘管理模块
通过PowerShell存储cmdlet查询可移动卷、清除磁盘、分区和格式化
"""

import json
from typing import Any, Dict, List, Optional

from winpe_toolkit.core.adk_manager import quote_powershell
from winpe_toolkit.core.exceptions import DiskOperationError
from winpe_toolkit.core.models import DiskInfo, VolumeInfo
from winpe_toolkit.core.options import ExecutionOptions
from winpe_toolkit.utils.logger import get_logger

# 枚举值统一转成字符串，避免 ConvertTo-Json 输出数字
VOLUME_PROPERTIES = (
    "@{Name='DriveLetter';Expression={[string]$_.DriveLetter}}, UniqueId, FileSystemLabel, "
    "FileSystem, @{Name='DriveType';Expression={[string]$_.DriveType}}, Size, SizeRemaining"
)
DISK_PROPERTIES = (
    "Number, FriendlyName, Size, @{Name='BusType';Expression={[string]$_.BusType}}, "
    "@{Name='PartitionStyle';Expression={[string]$_.PartitionStyle}}"
)


def parse_powershell_json(output: str) -> List[Dict[str, Any]]:
    """解析 ConvertTo-Json 输出

    单个对象输出为字典，多个对象输出为列表，没有对象时输出为空。
    """
    text = output.strip()
    if not text:
        return []
    data = json.loads(text)
    if isinstance(data, dict):
        return [data]
    return [item for item in data if isinstance(item, dict)]


def normalize_volume_identifier(identifier: str) -> str:
    """"E", "E:", "E:\\" 统一为 "E"，卷GUID路径原样返回"""
    text = str(identifier).strip()
    if len(text) <= 3 and text[:1].isalpha() and text[1:] in ("", ":", ":\\", ":/"):
        return text[0].upper()
    return text


class DiskManager:
    """磁盘和卷管理器"""

    def __init__(self, adk_manager, options: Optional[ExecutionOptions] = None):
        self.adk = adk_manager
        self.options = options or ExecutionOptions()
        self.logger = get_logger("DiskManager")

    def _query(self, script: str, description: str) -> List[Dict[str, Any]]:
        success, stdout, stderr = self.adk.run_powershell_command(script)
        if not success:
            raise DiskOperationError(script, stderr or stdout, self.adk.last_returncode, description)
        try:
            return parse_powershell_json(stdout)
        except ValueError as e:
            raise DiskOperationError(script, f"无法解析输出: {e}", None, description) from e

    def _execute(self, script: str, description: str):
        if self.options.what_if:
            self.logger.info(f"What if: {description} ({script})")
            return
        success, stdout, stderr = self.adk.run_powershell_command(script)
        if not success:
            raise DiskOperationError(script, stderr or stdout, self.adk.last_returncode, description)

    def get_removable_volumes(self) -> List[VolumeInfo]:
        """列出所有可移动卷"""
        script = (
            "Get-Volume | Where-Object { $_.DriveType -eq 'Removable' } | "
            f"Select-Object {VOLUME_PROPERTIES} | ConvertTo-Json -Compress"
        )
        volumes = [VolumeInfo.from_powershell(item) for item in self._query(script, "查询可移动卷失败")]
        return [volume for volume in volumes if volume.is_removable]

    def find_removable_volume(self, identifier: str) -> Optional[VolumeInfo]:
        """按盘符或卷ID查找可移动卷

        Args:
            identifier: 盘符 (E, E:, E:\\) 或卷GUID路径

        Returns:
            Optional[VolumeInfo]: 找不到或不是可移动卷时为None
        """
        key = normalize_volume_identifier(identifier)
        for volume in self.get_removable_volumes():
            if volume.drive_letter and volume.drive_letter.upper() == key.upper():
                return volume
            if volume.unique_id and volume.unique_id.lower() == key.lower():
                return volume
        self.logger.warning(f"没有找到可移动卷: {identifier}")
        return None

    def get_disk_for_volume(self, volume: VolumeInfo) -> DiskInfo:
        """获取卷所在的磁盘"""
        if volume.unique_id:
            selector = f"Get-Volume -UniqueId {quote_powershell(volume.unique_id)} | Get-Partition"
        else:
            selector = f"Get-Partition -DriveLetter {volume.drive_letter}"
        script = f"{selector} | Get-Disk | Select-Object {DISK_PROPERTIES} | ConvertTo-Json -Compress"

        disks = self._query(script, "查询磁盘失败")
        if not disks:
            raise DiskOperationError(script, "没有返回磁盘信息", None, "查询磁盘失败")
        disk = DiskInfo.from_powershell(disks[0])
        self.logger.info(f"目标磁盘: {disk.number} {disk.friendly_name} ({disk.size / (1024 ** 3):.1f} GB)")
        return disk

    def get_volume(self, drive_letter: str) -> VolumeInfo:
        """按盘符查询卷"""
        script = (
            f"Get-Volume -DriveLetter {drive_letter} | "
            f"Select-Object {VOLUME_PROPERTIES} | ConvertTo-Json -Compress"
        )
        volumes = self._query(script, "查询卷失败")
        if not volumes:
            raise DiskOperationError(script, "没有返回卷信息", None, "查询卷失败")
        return VolumeInfo.from_powershell(volumes[0])

    def clear_disk(self, disk_number: int):
        """删除所有分区并清除磁盘上的数据和OEM分区"""
        self._execute(
            f"Get-Partition -DiskNumber {disk_number} -ErrorAction SilentlyContinue | "
            "Remove-Partition -Confirm:$false",
            f"删除磁盘 {disk_number} 上的分区",
        )
        self._execute(
            f"Clear-Disk -Number {disk_number} -RemoveData -RemoveOEM -Confirm:$false",
            f"清除磁盘 {disk_number}",
        )

    def create_boot_partition(self, disk_number: int, label: str = "WinPE",
                              file_system: str = "FAT32", partition_style: str = "MBR") -> Optional[VolumeInfo]:
        """创建占满磁盘的活动分区并格式化

        Returns:
            Optional[VolumeInfo]: 新卷，演练模式下为None
        """
        self._execute(
            f"Initialize-Disk -Number {disk_number} -PartitionStyle {partition_style}",
            f"初始化磁盘 {disk_number} ({partition_style})",
        )

        script = (
            f"New-Partition -DiskNumber {disk_number} -UseMaximumSize -IsActive -AssignDriveLetter | "
            f"Format-Volume -FileSystem {file_system} -NewFileSystemLabel {quote_powershell(label)} "
            f"-Confirm:$false | Select-Object {VOLUME_PROPERTIES} | ConvertTo-Json -Compress"
        )
        description = f"创建并格式化分区 ({file_system}, {label})"
        if self.options.what_if:
            self.logger.info(f"What if: {description}")
            return None

        volumes = self._query(script, description)
        if not volumes:
            raise DiskOperationError(script, "没有返回新卷信息", None, description)
        volume = VolumeInfo.from_powershell(volumes[0])
        self.logger.info(f"新卷: {volume.drive_letter}: ({volume.file_system}, {volume.label})")
        return volume
