# -*- coding: utf-8 -*-
"""
测试夹具
FakeADK 在内存中模拟 DISM、PowerShell 存储cmdlet和bootsect，
ADK目录结构在临时目录中按真实布局生成。
"""

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from winpe_toolkit.core.adk_manager import ADKManager
from winpe_toolkit.core.config_manager import OSCDIMG_ROOT_ENV, WINPE_ROOT_ENV, ToolkitConfig
from winpe_toolkit.core.options import ExecutionOptions
from winpe_toolkit.core.toolkit import WinPEToolkit
from winpe_toolkit.core.winpe.image_probe import same_path
from winpe_toolkit.utils.logger import APP_LOGGER_NAME

AMD64_IMAGE_NAME = "Microsoft Windows PE (amd64)"

REMOVABLE_VOLUME = {
    "DriveLetter": "E",
    "UniqueId": "\\\\?\\Volume{6f1c2a3e-0000-0000-0000-100000000000}\\",
    "FileSystemLabel": "KINGSTON",
    "FileSystem": "exFAT",
    "DriveType": "Removable",
    "Size": 15938355200,
    "SizeRemaining": 15938322432,
}

FIXED_VOLUME = {
    "DriveLetter": "C",
    "UniqueId": "\\\\?\\Volume{11111111-0000-0000-0000-100000000000}\\",
    "FileSystemLabel": "Windows",
    "FileSystem": "NTFS",
    "DriveType": "Fixed",
    "Size": 255011467264,
    "SizeRemaining": 81604378624,
}

USB_DISK = {
    "Number": 2,
    "FriendlyName": "Kingston DataTraveler 3.0",
    "Size": 15938355200,
    "BusType": "USB",
    "PartitionStyle": "MBR",
}


def _argument(args: List[str], prefix: str) -> Optional[str]:
    for arg in args:
        if arg.startswith(prefix):
            return arg[len(prefix):]
    return None


class FakeADK(ADKManager):
    """记录所有命令并模拟其输出的ADK管理器"""

    def __init__(self, config: ToolkitConfig):
        super().__init__(config)
        self.commands: List[List[str]] = []
        self.events: List[str] = []
        self.mounts: List[Dict[str, str]] = []
        self.added_packages: List[Path] = []
        self.image_name = AMD64_IMAGE_NAME
        self.unreadable_images = False
        self.fail_mount = False
        self.fail_mount_query = False
        self.failing_packages: set = set()
        self.volumes = [dict(REMOVABLE_VOLUME), dict(FIXED_VOLUME)]
        self.disk = dict(USB_DISK)
        self.powershell_failures: set = set()
        self.bootsect_available = True
        self.bootsect_fails = False

    def get_dism_path(self) -> Optional[Path]:
        return Path("dism.exe")

    def get_bootsect_path(self) -> Optional[Path]:
        return Path("bootsect.exe") if self.bootsect_available else None

    def get_powershell_path(self) -> str:
        return "powershell.exe"

    def check_admin_privileges(self) -> bool:
        return True

    def run_command(self, cmd: List[str]) -> Tuple[bool, str, str]:
        self.commands.append(list(cmd))
        if cmd[0] == "dism.exe":
            result = self._dism(cmd[2:])
        elif cmd[0] == "powershell.exe":
            result = self._powershell(cmd[-1])
        elif cmd[0] == "bootsect.exe":
            result = self._bootsect(cmd[1:])
        else:
            result = (False, "", f"unexpected command {cmd[0]}")
        self.last_returncode = 0 if result[0] else 1
        return result

    # DISM

    def _dism(self, args: List[str]) -> Tuple[bool, str, str]:
        verb = args[0]
        if verb == "/Get-MountedImageInfo":
            if self.fail_mount_query:
                return False, "Error: 5\n\nAccess is denied.", ""
            return True, self._mounted_image_info(), ""

        if verb == "/Get-ImageInfo":
            image_file = _argument(args, "/ImageFile:")
            if self.unreadable_images:
                return False, "Error: 11\n\nAn attempt was made to load a program with an incorrect format.", ""
            return True, (
                "Deployment Image Servicing and Management tool\n"
                "Version: 10.0.22621.1\n"
                "\n"
                f"Details for image : {image_file}\n"
                "\n"
                "Index : 1\n"
                f"Name : {self.image_name}\n"
                f"Description : {self.image_name}\n"
                "Size : 1,414,230,127 bytes\n"
                "\n"
                "The operation completed successfully.\n"
            ), ""

        if verb == "/Mount-Image":
            if self.fail_mount:
                return False, "Error: 0xc1420127\n\nThe specified image is already mounted.", ""
            self.events.append("mount")
            self.mounts.append({
                "mount_dir": _argument(args, "/MountDir:"),
                "image_file": _argument(args, "/ImageFile:"),
                "index": _argument(args, "/Index:"),
            })
            return True, "Mounting image\n[==========================100.0%==========================]\n", ""

        if verb == "/Unmount-Image":
            mount_dir = _argument(args, "/MountDir:")
            for mount in self.mounts:
                if same_path(mount["mount_dir"], mount_dir):
                    self.mounts.remove(mount)
                    self.events.append("unmount" + (" commit" if "/Commit" in args else " discard"))
                    return True, "The operation completed successfully.", ""
            return False, "Error: 0xc1420134\n\nThe specified mount directory is not a mount point.", ""

        if verb.startswith("/Image:") and "/Add-Package" in args:
            package = Path(_argument(args, "/PackagePath:"))
            if package.name in self.failing_packages:
                return False, f"Error: 0x800f081e\n\nThe package {package.name} is not applicable to the image.", ""
            self.added_packages.append(package)
            return True, "Processing 1 of 1 - Adding package\nThe operation completed successfully.", ""

        return False, "", f"unexpected DISM arguments {args}"

    def _mounted_image_info(self) -> str:
        lines = [
            "Deployment Image Servicing and Management tool",
            "Version: 10.0.22621.1",
            "",
            "Mounted images:",
            "",
        ]
        for mount in self.mounts:
            lines += [
                f"Mount Dir : {mount['mount_dir']}",
                f"Image File : {mount['image_file']}",
                f"Image Index : {mount['index']}",
                "Mounted Read/Write : Yes",
                "Status : Ok",
                "",
            ]
        lines.append("The operation completed successfully.")
        return "\n".join(lines)

    # PowerShell

    def _powershell(self, script: str) -> Tuple[bool, str, str]:
        for pattern in self.powershell_failures:
            if pattern in script:
                return False, "", f"{pattern} : Access to a CIM resource was not available to the client."

        if script.startswith("Get-Module -ListAvailable"):
            match = re.search(r"-Name '((?:[^']|'')*)'", script)
            module_dir = Path(match.group(1).replace("''", "'"))
            manifests = list(module_dir.glob("*.psd1")) + list(module_dir.glob("*.psm1"))
            return True, (module_dir.name + "\r\n") if manifests else "", ""

        if script.startswith("Get-Volume | Where-Object"):
            return True, json.dumps(self.volumes), ""

        if "| Get-Disk" in script:
            return True, json.dumps(self.disk), ""

        if script.startswith("Get-Volume -DriveLetter"):
            letter = script.split()[2]
            for volume in self.volumes:
                if volume["DriveLetter"] == letter:
                    return True, json.dumps(volume), ""
            return True, "", ""

        if "Remove-Partition" in script:
            self.events.append("remove_partition")
            return True, "", ""
        if script.startswith("Clear-Disk"):
            self.events.append("clear_disk")
            return True, "", ""
        if script.startswith("Initialize-Disk"):
            self.events.append("initialize_disk")
            return True, "", ""
        if script.startswith("New-Partition"):
            self.events.append("new_partition")
            label = re.search(r"-NewFileSystemLabel '([^']*)'", script).group(1)
            file_system = re.search(r"-FileSystem (\w+)", script).group(1)
            new_volume = dict(REMOVABLE_VOLUME, FileSystemLabel=label, FileSystem=file_system)
            self.volumes = [new_volume] + [v for v in self.volumes if v["DriveLetter"] != new_volume["DriveLetter"]]
            return True, json.dumps(new_volume), ""

        return False, "", f"unexpected script {script}"

    # bootsect

    def _bootsect(self, args: List[str]) -> Tuple[bool, str, str]:
        self.events.append("bootsect")
        if self.bootsect_fails:
            return False, "Could not map drive partitions to the associated volume device objects:\nAccess is denied.", ""
        return True, "Target volumes will be updated with BOOTMGR compatible bootcode.", ""

    def commands_with(self, text: str) -> List[List[str]]:
        return [cmd for cmd in self.commands if any(text in part for part in cmd)]


def _make_architecture(winpe_root: Path, deployment_root: Path, arch: str, bios: bool = True):
    arch_root = winpe_root / arch
    media = arch_root / "Media"
    (media / "Boot").mkdir(parents=True)
    (media / "EFI" / "Boot").mkdir(parents=True)
    (media / "bootmgr").write_bytes(b"BOOTMGR")
    (media / "bootmgr.efi").write_bytes(b"MZ bootmgr.efi")
    (media / "Boot" / "BCD").write_bytes(b"regf")
    (media / "Boot" / "boot.sdi").write_bytes(b"sdi")
    (media / "EFI" / "Boot" / "bootx64.efi").write_bytes(b"MZ bootx64.efi")

    (arch_root / "en-us").mkdir()
    (arch_root / "en-us" / "winpe.wim").write_bytes(b"MSWIM\0\0\0winpe")

    (arch_root / "WinPE_OCs" / "en-us").mkdir(parents=True)

    oscdimg = deployment_root / arch / "Oscdimg"
    oscdimg.mkdir(parents=True)
    (oscdimg / "efisys.bin").write_bytes(b"efisys")
    if bios:
        (oscdimg / "etfsboot.com").write_bytes(b"etfsboot")
    return arch_root


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger(APP_LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def adk_root(tmp_path) -> Path:
    """临时ADK目录，包含 amd64 和 arm64 (没有BIOS启动扇区)"""
    root = tmp_path / "adk"
    winpe_root = root / "Windows Preinstallation Environment"
    deployment_root = root / "Deployment Tools"
    _make_architecture(winpe_root, deployment_root, "amd64")
    _make_architecture(winpe_root, deployment_root, "arm64", bios=False)
    return root


@pytest.fixture
def environ(adk_root) -> Dict[str, str]:
    return {
        WINPE_ROOT_ENV: str(adk_root / "Windows Preinstallation Environment"),
        OSCDIMG_ROOT_ENV: str(adk_root / "Deployment Tools" / "amd64" / "Oscdimg"),
    }


@pytest.fixture
def toolkit_config(environ) -> ToolkitConfig:
    return ToolkitConfig(
        deployment_kit_root=Path(environ[WINPE_ROOT_ENV]),
        imaging_tool_root=Path(environ[OSCDIMG_ROOT_ENV]),
    )


@pytest.fixture
def fake_adk(toolkit_config) -> FakeADK:
    return FakeADK(toolkit_config)


@pytest.fixture
def toolkit(toolkit_config, fake_adk) -> WinPEToolkit:
    return WinPEToolkit(toolkit_config, adk_manager=fake_adk)


@pytest.fixture
def what_if_toolkit(toolkit_config, fake_adk) -> WinPEToolkit:
    return WinPEToolkit(toolkit_config, ExecutionOptions(what_if=True), adk_manager=fake_adk)


@pytest.fixture
def build_tree(toolkit, tmp_path):
    """未挂载的 amd64 工作目录"""
    return toolkit.create_build_tree("amd64", tmp_path / "WinPE_amd64")


@pytest.fixture
def mounted_tree(toolkit, tmp_path):
    """已挂载的 amd64 工作目录"""
    return toolkit.create_build_tree("amd64", tmp_path / "WinPE_amd64", mount=True)
