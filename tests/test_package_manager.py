# -*- coding: utf-8 -*-
import shutil

import pytest

from winpe_toolkit.core.exceptions import (
    ImageNotMountedError,
    InvalidBuildTreeError,
    PackageInstallError,
    PackageSourceMissingError,
    UnknownImageArchitectureError,
)
from winpe_toolkit.core.winpe_packages import BASE_PACKAGES


def test_install_base_packages_in_order(toolkit, fake_adk, mounted_tree, toolkit_config):
    installed = toolkit.install_base_packages(mounted_tree.root)

    source_dir = toolkit_config.deployment_kit_root / "amd64" / "WinPE_OCs"
    expected = []
    for package in BASE_PACKAGES:
        expected.append(source_dir / f"{package.package_name}.cab")
        expected.append(source_dir / "en-us" / f"{package.package_name}_en-us.cab")

    assert installed == expected
    assert fake_adk.added_packages == expected
    add_commands = fake_adk.commands_with("/Add-Package")
    assert all(f"/Image:{mounted_tree.mount_dir}" in cmd for cmd in add_commands)


def test_base_package_order_puts_dependencies_first():
    names = [package.package_name for package in BASE_PACKAGES]

    assert len(names) == 8
    assert names.index("WinPE-WMI") < names.index("WinPE-NetFX") < names.index("WinPE-PowerShell")
    assert names.index("WinPE-Scripting") < names.index("WinPE-PowerShell")
    assert names.index("WinPE-PowerShell") < names.index("WinPE-DismCmdlets")


def test_install_through_mount_subdirectory(toolkit, fake_adk, mounted_tree):
    installed = toolkit.install_base_packages(mounted_tree.mount_dir)

    assert len(installed) == 16


def test_progress_messages(toolkit, mounted_tree):
    progress = []

    toolkit.install_base_packages(mounted_tree.root, lambda percent, message: progress.append((percent, message)))

    assert progress[0][1].startswith("[1/8]")
    assert "WinPE-WMI" in progress[0][1]
    assert progress[7][1].startswith("[8/8]")
    assert progress[-1][0] == 100


def test_not_mounted_reports_mount_command(toolkit, fake_adk, build_tree):
    with pytest.raises(ImageNotMountedError) as exc_info:
        toolkit.install_base_packages(build_tree.root)

    assert "/Mount-Image" in exc_info.value.mount_command
    assert f"/ImageFile:{build_tree.boot_wim}" in exc_info.value.mount_command
    assert f"/MountDir:{build_tree.mount_dir}" in exc_info.value.mount_command
    assert "/Mount-Image" in str(exc_info.value)
    assert fake_adk.added_packages == []


def test_invalid_build_tree(toolkit, tmp_path):
    (tmp_path / "empty").mkdir()

    with pytest.raises(InvalidBuildTreeError):
        toolkit.install_base_packages(tmp_path / "empty")


def test_unknown_image_architecture(toolkit, fake_adk, mounted_tree):
    fake_adk.image_name = "Microsoft Windows PE (arm64)"

    with pytest.raises(UnknownImageArchitectureError):
        toolkit.install_base_packages(mounted_tree.root)

    assert fake_adk.added_packages == []


def test_missing_optional_components(toolkit, fake_adk, mounted_tree, toolkit_config):
    shutil.rmtree(toolkit_config.deployment_kit_root / "amd64" / "WinPE_OCs")

    with pytest.raises(PackageSourceMissingError):
        toolkit.install_base_packages(mounted_tree.root)


def test_failure_aborts_without_rollback(toolkit, fake_adk, mounted_tree):
    fake_adk.failing_packages = {"WinPE-Scripting.cab"}

    with pytest.raises(PackageInstallError) as exc_info:
        toolkit.install_base_packages(mounted_tree.root)

    assert "WinPE-Scripting.cab" in exc_info.value.command
    assert "0x800f081e" in exc_info.value.output
    assert [p.name for p in fake_adk.added_packages] == [
        "WinPE-WMI.cab", "WinPE-WMI_en-us.cab", "WinPE-NetFX.cab", "WinPE-NetFX_en-us.cab",
    ]


def test_what_if_adds_nothing(toolkit, what_if_toolkit, fake_adk, mounted_tree):
    planned = what_if_toolkit.install_base_packages(mounted_tree.root)

    assert len(planned) == 16
    assert fake_adk.commands_with("/Add-Package") == []
