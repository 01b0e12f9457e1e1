# -*- coding: utf-8 -*-
from pathlib import Path

import pytest

from winpe_toolkit.core.exceptions import ImageQueryError, UnknownImageArchitectureError
from winpe_toolkit.core.models import Architecture
from winpe_toolkit.core.winpe.image_probe import ImageStateProbe, parse_dism_records

MOUNTED_OUTPUT = """
Deployment Image Servicing and Management tool
Version: 10.0.22621.1

Mounted images:

Mount Dir : C:\\WinPE_amd64\\mount
Image File : C:\\WinPE_amd64\\media\\sources\\boot.wim
Image Index : 1
Mounted Read/Write : Yes
Status : Ok

Mount Dir : D:\\offline
Image File : D:\\images\\install.wim
Image Index : 3
Mounted Read/Write : No
Status : Needs Remount

The operation completed successfully.
"""


def test_parse_dism_records_splits_on_blank_lines():
    records = parse_dism_records(MOUNTED_OUTPUT)

    assert len(records) == 2
    assert records[0]["Mount Dir"] == "C:\\WinPE_amd64\\mount"
    assert records[0]["Image File"] == "C:\\WinPE_amd64\\media\\sources\\boot.wim"
    assert records[1]["Image Index"] == "3"
    assert records[1]["Status"] == "Needs Remount"


def test_parse_dism_records_ignores_output_without_records():
    assert parse_dism_records("") == []
    assert parse_dism_records("No mounted images found.\n\nThe operation completed successfully.") == []


def test_get_mounted_images(fake_adk, tmp_path):
    fake_adk.mounts.append({
        "mount_dir": str(tmp_path / "mount"),
        "image_file": str(tmp_path / "boot.wim"),
        "index": "1",
    })
    probe = ImageStateProbe(fake_adk)

    mounted = probe.get_mounted_images()

    assert len(mounted) == 1
    assert mounted[0].mount_dir == tmp_path / "mount"
    assert mounted[0].read_write is True
    assert probe.is_mounted(tmp_path / "boot.wim")
    assert not probe.is_mounted(tmp_path / "other.wim")


def test_describe_missing_image_does_not_call_dism(fake_adk, tmp_path):
    info = ImageStateProbe(fake_adk).describe_image(tmp_path / "missing.wim")

    assert info.exists is False
    assert fake_adk.commands == []


def test_describe_image_reads_name_and_architecture(fake_adk, tmp_path):
    image = tmp_path / "boot.wim"
    image.write_bytes(b"MSWIM")

    info = ImageStateProbe(fake_adk).describe_image(image)

    assert info.exists
    assert info.name == "Microsoft Windows PE (amd64)"
    assert info.architecture == Architecture.AMD64
    assert fake_adk.commands[0][:3] == ["dism.exe", "/English", "/Get-ImageInfo"]


def test_describe_unreadable_image(fake_adk, tmp_path):
    image = tmp_path / "boot.wim"
    image.write_bytes(b"not a wim")
    fake_adk.unreadable_images = True

    assert ImageStateProbe(fake_adk).describe_image(image).exists is False


@pytest.mark.parametrize("name, expected", [
    ("Microsoft Windows PE (amd64)", Architecture.AMD64),
    ("Microsoft Windows PE (x86)", Architecture.X86),
])
def test_get_architecture_known_names(fake_adk, tmp_path, name, expected):
    image = tmp_path / "boot.wim"
    image.write_bytes(b"MSWIM")
    fake_adk.image_name = name

    assert ImageStateProbe(fake_adk).get_architecture(image) == expected


def test_get_architecture_unknown_name(fake_adk, tmp_path):
    image = tmp_path / "boot.wim"
    image.write_bytes(b"MSWIM")
    fake_adk.image_name = "Microsoft Windows PE (arm64)"

    with pytest.raises(UnknownImageArchitectureError) as exc_info:
        ImageStateProbe(fake_adk).get_architecture(image)
    assert exc_info.value.image_name == "Microsoft Windows PE (arm64)"
    assert exc_info.value.image_path == Path(image)


def test_failed_mount_query_raises(fake_adk):
    fake_adk.fail_mount_query = True
    probe = ImageStateProbe(fake_adk)

    with pytest.raises(ImageQueryError) as exc_info:
        probe.get_mounted_images()

    assert "/Get-MountedImageInfo" in exc_info.value.command
    assert "Access is denied" in exc_info.value.output
    assert exc_info.value.returncode == 1
