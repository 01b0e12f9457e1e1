# -*- coding: utf-8 -*-
from unittest import mock

import pytest

from winpe_toolkit import cli


@pytest.fixture
def run_cli(tmp_path, environ, fake_adk):
    def run(*argv, confirm=lambda prompt: False, env=None):
        base = ["--config", str(tmp_path / "config" / "winpe_config.json"),
                "--log-file", str(tmp_path / "logs" / "run.log")]
        return cli.main(base + list(argv), environ=environ if env is None else env,
                        confirm=confirm, adk_manager=fake_adk)
    return run


def test_create_and_validate(run_cli, tmp_path, capsys):
    destination = tmp_path / "WinPE_amd64"

    assert run_cli("create", "amd64", str(destination)) == 0
    assert (destination / "media" / "sources" / "boot.wim").is_file()

    assert run_cli("validate", str(destination)) == 0
    assert "有效: 是" in capsys.readouterr().out


def test_validate_invalid_tree_returns_nonzero(run_cli, tmp_path):
    (tmp_path / "empty").mkdir()

    assert run_cli("validate", str(tmp_path / "empty")) == 1


def test_missing_environment(run_cli, tmp_path):
    assert run_cli("validate", str(tmp_path), env={}) == 1


def test_log_file_is_written(run_cli, tmp_path):
    run_cli("create", "amd64", str(tmp_path / "WinPE_amd64"))

    assert "WinPE工作目录创建完成" in (tmp_path / "logs" / "run.log").read_text(encoding="utf-8")


def test_what_if_create(run_cli, tmp_path):
    destination = tmp_path / "WinPE_amd64"

    assert run_cli("--what-if", "create", "amd64", str(destination), "--mount") == 0
    assert not destination.exists()


def test_existing_destination_fails(run_cli, tmp_path):
    (tmp_path / "exists").mkdir()

    assert run_cli("create", "amd64", str(tmp_path / "exists")) == 1


def test_mount_list_unmount(run_cli, fake_adk, tmp_path, capsys):
    destination = tmp_path / "WinPE_amd64"
    run_cli("create", "amd64", str(destination))

    assert run_cli("mount", str(destination)) == 0
    assert run_cli("list-mounted") == 0
    assert "boot.wim" in capsys.readouterr().out

    assert run_cli("unmount", str(destination), "--discard") == 0
    assert fake_adk.events == ["mount", "unmount discard"]


def test_install_packages_requires_mount(run_cli, fake_adk, tmp_path):
    destination = tmp_path / "WinPE_amd64"
    run_cli("create", "amd64", str(destination))

    assert run_cli("install-packages", str(destination)) == 1
    assert fake_adk.added_packages == []


def test_write_media_declined(run_cli, fake_adk, tmp_path, monkeypatch):
    monkeypatch.setattr("winpe_toolkit.core.winpe.media_writer.copy_tree", lambda *args, **kwargs: 0)
    destination = tmp_path / "WinPE_amd64"
    run_cli("create", "amd64", str(destination))

    assert run_cli("write-media", str(destination), "E:") == 1
    assert "bootsect" not in fake_adk.events


def test_write_media_forced(run_cli, fake_adk, tmp_path, monkeypatch):
    monkeypatch.setattr("winpe_toolkit.core.winpe.media_writer.copy_tree", lambda *args, **kwargs: 0)
    destination = tmp_path / "WinPE_amd64"
    run_cli("create", "amd64", str(destination))

    assert run_cli("write-media", str(destination), "E:", "--force") == 0
    assert fake_adk.events[-1] == "bootsect"


def test_unknown_architecture_is_rejected_by_parser(run_cli, tmp_path):
    with pytest.raises(SystemExit):
        run_cli("create", "ia64", str(tmp_path / "x"))


def test_warns_without_admin_privileges(run_cli, fake_adk, caplog):
    with mock.patch.object(fake_adk, "check_admin_privileges", return_value=False):
        assert run_cli("list-mounted") == 0

    assert "管理员权限" in caplog.text
