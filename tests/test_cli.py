"""Tests for the hoist command line."""

import json
import os

import pytest

from hoist_runtime.__main__ import main
from hoist_runtime.core.identity import PasswdIdentityResolver


@pytest.fixture
def cli_env(monkeypatch, tmp_path, fake_chpst):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOIST_CHPST_PATH", str(fake_chpst))
    monkeypatch.setenv("HOIST_RUNIT_ROOT", str(tmp_path / "service"))
    monkeypatch.setenv("HOIST_CGROUP_ROOT", str(tmp_path / "cgroup"))
    monkeypatch.setattr(PasswdIdentityResolver, "ids", lambda self, user: (os.getuid(), os.getgid()))
    return tmp_path


def args(cmd, location, root):
    return [cmd, "--id", "myapp", "--location", str(location), "--root-dir", str(root), "--run-as", "app"]


def test_version_command(cli_env, capsys):
    assert main(args("version", "https://h/myapp_1.2.3.tar.gz", cli_env / "root")) == 0
    assert capsys.readouterr().out.strip() == "myapp_1.2.3"


def test_bad_location_exits_nonzero(cli_env, capsys):
    assert main(args("version", "https://h/myapp.zip", cli_env / "root")) == 1
    assert "Command failed" in capsys.readouterr().err


def test_activate_then_list_executables(cli_env, build_archive, app_members, capsys):
    members = app_members + [("file", "bin/post-activate", b"#!/bin/sh\necho activated\n", 0o755)]
    archive = build_archive("myapp_1.tar.gz", members)
    root = cli_env / "root"

    assert main(args("activate", archive, root)) == 0
    assert capsys.readouterr().out == "activated\n"
    assert os.readlink(root / "current") == str(root / "installs" / "myapp_1")

    assert main(args("executables", archive, root)) == 0
    payload = json.loads(capsys.readouterr().out)
    assert [entry["name"] for entry in payload] == ["myapp__web", "myapp__worker"]
    assert payload[0]["service_path"] == str(cli_env / "service" / "myapp__web")


def test_manifest_command_reports_missing_manifest(cli_env, build_archive, app_members):
    archive = build_archive("myapp_1.tar.gz", app_members)
    root = cli_env / "root"

    assert main(args("install", archive, root)) == 0
    assert main(args("manifest", archive, root)) == 1


def test_invalid_resource_limits_exit_nonzero(cli_env, capsys):
    argv = args("version", "https://h/myapp_1.tar.gz", cli_env / "root") + ["--cpus", "0"]
    assert main(argv) == 1
    assert "Invalid resource group options" in capsys.readouterr().err


def test_invalid_settings_exit_nonzero(cli_env, monkeypatch, capsys):
    monkeypatch.setenv("HOIST_LOG_FORMAT", "xml")
    assert main(args("version", "https://h/myapp_1.tar.gz", cli_env / "root")) == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_subcommand_required(cli_env):
    with pytest.raises(SystemExit):
        main([])
