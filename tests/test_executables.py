"""Tests for discovering services from bin/launch."""

import pytest

from hoist_runtime.core.exceptions import LaunchEntryError, NotInstalledError
from hoist_runtime.core.models import CgroupConfig


def test_launch_directory_yields_one_executable_per_entry(make_launchable, build_archive, app_members, service_builder):
    launchable = make_launchable(build_archive("myapp_1.tar.gz", app_members))
    launchable.install()

    executables = launchable.executables(service_builder)

    assert [e.service.name for e in executables] == ["myapp__web", "myapp__worker"]
    launch_dir = launchable.install_dir() / "bin" / "launch"
    assert [e.exec_path for e in executables] == [str(launch_dir / "web"), str(launch_dir / "worker")]
    assert executables[0].service.path == f"{service_builder.runit_root}/myapp__web"
    assert executables[0].run_as == "app"
    assert executables[0].config_dir == launchable.config_dir


def test_launch_file_yields_single_executable(make_launchable, build_archive, service_builder):
    members = [("dir", "bin"), ("file", "bin/launch", b"#!/bin/sh\n", 0o755)]
    launchable = make_launchable(build_archive("single_1.tar.gz", members), id="single")
    launchable.install()

    executables = launchable.executables(service_builder)

    assert len(executables) == 1
    assert executables[0].service.name == "single__launch"
    assert executables[0].exec_path == str(launchable.install_dir() / "bin" / "launch")


def test_executables_require_install(make_launchable, service_builder):
    launchable = make_launchable("https://h/myapp_1.tar.gz")
    with pytest.raises(NotInstalledError, match="myapp is not installed"):
        launchable.executables(service_builder)


def test_missing_launch_entry(make_launchable, build_archive, service_builder):
    launchable = make_launchable(build_archive("nolaunch_1.tar.gz", [("dir", "bin")]))
    launchable.install()
    with pytest.raises(LaunchEntryError):
        launchable.executables(service_builder)


def test_exec_command_wraps_helpers(make_launchable, build_archive, app_members, service_builder):
    launchable = make_launchable(
        build_archive("myapp_1.tar.gz", app_members),
        chpst="/usr/bin/chpst",
        nolimit="/usr/bin/nolimit",
        cgroup_config=CgroupConfig(name="myapp", cpus=1.5, memory_bytes=1 << 30),
    )
    launchable.install()
    web = launchable.executables(service_builder)[0]

    assert web.exec_command() == [
        "/usr/bin/cgexec", "-g", "cpu,memory:myapp",
        "/usr/bin/chpst", "-u", "app", "-e", launchable.config_dir,
        "/usr/bin/nolimit", web.exec_path,
    ]


def test_exec_command_without_resource_group(make_launchable, build_archive, app_members, service_builder):
    launchable = make_launchable(build_archive("myapp_1.tar.gz", app_members))
    launchable.install()
    web = launchable.executables(service_builder)[0]

    assert web.exec_command()[0] == launchable.chpst
