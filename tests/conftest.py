"""
Pytest configuration and fixtures for hoist runtime tests.
"""

import io
import os
import stat
import tarfile
from pathlib import Path

import pytest
import structlog

from hoist_runtime.core.identity import StaticIdentityResolver
from hoist_runtime.deploy.fetch import fetch_to_file
from hoist_runtime.launchable.launchable import Launchable
from hoist_runtime.supervisor.sv import ServiceBuilder


FAKE_CHPST = """\
#!/bin/sh
echo "$*" >> "$(dirname "$0")/chpst.log"
while [ $# -gt 0 ]; do
  case "$1" in
    -u|-e) shift 2 ;;
    *) break ;;
  esac
done
exec "$@"
"""


def _add_member(tar: tarfile.TarFile, member: tuple) -> None:
    kind, name = member[0], member[1]
    info = tarfile.TarInfo(name)
    if kind == "dir":
        info.type = tarfile.DIRTYPE
        info.mode = member[2] if len(member) > 2 else 0o755
        tar.addfile(info)
    elif kind == "file":
        data = member[2]
        info.size = len(data)
        info.mode = member[3] if len(member) > 3 else 0o644
        tar.addfile(info, io.BytesIO(data))
    elif kind == "symlink":
        info.type = tarfile.SYMTYPE
        info.linkname = member[2]
        tar.addfile(info)
    elif kind == "hardlink":
        info.type = tarfile.LNKTYPE
        info.linkname = member[2]
        tar.addfile(info)
    elif kind == "fifo":
        info.type = tarfile.FIFOTYPE
        tar.addfile(info)
    elif kind == "chr":
        info.type = tarfile.CHRTYPE
        info.devmajor, info.devminor = 1, 3
        tar.addfile(info)
    else:
        raise ValueError(f"unknown member kind {kind}")


@pytest.fixture
def build_archive(tmp_path):
    """Return a function writing a .tar.gz built from member tuples.

    Members are ("dir", name), ("file", name, data[, mode]),
    ("symlink", name, target), ("hardlink", name, target), ("fifo", name)
    or ("chr", name), added in order.
    """
    artifacts = tmp_path / "artifacts"
    artifacts.mkdir()

    def _build(filename: str, members: list) -> Path:
        path = artifacts / filename
        with tarfile.open(path, "w:gz") as tar:
            for member in members:
                _add_member(tar, member)
        return path

    return _build


@pytest.fixture
def app_members():
    """A small service with a launch directory and lifecycle scripts."""
    return [
        ("dir", "bin"),
        ("dir", "bin/launch"),
        ("file", "bin/launch/web", b"#!/bin/sh\nexec sleep 1\n", 0o755),
        ("file", "bin/launch/worker", b"#!/bin/sh\nexec sleep 1\n", 0o755),
        ("dir", "lib"),
        ("file", "lib/data.txt", b"payload\n"),
        ("symlink", "lib/current-data", "data.txt"),
    ]


@pytest.fixture
def identity():
    """Identity resolver pinned to the test user so chown succeeds unprivileged."""
    return StaticIdentityResolver(os.getuid(), os.getgid())


@pytest.fixture
def fake_chpst(tmp_path) -> Path:
    """Stand-in chpst that logs its arguments and execs the wrapped command."""
    bin_dir = tmp_path / "fakebin"
    bin_dir.mkdir(exist_ok=True)
    path = bin_dir / "chpst"
    path.write_text(FAKE_CHPST)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class RecordingCgroups:
    def __init__(self, error: Exception = None):
        self.applied = []
        self.error = error

    def apply(self, config):
        self.applied.append(config)
        if self.error is not None:
            raise self.error


class RecordingSV:
    """Supervisor double recording requests; ``failures`` maps service name to exception."""

    def __init__(self):
        self.calls = []
        self.failures = {}

    def _record(self, command, service):
        self.calls.append((command, service.name))
        error = self.failures.get(service.name)
        if error is not None:
            raise error
        return "ok"

    def restart(self, service):
        return self._record("restart", service)

    def stop(self, service):
        return self._record("stop", service)


@pytest.fixture
def recording_cgroups():
    return RecordingCgroups()


@pytest.fixture
def recording_sv():
    return RecordingSV()


@pytest.fixture
def service_builder(tmp_path):
    return ServiceBuilder(str(tmp_path / "service"))


@pytest.fixture
def make_launchable(tmp_path, identity, fake_chpst, recording_cgroups):
    """Return a factory for launchables rooted in tmp_path."""
    config_dir = tmp_path / "env"
    config_dir.mkdir()

    def _make(location, **overrides) -> Launchable:
        kwargs = dict(
            id="myapp",
            run_as="app",
            config_dir=str(config_dir),
            root_dir=tmp_path / "root",
            chpst=str(fake_chpst),
            identity=identity,
            cgroups=recording_cgroups,
            fetch_to_file=fetch_to_file,
        )
        kwargs.update(overrides)
        return Launchable(location=str(location), **kwargs)

    return _make



@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo setup_logging between tests so no logger writes to a closed capture stream."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
