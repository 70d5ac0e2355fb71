"""Tests for atomic current/last pointer flips."""

import os
import threading

import pytest

from hoist_runtime.core.exceptions import PointerError
from hoist_runtime.deploy.pointers import flip_symlink


def test_make_current_and_last(make_launchable, build_archive, app_members):
    archive = build_archive("myapp_1.tar.gz", app_members)
    launchable = make_launchable(archive)
    launchable.install()

    launchable.make_current()
    launchable.make_last()

    assert os.readlink(launchable.current_dir()) == str(launchable.install_dir())
    assert os.readlink(launchable.last_dir()) == str(launchable.install_dir())
    assert os.lstat(launchable.current_dir()).st_uid == os.getuid()
    # no temporary directories left behind in the root
    assert sorted(os.listdir(launchable.root_dir)) == ["current", "installs", "last"]


def test_make_current_replaces_previous_target(make_launchable, build_archive, app_members):
    old = make_launchable(build_archive("myapp_1.tar.gz", app_members))
    new = make_launchable(build_archive("myapp_2.tar.gz", app_members))
    old.install()
    new.install()

    old.make_current()
    new.make_current()

    assert os.readlink(new.current_dir()) == str(new.install_dir())


def test_reader_never_sees_missing_pointer(make_launchable, build_archive, app_members):
    first = make_launchable(build_archive("myapp_1.tar.gz", app_members))
    second = make_launchable(build_archive("myapp_2.tar.gz", app_members))
    first.install()
    second.install()
    first.make_current()

    valid = {str(first.install_dir()), str(second.install_dir())}
    seen = set()
    errors = []
    done = threading.Event()

    def reader():
        while not done.is_set():
            try:
                seen.add(os.readlink(first.current_dir()))
            except OSError as e:
                errors.append(e)

    thread = threading.Thread(target=reader)
    thread.start()
    try:
        for i in range(200):
            (second if i % 2 == 0 else first).make_current()
    finally:
        done.set()
        thread.join()

    assert errors == []
    assert seen <= valid


def test_flip_into_missing_root_fails(tmp_path):
    with pytest.raises(PointerError):
        flip_symlink(tmp_path / "nope", tmp_path / "nope" / "current", tmp_path, os.getuid(), os.getgid())


def test_flip_onto_directory_fails_and_cleans_up(tmp_path):
    (tmp_path / "current").mkdir()
    (tmp_path / "current" / "keep").write_text("x")

    with pytest.raises(PointerError):
        flip_symlink(tmp_path, tmp_path / "current", tmp_path / "installs" / "v1", os.getuid(), os.getgid(), prefix="app")

    assert sorted(os.listdir(tmp_path)) == ["current"]
    assert (tmp_path / "current" / "keep").exists()
