"""Unpacking of gzip-compressed tar artifacts into install directories."""

from __future__ import annotations

import errno
import gzip
import os
import shutil
import tarfile
import tempfile
import zlib
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Optional

import structlog

from hoist_runtime.core.exceptions import (
    ArchiveFormatError,
    ArtifactIntegrityError,
    HoistError,
    InstallError,
    TransportError,
)
from hoist_runtime.deploy.fetch import Fetcher
from hoist_runtime.utils.fs import file_sha256, mkdir_chown_all

logger = structlog.get_logger()

# Errors raised while decoding the compressed stream, as opposed to writing to disk.
_STREAM_ERRORS = (tarfile.TarError, zlib.error, EOFError, gzip.BadGzipFile)


def _member_path(dest: Path, member: tarfile.TarInfo, archive_name: str) -> Path:
    """Map an archive member name onto the destination, rejecting traversal."""
    rel = PurePosixPath(member.name)
    if rel.is_absolute() or ".." in rel.parts:
        raise ArchiveFormatError(f"Unsafe member path {member.name!r} when unpacking {archive_name}")
    return dest.joinpath(*rel.parts)


def _ensure_parent(fpath: Path, dest_root: Path, uid: int, gid: int, archive_name: str) -> None:
    parent = fpath.parent
    if not parent.exists():
        mkdir_chown_all(parent, uid, gid, 0o755)
    resolved = parent.resolve()
    if resolved != dest_root and dest_root not in resolved.parents:
        raise ArchiveFormatError(f"Member {fpath} escapes {dest_root} through a symlink when unpacking {archive_name}")


def _next_member(tar: tarfile.TarFile, archive_name: str) -> Optional[tarfile.TarInfo]:
    try:
        return tar.next()
    except _STREAM_ERRORS as e:
        raise ArchiveFormatError(f"Unable to read {archive_name}: {e}") from e


def _extract_member(tar: tarfile.TarFile, member: tarfile.TarInfo, dest: Path, dest_root: Path, uid: int, gid: int, archive_name: str) -> None:
    fpath = _member_path(dest, member, archive_name)
    if fpath != dest:
        _ensure_parent(fpath, dest_root, uid, gid, archive_name)

    if (member.isdir() or member.isreg()) and os.path.islink(fpath):
        # writing or chowning here would follow a link the archive planted earlier
        raise ArchiveFormatError(f"Member {member.name!r} would be written through existing symlink {fpath} when unpacking {archive_name}")

    if member.issym():
        try:
            os.symlink(member.linkname, fpath)
        except OSError as e:
            raise InstallError(f"Unable to create destination symlink {fpath} (to {member.linkname}) when unpacking {archive_name}: {e}") from e

    elif member.islnk():
        # hardlink targets are relative to the archive root, not to the link's
        # directory; materialise as a symlink so the target need not exist yet
        link_target = os.path.relpath(member.linkname, os.path.dirname(member.name) or os.curdir)
        try:
            os.symlink(link_target, fpath)
        except OSError as e:
            raise InstallError(f"Unable to create destination symlink {fpath} (resolved {member.linkname} to {link_target}) when unpacking {archive_name}: {e}") from e

    elif member.isdir():
        try:
            os.mkdir(fpath, member.mode)
        except FileExistsError:
            pass
        except OSError as e:
            raise InstallError(f"Unable to create destination directory {fpath} when unpacking {archive_name}: {e}") from e
        try:
            os.chown(fpath, uid, gid, follow_symlinks=False)
        except OSError as e:
            raise InstallError(f"Unable to chown destination directory {fpath} when unpacking {archive_name}: {e}") from e

    elif member.isreg():
        try:
            fd = os.open(fpath, os.O_WRONLY | os.O_CREAT | os.O_TRUNC | os.O_NOFOLLOW, member.mode)
        except OSError as e:
            raise InstallError(f"Unable to open destination file {fpath} when unpacking {archive_name}: {e}") from e
        # closed per entry so descriptors don't pile up on large archives
        with os.fdopen(fd, "wb") as out:
            try:
                os.fchown(out.fileno(), uid, gid)
            except OSError as e:
                raise InstallError(f"Unable to chown destination file {fpath} when unpacking {archive_name}: {e}") from e
            try:
                shutil.copyfileobj(tar.extractfile(member), out)
            except _STREAM_ERRORS as e:
                raise ArchiveFormatError(f"Unable to read {member.name} from {archive_name}: {e}") from e
            except OSError as e:
                raise InstallError(f"Unable to copy into destination file {fpath} when unpacking {archive_name}: {e}") from e

    else:
        raise ArchiveFormatError(f"Unhandled type flag {member.type!r} for {member.name!r} when unpacking {archive_name}")


def extract_tar_gz(fp: BinaryIO, dest: Path, uid: int, gid: int, archive_name: Optional[str] = None) -> int:
    """Extract a gzip-compressed tar stream into ``dest``.

    Directories and regular files are chowned to ``uid``/``gid``; symlinks
    are created verbatim and hardlinks become relative symlinks. Any other
    member type aborts the extraction.

    Args:
        fp: Readable binary stream positioned at the gzip header
        dest: Destination root, created if missing
        uid: Owner for created directories and files
        gid: Group for created directories and files
        archive_name: Name used in error messages

    Returns:
        Number of members extracted

    Raises:
        ArchiveFormatError: Corrupt stream, unsafe path or unsupported member
        InstallError: Filesystem failure while writing
    """
    dest = Path(dest)
    archive_name = archive_name or getattr(fp, "name", "<stream>")

    try:
        mkdir_chown_all(dest, uid, gid, 0o755)
        os.chown(dest, uid, gid)
    except OSError as e:
        raise InstallError(f"Unable to create root directory {dest} when unpacking {archive_name}: {e}") from e
    dest_root = dest.resolve()

    try:
        tar = tarfile.open(fileobj=fp, mode="r|gz")
    except _STREAM_ERRORS as e:
        raise ArchiveFormatError(f"Unable to create gzip reader for {archive_name}: {e}") from e

    count = 0
    with tar:
        while True:
            member = _next_member(tar, archive_name)
            if member is None:
                break
            _extract_member(tar, member, dest, dest_root, uid, gid, archive_name)
            count += 1
    return count


def _verify_digest(path: Path, expected: str, location: str) -> None:
    actual = file_sha256(path)
    if actual != expected.lower():
        raise ArtifactIntegrityError(f"SHA256 mismatch for {location}. expected={expected} actual={actual}")


def install_artifact(
    location: str,
    install_dir: Path,
    fetch: Fetcher,
    uid: int,
    gid: int,
    content_sha256: Optional[str] = None,
) -> bool:
    """Fetch and unpack an artifact into ``install_dir`` unless it already exists.

    The archive is unpacked into a private staging directory next to
    ``install_dir`` and renamed into place once complete, so the install
    directory is never visible half-extracted. If another process renames
    its copy into place first, ours is discarded.

    Returns:
        True if this call performed the install, False if it was a no-op
    """
    install_dir = Path(install_dir)
    if install_dir.exists():
        return False

    version = install_dir.name
    with tempfile.TemporaryDirectory(prefix=f"{version}.") as download_dir:
        out_path = Path(download_dir) / version
        try:
            fetch(location, out_path)
        except HoistError:
            raise
        except Exception as e:
            raise TransportError(f"Could not fetch {location}: {e}") from e
        if not out_path.exists():
            raise TransportError(f"Fetcher produced no file for {location}")
        if content_sha256:
            _verify_digest(out_path, content_sha256, location)

        installs_dir = install_dir.parent
        try:
            mkdir_chown_all(installs_dir, uid, gid, 0o755)
            staging = Path(tempfile.mkdtemp(dir=installs_dir, prefix=f".{version}."))
        except OSError as e:
            raise InstallError(f"Could not create staging directory to install {version}: {e}") from e

        try:
            os.chmod(staging, 0o755)
            with open(out_path, "rb") as fp:
                count = extract_tar_gz(fp, staging, uid, gid, archive_name=str(out_path))
            try:
                os.rename(staging, install_dir)
            except OSError as e:
                if e.errno in (errno.EEXIST, errno.ENOTEMPTY) and install_dir.exists():
                    logger.info("Install completed concurrently by another process", version=version, path=str(install_dir))
                    return False
                raise InstallError(f"Could not move {staging} into place at {install_dir}: {e}") from e
        except OSError as e:
            raise InstallError(f"Could not install {version} into {install_dir}: {e}") from e
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

    logger.info("Installed artifact", location=location, version=version, path=str(install_dir), members=count)
    return True
