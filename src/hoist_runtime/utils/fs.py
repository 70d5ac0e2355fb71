"""Filesystem helpers shared by the installer and pointer switcher."""

import hashlib
import os
from pathlib import Path
from typing import Union


def mkdir_chown_all(path: Union[str, Path], uid: int, gid: int, mode: int = 0o755) -> None:
    """Create ``path`` and any missing parents, chowning each directory created.

    Directories that already exist keep their ownership.
    """
    path = Path(path)
    missing = []
    current = path
    while not current.exists():
        missing.append(current)
        if current.parent == current:
            break
        current = current.parent

    for directory in reversed(missing):
        try:
            os.mkdir(directory, mode)
        except FileExistsError:
            continue
        os.chown(directory, uid, gid)


def file_sha256(file_path: Union[str, Path]) -> str:
    """Calculate SHA256 hash of file."""
    sha256_hash = hashlib.sha256()
    with open(file_path, "rb") as f:
        for byte_block in iter(lambda: f.read(8192), b""):
            sha256_hash.update(byte_block)
    return sha256_hash.hexdigest()
