"""Atomic current/last pointer management."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

import structlog

from hoist_runtime.core.exceptions import PointerError

logger = structlog.get_logger()


def flip_symlink(root_dir: Path, link_path: Path, target: Path, uid: int, gid: int, prefix: str = "hoist") -> None:
    """Atomically point ``link_path`` at ``target``.

    The new link is built in a private temporary directory inside
    ``root_dir``, chowned, then renamed over ``link_path``. Readers of
    ``link_path`` see either the old or the new target, never neither.

    Raises:
        PointerError: If any step fails; ``link_path`` is untouched unless the rename succeeded
    """
    try:
        tmp_dir = tempfile.mkdtemp(dir=root_dir, prefix=f".{prefix}.")
    except OSError as e:
        raise PointerError(f"Couldn't create temporary directory for symlink in {root_dir}: {e}") from e

    try:
        temp_link = os.path.join(tmp_dir, prefix)
        try:
            os.symlink(target, temp_link)
        except OSError as e:
            raise PointerError(f"Couldn't create symlink {temp_link} to {target}: {e}") from e
        try:
            os.lchown(temp_link, uid, gid)
        except OSError as e:
            raise PointerError(f"Couldn't lchown symlink {temp_link} to {uid}:{gid}: {e}") from e
        try:
            os.rename(temp_link, link_path)
        except OSError as e:
            raise PointerError(f"Couldn't rename symlink onto {link_path}: {e}") from e
    finally:
        shutil.rmtree(tmp_dir, ignore_errors=True)

    logger.info("Flipped pointer", link=str(link_path), target=str(target))
