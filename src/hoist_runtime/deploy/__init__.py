"""Artifact primitives: version resolution, fetching, unpacking and pointers."""

from .fetch import Fetcher, fetch_to_file
from .installer import extract_tar_gz, install_artifact
from .pointers import flip_symlink
from .version import ARCHIVE_SUFFIX, derive_version

__all__ = [
    "ARCHIVE_SUFFIX",
    "Fetcher",
    "derive_version",
    "extract_tar_gz",
    "fetch_to_file",
    "flip_symlink",
    "install_artifact",
]
