"""Version derivation from artifact locations."""

from __future__ import annotations

import posixpath
import re
from typing import Optional
from urllib.parse import urlparse

from hoist_runtime.core.exceptions import VersionError

ARCHIVE_SUFFIX = ".tar.gz"

_SHA256_RE = re.compile(r"^[0-9a-f]{64}$")

# Length of the digest prefix appended to content-addressed versions.
DIGEST_PREFIX_LEN = 12


def artifact_basename(location: str) -> str:
    """Return the last path component of a location (URL or filesystem path)."""
    parsed = urlparse(location)
    path = parsed.path if parsed.scheme else location
    return posixpath.basename(path.rstrip("/"))


def derive_version(location: str, content_sha256: Optional[str] = None) -> str:
    """Derive the version string for an artifact.

    The naming scheme is ``<the-app>_<unique-version-string>.tar.gz``; the
    version is the base name with the suffix stripped. When a content digest
    is known its prefix is appended, so two artifacts with the same name but
    different content never share an install directory.

    Raises:
        VersionError: If the location does not name a ``.tar.gz`` file
    """
    name = artifact_basename(location)
    if not name.endswith(ARCHIVE_SUFFIX) or len(name) == len(ARCHIVE_SUFFIX):
        raise VersionError(f"Artifact location {location!r} does not name a {ARCHIVE_SUFFIX} file")

    version = name[: -len(ARCHIVE_SUFFIX)]
    if version in (".", ".."):
        raise VersionError(f"Artifact location {location!r} yields an unusable version {version!r}")
    if content_sha256:
        digest = content_sha256.lower()
        if not _SHA256_RE.match(digest):
            raise VersionError(f"Invalid sha256 digest {content_sha256!r}")
        version = f"{version}_{digest[:DIGEST_PREFIX_LEN]}"
    return version
