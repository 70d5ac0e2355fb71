"""Reader for app-manifest.yaml files shipped inside artifacts."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from hoist_runtime.core.exceptions import ManifestError
from hoist_runtime.core.models import AppManifest

MANIFEST_NAMES = ("app-manifest.yaml", "app-manifest.yml")


def find_manifest(install_dir: Path) -> Optional[Path]:
    """Return the first manifest file present in ``install_dir``, if any."""
    for name in MANIFEST_NAMES:
        candidate = Path(install_dir) / name
        if candidate.is_file():
            return candidate
    return None


def manifest_from_path(path: Path) -> AppManifest:
    """Parse a manifest file.

    Raises:
        ManifestError: If the file cannot be read or is not a valid manifest
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ManifestError(f"Could not read app manifest {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ManifestError(f"App manifest {path} must be a mapping, got {type(data).__name__}")
    try:
        return AppManifest.model_validate(data)
    except ValidationError as e:
        raise ManifestError(f"Invalid app manifest {path}: {e}") from e
