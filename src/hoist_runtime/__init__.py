"""Hoist Runtime - versioned artifact lifecycle manager for supervised launchables."""

__version__ = "0.1.0"

from hoist_runtime.core.config import Settings
from hoist_runtime.launchable.launchable import Launchable

__all__ = ["Settings", "Launchable", "__version__"]
