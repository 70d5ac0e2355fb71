"""Launchable lifecycle: install, promote, hooks and process control."""

from .executables import Executable
from .hooks import HookResult
from .launchable import Launchable

__all__ = ["Executable", "HookResult", "Launchable"]
