"""Data models for the supervisor client."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Service:
    """A supervised service addressed by its directory under the supervisor root."""

    path: str
    name: str
