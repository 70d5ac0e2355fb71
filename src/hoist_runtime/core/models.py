"""Core data models for Hoist Runtime."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CgroupConfig(BaseModel):
    """Resource limits for a named resource group."""

    name: str = Field("", description="Resource group name; empty disables limits")
    cpus: Optional[float] = Field(None, gt=0, description="CPU cores available to the group")
    memory_bytes: Optional[int] = Field(None, gt=0, description="Memory ceiling in bytes")


class AppManifest(BaseModel):
    """Application manifest shipped as app-manifest.yaml in an artifact."""

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = Field(None, description="Application name")
    version: Optional[str] = Field(None, description="Application version")
    ports: Dict[int, List[str]] = Field(default_factory=dict, description="Port number to port options")
    config: Dict[str, Any] = Field(default_factory=dict, description="Free-form application config")
