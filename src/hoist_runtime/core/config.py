"""Configuration management for Hoist Runtime."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration settings.

    Every field can be overridden with a ``HOIST_`` prefixed environment
    variable, e.g. ``HOIST_RUNIT_ROOT=/etc/service``.
    """

    model_config = SettingsConfigDict(
        env_prefix="HOIST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Helper binaries
    chpst_path: str = Field("/usr/bin/chpst", description="Privilege-dropping executor")
    cgexec_path: str = Field("/usr/bin/cgexec", description="Resource-group executor")
    nolimit_path: str = Field("/usr/bin/nolimit", description="Wrapper lifting rlimits before exec")
    sv_path: str = Field("/usr/bin/sv", description="Supervisor control binary")

    # Supervisor and resource groups
    runit_root: str = Field("/var/service", description="Directory the supervisor scans for services")
    cgroup_root: str = Field("/sys/fs/cgroup", description="Mounted cgroup v2 hierarchy")

    # Fetch limits
    max_artifact_size_mb: int = Field(1024, description="Maximum artifact size in MB")
    fetch_timeout_seconds: float = Field(300.0, description="Timeout for a single fetch")

    # Observability
    log_level: str = Field("INFO")
    log_format: str = Field("json")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {v}")
        return v

    @property
    def max_artifact_size_bytes(self) -> int:
        return self.max_artifact_size_mb * 1024 * 1024
