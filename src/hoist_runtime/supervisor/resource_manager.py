"""Resource group configuration for launchables."""

from pathlib import Path
from typing import Union

import structlog

from hoist_runtime.core.exceptions import ResourceGroupError
from hoist_runtime.core.models import CgroupConfig

logger = structlog.get_logger()

CPU_PERIOD_USEC = 100000


class CgroupConfigurator:
    """Writes named cgroup v2 groups with CPU and memory limits.

    Applying the same config twice leaves the group unchanged.
    """

    def __init__(self, cgroup_root: Union[str, Path] = "/sys/fs/cgroup"):
        self.cgroup_root = Path(cgroup_root)

    def apply(self, config: CgroupConfig) -> None:
        if not config.name:
            logger.debug("No resource group configured, skipping limits")
            return

        group = self.cgroup_root / config.name
        try:
            group.mkdir(parents=True, exist_ok=True)

            # cpu.max format: "quota period"; 0.5 cpus = 50000 100000
            if config.cpus is not None:
                quota = int(config.cpus * CPU_PERIOD_USEC)
                (group / "cpu.max").write_text(f"{quota} {CPU_PERIOD_USEC}")

            if config.memory_bytes is not None:
                (group / "memory.max").write_text(str(config.memory_bytes))
        except OSError as e:
            raise ResourceGroupError(f"Could not configure cgroup {config.name}: {e}") from e

        logger.info("Applied resource group limits", group=config.name, cpus=config.cpus, memory_bytes=config.memory_bytes)
