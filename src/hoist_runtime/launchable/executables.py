"""Discovery of the processes an install provides through bin/launch."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

from hoist_runtime.core.exceptions import LaunchEntryError
from hoist_runtime.core.models import CgroupConfig
from hoist_runtime.supervisor.models import Service
from hoist_runtime.supervisor.sv import ServiceBuilder

LAUNCH_ENTRY = os.path.join("bin", "launch")


@dataclass(frozen=True)
class Executable:
    """One OS process a launchable runs under the supervisor."""

    service: Service
    exec_path: str
    chpst: str
    cgexec: str
    cgroup_config: CgroupConfig
    nolimit: str
    run_as: str
    config_dir: str

    def exec_command(self) -> List[str]:
        """Argv a service run script should exec to start this process."""
        cmd: List[str] = []
        if self.cgroup_config.name:
            cmd += [self.cgexec, "-g", f"cpu,memory:{self.cgroup_config.name}"]
        cmd += [self.chpst, "-u", self.run_as, "-e", self.config_dir, self.nolimit, self.exec_path]
        return cmd


def service_name(launchable_id: str, entry_name: str) -> str:
    return f"{launchable_id}__{entry_name}"


def discover_executables(
    install_dir: Path,
    launchable_id: str,
    service_builder: ServiceBuilder,
    *,
    chpst: str,
    cgexec: str,
    cgroup_config: CgroupConfig,
    nolimit: str,
    run_as: str,
    config_dir: str,
) -> List[Executable]:
    """List the services defined by ``<install_dir>/bin/launch``.

    A regular file is a single service; a directory holds one service per
    direct child, in name order.
    """
    launch_path = Path(install_dir) / LAUNCH_ENTRY
    try:
        if launch_path.is_dir():
            service_dir = launch_path
            entries = sorted(entry.name for entry in os.scandir(launch_path))
        elif launch_path.exists():
            service_dir = launch_path.parent
            entries = [launch_path.name]
        else:
            raise LaunchEntryError(f"{launch_path} does not exist")
    except OSError as e:
        raise LaunchEntryError(f"Could not read {launch_path}: {e}") from e

    executables = []
    for entry in entries:
        name = service_name(launchable_id, entry)
        executables.append(
            Executable(
                service=service_builder.service(name),
                exec_path=str(service_dir / entry),
                chpst=chpst,
                cgexec=cgexec,
                cgroup_config=cgroup_config,
                nolimit=nolimit,
                run_as=run_as,
                config_dir=config_dir,
            )
        )
    return executables
