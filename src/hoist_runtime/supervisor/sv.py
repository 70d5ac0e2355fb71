"""Client for a runit-style supervisor driven through the ``sv`` binary."""

import os
import subprocess
from typing import List

import structlog

from hoist_runtime.core.exceptions import SuperviseOkMissing, SupervisorError
from .models import Service

logger = structlog.get_logger()

# sv reports a service whose supervise/ok has not been created yet like this
SUPERVISE_OK_MISSING_MARKER = "file does not exist"


class ServiceBuilder:
    """Resolves service names to directories under the supervisor root.

    Service directories themselves are written by whoever configures the
    supervisor; this only computes where they live.
    """

    def __init__(self, runit_root: str):
        self.runit_root = runit_root

    def service(self, name: str) -> Service:
        return Service(path=os.path.join(self.runit_root, name), name=name)


class SV:
    """Issues start/stop/restart/status requests for supervised services."""

    def __init__(self, bin_path: str = "/usr/bin/sv"):
        self.bin_path = bin_path

    def start(self, service: Service) -> str:
        return self._exec_on_service("start", service)

    def stop(self, service: Service) -> str:
        # no -w: waiting here could kill the caller if it is itself supervised
        return self._exec_on_service("stop", service)

    def restart(self, service: Service) -> str:
        return self._exec_on_service("restart", service)

    def status(self, service: Service) -> str:
        return self._exec_on_service("status", service)

    def _exec_on_service(self, command: str, service: Service) -> str:
        cmd: List[str] = [self.bin_path, command, service.path]
        logger.info("Supervisor request", command=command, service=service.name)
        try:
            result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
        except OSError as e:
            raise SupervisorError(f"Could not run {self.bin_path} {command} {service.path}: {e}") from e

        output = result.stdout or ""
        if result.returncode != 0:
            if SUPERVISE_OK_MISSING_MARKER in output:
                raise SuperviseOkMissing(f"supervise/ok missing for {service.name}", output=output)
            raise SupervisorError(
                f"{self.bin_path} {command} {service.path} exited with {result.returncode}: {output.strip()}",
                output=output,
            )
        return output
