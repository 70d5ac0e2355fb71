"""Optional lifecycle scripts shipped in an install's bin/ directory."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from hoist_runtime.core.exceptions import HookError

logger = structlog.get_logger()

ENABLE = "enable"
DISABLE = "disable"
POST_ACTIVATE = "post-activate"


@dataclass
class HookResult:
    """Outcome of a hook invocation.

    ``output`` holds merged stdout/stderr whether or not the script
    succeeded. A script that is not present is a successful result with
    ``found`` False.
    """

    script: str
    found: bool = False
    output: str = ""
    returncode: Optional[int] = None
    error: Optional[HookError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> "HookResult":
        if self.error is not None:
            raise self.error
        return self


def invoke_bin_script(install_dir: Path, script: str, chpst: str, run_as: str, config_dir: str) -> HookResult:
    """Run ``<install_dir>/bin/<script>`` as ``run_as`` through ``chpst``."""
    cmd_path = Path(install_dir) / "bin" / script
    if not os.path.lexists(cmd_path):
        logger.debug("No hook script present", script=script, path=str(cmd_path))
        return HookResult(script=script)

    cmd = [chpst, "-u", run_as, "-e", config_dir, str(cmd_path)]
    logger.info("Running hook script", script=script, path=str(cmd_path), user=run_as)
    try:
        proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    except OSError as e:
        return HookResult(
            script=script,
            found=True,
            error=HookError(f"Could not execute {script} hook {cmd_path}: {e}", code=script),
        )

    output = proc.stdout.decode("utf-8", errors="replace")
    logger.debug("Hook script output", script=script, returncode=proc.returncode, output=output)
    result = HookResult(script=script, found=True, output=output, returncode=proc.returncode)
    if proc.returncode != 0:
        result.error = HookError(
            f"{script} hook {cmd_path} exited with {proc.returncode}",
            output=output,
            returncode=proc.returncode,
            code=script,
        )
    return result
