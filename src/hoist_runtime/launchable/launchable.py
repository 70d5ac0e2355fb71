"""A hoist launchable: one deployable unit installed under a root directory."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import structlog

from hoist_runtime.core.exceptions import (
    HoistError,
    LifecycleError,
    ManifestNotFoundError,
    NotInstalledError,
    SuperviseOkMissing,
)
from hoist_runtime.core.identity import IdentityResolver, PasswdIdentityResolver
from hoist_runtime.core.models import AppManifest, CgroupConfig
from hoist_runtime.deploy.fetch import Fetcher, fetch_to_file
from hoist_runtime.deploy.installer import install_artifact
from hoist_runtime.deploy.pointers import flip_symlink
from hoist_runtime.deploy.version import derive_version
from hoist_runtime.launchable.executables import Executable, discover_executables
from hoist_runtime.launchable.hooks import DISABLE, ENABLE, POST_ACTIVATE, HookResult, invoke_bin_script
from hoist_runtime.launchable.manifest import find_manifest, manifest_from_path
from hoist_runtime.supervisor.resource_manager import CgroupConfigurator
from hoist_runtime.supervisor.sv import SV, ServiceBuilder

logger = structlog.get_logger()

INSTALLS_DIR = "installs"
CURRENT = "current"
LAST = "last"


@dataclass
class Launchable:
    """A particular install of a hoist artifact.

    ``root_dir`` belongs to this launchable alone and holds ``installs/``
    plus the ``current`` and ``last`` pointers.
    """

    location: str  # where the artifact is fetched from
    id: str  # stable across versions; prefixes supervisor service names
    run_as: str
    config_dir: str  # passed to chpst -e
    root_dir: Path
    chpst: str = "/usr/bin/chpst"
    cgexec: str = "/usr/bin/cgexec"
    nolimit: str = "/usr/bin/nolimit"
    cgroup_config: CgroupConfig = field(default_factory=CgroupConfig)
    content_sha256: Optional[str] = None
    fetch_to_file: Fetcher = fetch_to_file
    identity: IdentityResolver = field(default_factory=PasswdIdentityResolver)
    cgroups: CgroupConfigurator = field(default_factory=CgroupConfigurator)

    launchable_type = "hoist"

    def __post_init__(self):
        # pointers hold absolute targets
        self.root_dir = Path(self.root_dir).absolute()

    # Paths

    def version(self) -> str:
        return derive_version(self.location, self.content_sha256)

    def install_dir(self) -> Path:
        return self.root_dir / INSTALLS_DIR / self.version()

    def current_dir(self) -> Path:
        return self.root_dir / CURRENT

    def last_dir(self) -> Path:
        return self.root_dir / LAST

    def _ids(self) -> Tuple[int, int]:
        return self.identity.ids(self.run_as)

    # Install and promotion

    def installed(self) -> bool:
        return self.install_dir().exists()

    def install(self) -> bool:
        """Fetch and unpack the artifact; a no-op if this version is installed.

        Returns:
            True if an install was performed
        """
        if self.installed():
            logger.debug("Already installed", launchable_id=self.id, version=self.version())
            return False

        uid, gid = self._ids()
        logger.info("Installing launchable", launchable_id=self.id, version=self.version(), location=self.location)
        try:
            return install_artifact(
                self.location,
                self.install_dir(),
                fetch=self.fetch_to_file,
                uid=uid,
                gid=gid,
                content_sha256=self.content_sha256,
            )
        except HoistError as e:
            logger.error("Install failed", launchable_id=self.id, version=self.version(), error=str(e))
            raise

    def make_current(self) -> None:
        self._flip(self.current_dir())

    def make_last(self) -> None:
        self._flip(self.last_dir())

    def _flip(self, link_path: Path) -> None:
        uid, gid = self._ids()
        flip_symlink(self.root_dir, link_path, self.install_dir(), uid, gid, prefix=self.id)

    def app_manifest(self) -> AppManifest:
        if not self.installed():
            raise NotInstalledError(f"{self.id} has not been installed yet")
        path = find_manifest(self.install_dir())
        if path is None:
            raise ManifestNotFoundError(f"No app manifest was found in the hoist launchable {self.id}")
        return manifest_from_path(path)

    # Hooks

    def _invoke_hook(self, script: str) -> HookResult:
        return invoke_bin_script(self.install_dir(), script, self.chpst, self.run_as, self.config_dir)

    def enable(self) -> HookResult:
        return self._invoke_hook(ENABLE)

    def disable(self) -> HookResult:
        return self._invoke_hook(DISABLE)

    def post_activate(self) -> HookResult:
        return self._invoke_hook(POST_ACTIVATE)

    # Processes

    def executables(self, service_builder: ServiceBuilder) -> List[Executable]:
        if not self.installed():
            raise NotInstalledError(f"{self.id} is not installed")
        return discover_executables(
            self.install_dir(),
            self.id,
            service_builder,
            chpst=self.chpst,
            cgexec=self.cgexec,
            cgroup_config=self.cgroup_config,
            nolimit=self.nolimit,
            run_as=self.run_as,
            config_dir=self.config_dir,
        )

    def start(self, service_builder: ServiceBuilder, sv: SV) -> None:
        """Restart every service; stops at the first failure."""
        for executable in self.executables(service_builder):
            try:
                sv.restart(executable.service)
            except SuperviseOkMissing:
                # the supervisor has not picked up a new service directory yet
                logger.info("Service not yet supervised", launchable_id=self.id, service=executable.service.name)

    def stop(self, service_builder: ServiceBuilder, sv: SV) -> None:
        """Request a stop for every service; stops at the first failure."""
        for executable in self.executables(service_builder):
            sv.stop(executable.service)

    def launch(self, service_builder: ServiceBuilder, sv: SV) -> None:
        """Apply resource limits, start all services, then run the enable hook."""
        logger.info("Launching", launchable_id=self.id, version=self.version())
        try:
            self.cgroups.apply(self.cgroup_config)
        except HoistError as e:
            raise LifecycleError(f"Could not configure cgroup {self.cgroup_config.name}: {e}", code="cgroup") from e

        try:
            self.start(service_builder, sv)
        except HoistError as e:
            raise LifecycleError(f"Could not launch {self.id}: {e}", code="start") from e

        try:
            self.enable().raise_for_error()
        except HoistError as e:
            raise LifecycleError(f"Could not enable {self.id}: {e}", code="enable") from e

    def halt(self, service_builder: ServiceBuilder, sv: SV) -> None:
        """Run the disable hook, stop all services and point ``last`` here."""
        logger.info("Halting", launchable_id=self.id, version=self.version())
        try:
            self.disable().raise_for_error()
        except HoistError as e:
            raise LifecycleError(f"Could not disable {self.id}: {e}", code="disable") from e

        try:
            self.stop(service_builder, sv)
        except HoistError as e:
            raise LifecycleError(f"Could not halt {self.id}: {e}", code="stop") from e

        try:
            self.make_last()
        except HoistError as e:
            raise LifecycleError(f"Could not update last pointer for {self.id}: {e}", code="make_last") from e
