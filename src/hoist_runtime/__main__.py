"""CLI entrypoints for hoist (install, activate, launch, halt, executables, manifest)."""

from __future__ import annotations

import argparse
import json
import sys
from functools import partial
from typing import List, Optional

import structlog
from pydantic import ValidationError

from hoist_runtime import __version__
from hoist_runtime.core.config import Settings
from hoist_runtime.core.exceptions import ConfigurationError, HoistError
from hoist_runtime.core.models import CgroupConfig
from hoist_runtime.deploy.fetch import fetch_to_file
from hoist_runtime.launchable.launchable import Launchable
from hoist_runtime.supervisor.resource_manager import CgroupConfigurator
from hoist_runtime.supervisor.sv import SV, ServiceBuilder
from hoist_runtime.utils.logging import bind_launchable_context, setup_logging

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hoist", description="Hoist launchable lifecycle manager")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--id", required=True, help="Launchable identifier")
    common.add_argument("--location", required=True, help="Artifact location (<app>_<version>.tar.gz)")
    common.add_argument("--root-dir", required=True, help="Root directory of the launchable")
    common.add_argument("--run-as", required=True, help="User that owns the install and runs processes")
    common.add_argument("--config-dir", default="/etc/hoist/env", help="Environment directory for chpst -e")
    common.add_argument("--sha256", default=None, help="Expected artifact digest")
    common.add_argument("--cgroup-name", default="", help="Resource group name")
    common.add_argument("--cpus", type=float, default=None, help="CPU cores for the resource group")
    common.add_argument("--memory-bytes", type=int, default=None, help="Memory ceiling for the resource group")

    sub.add_parser("install", parents=[common], help="Fetch and unpack the artifact")
    sub.add_parser("activate", parents=[common], help="Install, point current at it and run post-activate")
    sub.add_parser("launch", parents=[common], help="Apply limits, start services, run enable")
    sub.add_parser("halt", parents=[common], help="Run disable, stop services, point last at it")
    sub.add_parser("executables", parents=[common], help="Print the services as JSON")
    sub.add_parser("manifest", parents=[common], help="Print the app manifest as JSON")
    sub.add_parser("version", parents=[common], help="Print the derived version")
    return parser


def launchable_from_args(args: argparse.Namespace, settings: Settings) -> Launchable:
    try:
        cgroup_config = CgroupConfig(name=args.cgroup_name, cpus=args.cpus, memory_bytes=args.memory_bytes)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid resource group options: {e}") from e
    return Launchable(
        location=args.location,
        id=args.id,
        run_as=args.run_as,
        config_dir=args.config_dir,
        root_dir=args.root_dir,
        chpst=settings.chpst_path,
        cgexec=settings.cgexec_path,
        nolimit=settings.nolimit_path,
        cgroup_config=cgroup_config,
        content_sha256=args.sha256,
        fetch_to_file=partial(
            fetch_to_file,
            max_size_bytes=settings.max_artifact_size_bytes,
            timeout_sec=settings.fetch_timeout_seconds,
        ),
        cgroups=CgroupConfigurator(settings.cgroup_root),
    )


def run(args: argparse.Namespace, settings: Settings) -> int:
    launchable = launchable_from_args(args, settings)
    bind_launchable_context(launchable.id, launchable.version())
    service_builder = ServiceBuilder(settings.runit_root)
    sv = SV(settings.sv_path)

    if args.cmd == "version":
        print(launchable.version())
    elif args.cmd == "install":
        launchable.install()
    elif args.cmd == "activate":
        launchable.install()
        launchable.make_current()
        result = launchable.post_activate().raise_for_error()
        if result.output:
            print(result.output, end="")
    elif args.cmd == "launch":
        launchable.launch(service_builder, sv)
    elif args.cmd == "halt":
        launchable.halt(service_builder, sv)
    elif args.cmd == "executables":
        payload = [
            {
                "name": e.service.name,
                "service_path": e.service.path,
                "exec_path": e.exec_path,
                "command": e.exec_command(),
            }
            for e in launchable.executables(service_builder)
        ]
        print(json.dumps(payload, indent=2))
    elif args.cmd == "manifest":
        print(launchable.app_manifest().model_dump_json(indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings()
    except ValidationError as e:
        setup_logging(stream=sys.stderr)
        logger.error("Invalid configuration", command=args.cmd, error=str(e), code="config")
        return 1
    # stdout carries command output
    setup_logging(settings.log_level, settings.log_format, stream=sys.stderr)
    try:
        return run(args, settings)
    except HoistError as e:
        logger.error("Command failed", command=args.cmd, error=str(e), code=e.code)
        return 1


if __name__ == "__main__":
    sys.exit(main())
