from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from audion_lifecycle.config import LifecycleConfig, load_config, resolve_profile_configs
from audion_lifecycle.errors import ConfigError
from audion_lifecycle.host import InProcessHost
from audion_lifecycle.migration import MigrationBanner, MigrationCoordinator
from audion_lifecycle.navigation import BackNavigationStateMachine, CallbackSource, ViewHistory
from audion_lifecycle.observability.logging import configure_logging
from audion_lifecycle.permissions import PermissionGate
from audion_lifecycle.runtime.headless import HeadlessSubsystems
from audion_lifecycle.runtime.startup import StartupSequencer
from audion_lifecycle.storage import JsonFileFlagStore


logger = logging.getLogger(__name__)

_COMMANDS = {"run", "print-config", "migration-status", "reset-migration"}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="audion-lifecycle",
        description="Audion application lifecycle: startup, cover migration, back navigation",
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )

    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--config",
        type=Path,
        help="Path to a YAML config file (skips profile resolution)",
    )
    group.add_argument(
        "--profile",
        choices=["app", "dev"],
        default="app",
        help="Config profile under ./configs (app loads app.yaml; dev overlays dev.yaml)",
    )

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("run", help="Run startup headless, print the report, then shut down")
    sub.add_parser("print-config", help="Load and print the expanded config")
    sub.add_parser("migration-status", help="Show whether the cover migration has completed")
    sub.add_parser("reset-migration", help="Clear the migration flag so the next launch reruns it")
    return parser


def _load(ns: argparse.Namespace) -> tuple[LifecycleConfig, list[Path]]:
    if ns.config is not None:
        paths = [ns.config]
    else:
        paths = resolve_profile_configs(profile=ns.profile, configs_dir=Path.cwd() / "configs")
    raw = load_config(paths)
    return LifecycleConfig.from_mapping(raw), paths


def build_sequencer(cfg: LifecycleConfig, *, host: InProcessHost, subsystems: HeadlessSubsystems) -> StartupSequencer:
    """Wire the lifecycle components for a headless run."""

    history: ViewHistory[str] = ViewHistory("tracks")
    open_layers: dict[str, bool] = {"context_menu": False, "full_screen": False, "queue_panel": False, "search": False}

    def source(name: str) -> CallbackSource:
        return CallbackSource(
            name=name,
            active=lambda: open_layers[name],
            close=lambda: open_layers.__setitem__(name, False),
        )

    navigation = BackNavigationStateMachine.standard(
        context_menu=source("context_menu"),
        full_screen=source("full_screen"),
        queue_panel=source("queue_panel"),
        search_overlay=source("search"),
        history=history,
    )

    migration = MigrationCoordinator(
        migrate_assets=subsystems.migrate_assets,
        flags=JsonFileFlagStore(cfg.state_file),
        banner=MigrationBanner(),
        flag_key=cfg.migration.flag_key,
        success_dismiss_s=cfg.migration.success_dismiss_s,
        failure_dismiss_s=cfg.migration.failure_dismiss_s,
    )

    permissions = PermissionGate(
        request_capability=subsystems.request_capability,
        open_host_settings=subsystems.open_host_settings,
        capability=cfg.permissions.capability,
        recheck_delay_s=cfg.permissions.recheck_delay_s,
    )

    return StartupSequencer(
        subsystems=subsystems,
        host=host,
        migration=migration,
        navigation=navigation,
        permissions=permissions,
    )


async def _run_headless(cfg: LifecycleConfig) -> dict[str, Any]:
    host = InProcessHost()
    sequencer = build_sequencer(cfg, host=host, subsystems=HeadlessSubsystems())
    try:
        report = await sequencer.run()
        await sequencer.drain()
    finally:
        await sequencer.shutdown()
    return report.to_dict()


def _write_json(obj: Any) -> None:
    sys.stdout.write(json.dumps(obj, ensure_ascii=False, indent=2))
    sys.stdout.write("\n")


def main(argv: Sequence[str] | None = None) -> int:
    """Console entrypoint (``audion-lifecycle``)."""

    argv_list = list(argv) if argv is not None else sys.argv[1:]

    # Default to `run` when no subcommand is given.
    if not any(a in _COMMANDS for a in argv_list) and not any(a in {"-h", "--help"} for a in argv_list):
        argv_list = [*argv_list, "run"]

    parser = _build_parser()
    try:
        ns = parser.parse_args(argv_list)
    except SystemExit as e:
        code = e.code
        return int(code) if isinstance(code, int) else 1

    configure_logging(level=ns.log_level)

    try:
        cfg, paths = _load(ns)
        logger.info("config_loaded", extra={"config_files": [str(p) for p in paths]})

        if ns.command == "print-config":
            _write_json(cfg.to_dict())
            return 0

        flags = JsonFileFlagStore(cfg.state_file)
        if ns.command == "migration-status":
            _write_json({"flag_key": cfg.migration.flag_key, "migrated": flags.get(cfg.migration.flag_key)})
            return 0

        if ns.command == "reset-migration":
            flags.set(cfg.migration.flag_key, False)
            logger.info("migration_flag_reset", extra={"flag_key": cfg.migration.flag_key})
            return 0

        _write_json(asyncio.run(_run_headless(cfg)))
        return 0

    except ConfigError as e:
        logger.error("config_error", extra={"error": str(e)})
        sys.stderr.write(f"ConfigError: {e}\n")
        return 2
    except Exception as e:  # noqa: BLE001
        logger.exception("fatal_error")
        sys.stderr.write(f"Fatal error: {e}\n")
        return 1
