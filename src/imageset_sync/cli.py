"""CLI for the image set synchronizer."""

import argparse
import sys
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from .config import SyncConfig
from .exceptions import SyncError
from .factory import Factory
from .models.sync_step import SyncStep
from .services.syncer import ImageSetSyncer


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description=(
            "Publish registry images to a Google Sheet and Form, and"
            " optionally create ClusterImageSets for them."
        )
    )
    parser.add_argument(
        "-c",
        "--config-file",
        "--file",
        type=Path,
        help=(
            "synchronizer config file (if not given, configuration is read"
            " from the environment)"
        ),
        default=None,
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
        default=False,
    )
    parser.add_argument(
        "-x",
        "--dry-run",
        action="store_true",
        help="Dry run only: list images but do not publish them",
        default=False,
    )
    parser.add_argument(
        "-k",
        "--cluster-image-sets",
        action="store_true",
        help="Create ClusterImageSets for listed images",
        default=False,
    )
    parser.add_argument(
        "-s",
        "--skip",
        help=(
            "do not run these steps (comma-separated list of "
            + ", ".join(x.value for x in SyncStep if x != SyncStep.IMAGES)
            + ")"
        ),
        default="",
    )
    parser.add_argument(
        "-i",
        "--input-file",
        type=Path,
        help="read the registry document from this file",
        default=None,
    )
    parser.add_argument(
        "-o",
        "--dump-file",
        type=Path,
        help="write listed images to this JSON file",
        default=None,
    )
    result = parser.parse_args(argv)
    result.skip = {x.strip() for x in result.skip.split(",") if x.strip()}
    return result


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    # Only flags that were actually given override file or environment
    # settings.
    overrides: dict[str, Any] = {}
    if args.debug:
        overrides["debug"] = True
    if args.dry_run:
        overrides["dry_run"] = True
    if args.cluster_image_sets:
        overrides["cluster"] = {"enabled": True}
    if args.skip:
        overrides["skip_steps"] = sorted(args.skip)
    if args.input_file:
        overrides["input_file"] = args.input_file
    return overrides


def _load_config(args: argparse.Namespace) -> SyncConfig:
    overrides = _overrides(args)
    if args.config_file:
        return SyncConfig.from_file(args.config_file, overrides=overrides)
    return SyncConfig.from_env(overrides=overrides)


def main(argv: list[str] | None = None) -> int:
    """Synchronize images once; return the process exit status."""
    args = _parse_args(argv)
    logger = structlog.get_logger(__name__)
    try:
        cfg = _load_config(args)
    except (ValidationError, OSError, yaml.YAMLError) as exc:
        logger.error(f"Unable to load configuration: {exc}")
        return 1

    with Factory.standalone(cfg) as factory:
        syncer = ImageSetSyncer(cfg, factory=factory)
        try:
            syncer.run()
            if args.dump_file:
                syncer.dump(args.dump_file)
        except SyncError as exc:
            logger.error(
                f"Synchronization failed at step '{exc.step.value}'",
                error=exc.message,
            )
            return 1
    if cfg.dry_run:
        syncer.report()
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())
