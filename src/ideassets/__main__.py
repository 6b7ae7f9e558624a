"""CLI for preparing IDE build assets.

Usage:
    python -m ideassets aapt2 --project-dir . --build-dir build arm64-v8a x86_64
    python -m ideassets stage --output-dir build/assets tooling-api-all.jar
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from ideassets.assets import (
    DEFAULT_BASE_ASSETS_PATH,
    android_jar_path,
    resolve_aapt2_asset_dirs,
    stage_file_to_assets,
)
from ideassets.config import load_fdroid_config
from ideassets.errors import IdeAssetsError
from ideassets.models import AAPT2_CHECKSUMS
from ideassets.observability import StructuredLogger
from ideassets.policy import Policy


def cmd_aapt2(args: argparse.Namespace) -> None:
    logger = StructuredLogger()
    policy = Policy(
        network_mode="offline" if args.offline else "online",
        retries=args.retries,
        timeout=args.timeout,
    )
    report = resolve_aapt2_asset_dirs(
        args.flavors or sorted(AAPT2_CHECKSUMS),
        build_dir=args.build_dir,
        fdroid=load_fdroid_config(args.project_dir),
        policy=policy,
        logger=logger,
    )
    if args.report is not None:
        report.to_json(args.report)
    if args.log is not None:
        logger.to_json_lines(args.log)
    for flavor, asset_dir in report.asset_dirs().items():
        print(f"{flavor}: {asset_dir}")


def cmd_stage(args: argparse.Namespace) -> None:
    source = android_jar_path(args.sdk_dir, args.input) if args.sdk_dir else Path(args.input)
    target = stage_file_to_assets(
        source,
        output_dir=args.output_dir,
        base_assets_path=args.base_assets_path,
    )
    print(f"Staged {source} -> {target}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="IDE asset build tooling")
    sub = parser.add_subparsers(dest="command", required=True)

    aapt2_p = sub.add_parser("aapt2", help="Resolve the aapt2 asset directory of each flavor")
    aapt2_p.add_argument("flavors", nargs="*", help="Flavors to resolve (default: all pinned)")
    aapt2_p.add_argument("--project-dir", type=Path, default=Path("."))
    aapt2_p.add_argument("--build-dir", type=Path, default=Path("build"))
    aapt2_p.add_argument("--offline", action="store_true", help="Forbid network access")
    aapt2_p.add_argument("--retries", type=int, default=2)
    aapt2_p.add_argument("--timeout", type=float, default=60.0)
    aapt2_p.add_argument("--report", type=Path, help="Write a JSON resolution report")
    aapt2_p.add_argument("--log", type=Path, help="Write structured logs as JSON lines")

    stage_p = sub.add_parser("stage", help="Copy a file into an asset directory")
    stage_p.add_argument("input", help="File to stage, or compile SDK level with --sdk-dir")
    stage_p.add_argument("--output-dir", type=Path, required=True)
    stage_p.add_argument("--base-assets-path", default=DEFAULT_BASE_ASSETS_PATH)
    stage_p.add_argument("--sdk-dir", type=Path, help="Stage android.jar from this SDK")

    args = parser.parse_args(argv)
    try:
        if args.command == "aapt2":
            cmd_aapt2(args)
        elif args.command == "stage":
            cmd_stage(args)
    except IdeAssetsError as exc:
        print(f"error[{exc.code}]: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
