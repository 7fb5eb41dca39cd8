from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional

from .config import CONFLICT_MODES, LINKERS, InstallConfig, default_log_path, load_config
from .errors import InstallerError
from .lib.manifests import load_manifest
from .logging_utils import configure_logging
from .pipeline import InstallCtx, PipelineResult, Step, run_pipeline
from .steps import (
    ApplyLinksStep,
    DetectPlatformStep,
    LocalOverridesStep,
    ProvisionDependenciesStep,
    UpdatePackagesStep,
)

logger = logging.getLogger(__name__)


TARGETS: Dict[str, List[type]] = {
    "install": [DetectPlatformStep, ProvisionDependenciesStep, LocalOverridesStep, ApplyLinksStep],
    "detect": [DetectPlatformStep],
    "provision": [DetectPlatformStep, ProvisionDependenciesStep],
    "update": [DetectPlatformStep, UpdatePackagesStep],
    "overrides": [LocalOverridesStep],
    "link": [LocalOverridesStep, ApplyLinksStep],
}


def build_steps(target: str) -> List[Step]:
    return [cls() for cls in TARGETS[target]]


def run(*, target: str, config: InstallConfig, start_at: Optional[str] = None, stop_after: Optional[str] = None) -> PipelineResult:
    """Run one named target against an already-built config."""

    ctx = InstallCtx(config=config, manifest=load_manifest(config.manifests_dir))
    if config.dry_run:
        logger.info("ℹ Dry run: commands are logged, nothing is changed")

    result = run_pipeline(ctx=ctx, steps=build_steps(target), start_at=start_at, stop_after=stop_after)

    if target == "install":
        logger.info("")
        logger.info("==========================================")
        logger.info("Dotfiles installation complete!")
        logger.info("Edit ~/.config/git/config.user with your Git identity.")
    return result


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="dotfiles-installer", description="Link dotfiles and bootstrap their tools.")
    p.add_argument("target", nargs="?", default="install", choices=sorted(TARGETS), help="What to run (default: install)")
    p.add_argument("--config", default=None, help="Installer config (YAML); default: <dotfiles>/installer.yaml if present")
    p.add_argument("--log", default=None, help="Path to installer log")
    p.add_argument("--home", default=None, help="Home directory to link into (default: $HOME)")
    p.add_argument("--dotfiles-dir", default=None, help="Dotfiles repository root")
    p.add_argument("--linker", choices=LINKERS, default=None, help="Symlink backend")
    p.add_argument("--on-conflict", choices=CONFLICT_MODES, default=None, help="What to do with existing files")
    p.add_argument("--package", action="append", dest="packages", default=None, help="Only link this package (repeatable)")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 30_provision_dependencies)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("-v", "--verbose", action="store_true", help="Show debug output on the console")

    args = p.parse_args(argv)

    home = Path(args.home).expanduser() if args.home else None
    level = logging.DEBUG if args.verbose else logging.INFO

    # The config decides where the log goes, so it is loaded first.
    try:
        config = load_config(
            args.config,
            home=home,
            dotfiles_dir=Path(args.dotfiles_dir).expanduser() if args.dotfiles_dir else None,
            overrides={
                "log_path": args.log,
                "linker": args.linker,
                "on_conflict": args.on_conflict,
                "packages": args.packages,
                "dry_run": True if args.dry_run else None,
            },
        )
    except InstallerError as e:
        configure_logging(log_path=args.log or str(default_log_path(home or Path.home())), level=level)
        logger.error("✗ %s", e)
        return 1

    configure_logging(log_path=str(config.log_path), level=level)
    try:
        run(target=args.target, config=config, start_at=args.start_at, stop_after=args.stop_after)
    except InstallerError as e:
        logger.error("✗ %s", e)
        return 1
    except KeyboardInterrupt:
        logger.error("✗ Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
