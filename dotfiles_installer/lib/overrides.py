from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List, Sequence

from ..config import InstallConfig
from ..errors import InstallerError
from .manifests import Override

logger = logging.getLogger(__name__)


def seed_overrides(overrides: Sequence[Override], *, config: InstallConfig) -> List[Path]:
    """Create local override files from their examples, never overwriting.

    Returns the targets that were created.
    """

    created: List[Path] = []
    for ov in overrides:
        example = config.dotfiles_dir / ov.example
        target = config.expand_path(ov.target)

        if target.exists() or target.is_symlink():
            logger.info("✓ %s already exists", target)
            continue
        if not example.is_file():
            logger.info("ℹ Skipping %s creation (no %s)", target.name, ov.example)
            continue

        if config.dry_run:
            logger.info("Would create %s from %s", target, example)
            created.append(target)
            continue

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(example, target)
        except OSError as e:
            raise InstallerError(f"Could not create {target}: {e}") from e
        logger.info("✓ Created %s", target)
        logger.info("ℹ Please edit %s with your machine-specific settings", target)
        created.append(target)
    return created
