from __future__ import annotations

import logging

from ..lib.command import search_path
from ..lib.pkg import pkg_update
from ..pipeline import InstallCtx
from ._require import require_profile

logger = logging.getLogger(__name__)


class UpdatePackagesStep:
    step_id = "20_update_packages"

    def run(self, ctx: InstallCtx) -> InstallCtx:
        profile = require_profile(ctx, self.step_id)
        cfg = ctx.config

        logger.info("==> Updating %s", profile.package_manager)
        pkg_update(
            profile.platform,
            use_sudo=cfg.use_sudo,
            path=search_path(ctx.search_path),
            dry_run=cfg.dry_run,
        )
        logger.info("✓ %s updated", profile.package_manager)
        return ctx
