from __future__ import annotations

import logging

from ..lib.command import search_path
from ..lib.links import apply_links, make_linker
from ..pipeline import InstallCtx

logger = logging.getLogger(__name__)


class ApplyLinksStep:
    step_id = "50_apply_links"

    def run(self, ctx: InstallCtx) -> InstallCtx:
        cfg = ctx.config
        manifest = ctx.manifest.packages
        packages = manifest.select(cfg.packages)

        logger.info("==> Linking configuration files (%s)", cfg.linker)
        report = apply_links(
            packages,
            config=cfg,
            manifest=manifest,
            linker=make_linker(cfg.linker, search_path(ctx.search_path)),
        )
        ctx.reports[self.step_id] = report

        for dest, backup in report.backups:
            logger.info("ℹ Original %s kept at %s", dest, backup)
        logger.info("✓ Configuration files linked successfully")
        return ctx
