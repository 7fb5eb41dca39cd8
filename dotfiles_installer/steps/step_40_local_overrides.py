from __future__ import annotations

import logging

from ..lib.overrides import seed_overrides
from ..pipeline import InstallCtx

logger = logging.getLogger(__name__)


class LocalOverridesStep:
    step_id = "40_local_overrides"

    def run(self, ctx: InstallCtx) -> InstallCtx:
        logger.info("==> Setting up local configuration files")
        created = seed_overrides(ctx.manifest.packages.overrides, config=ctx.config)
        ctx.reports[self.step_id] = created
        return ctx
