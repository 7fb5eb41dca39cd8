from __future__ import annotations

import dataclasses
import logging

from ..lib.platform_detect import detect_platform
from ..pipeline import InstallCtx

logger = logging.getLogger(__name__)


class DetectPlatformStep:
    step_id = "10_detect_platform"

    def run(self, ctx: InstallCtx) -> InstallCtx:
        logger.info("==> Detecting platform")
        profile = detect_platform()
        logger.info("✓ Detected %s", profile.describe())
        ctx.reports[self.step_id] = profile
        return dataclasses.replace(ctx, profile=profile)
