from __future__ import annotations

import dataclasses
import logging

from ..lib.provision import Provisioner
from ..pipeline import InstallCtx
from ._require import require_profile

logger = logging.getLogger(__name__)


class ProvisionDependenciesStep:
    step_id = "30_provision_dependencies"

    def run(self, ctx: InstallCtx) -> InstallCtx:
        profile = require_profile(ctx, self.step_id)

        provisioner = Provisioner(config=ctx.config, profile=profile, extra_path=ctx.search_path)
        report = provisioner.provision(ctx.manifest.dependencies)
        ctx.reports[self.step_id] = report

        logger.info(
            "✓ Dependencies ready (installed=%s present=%s)",
            ",".join(report.installed) or "-",
            ",".join(report.present) or "-",
        )
        return dataclasses.replace(ctx, search_path=tuple(provisioner.extra_path))
