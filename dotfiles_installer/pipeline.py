from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from .config import InstallConfig
from .errors import ConfigError
from .lib.manifests import Manifest
from .lib.platform_detect import PlatformProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallCtx:
    """What flows downstream between steps.

    ``profile`` is filled in once by the detect step; later steps get a new
    context instead of mutating this one. ``reports`` collects per-step results.
    ``search_path`` holds directories found outside PATH while provisioning
    (e.g. a freshly installed /opt/homebrew/bin) for the steps that follow.
    """

    config: InstallConfig
    manifest: Manifest
    profile: Optional[PlatformProfile] = None
    search_path: Tuple[str, ...] = ()
    reports: Dict[str, Any] = field(default_factory=dict)


class Step(Protocol):
    """A single idempotent step."""

    step_id: str

    def run(self, ctx: InstallCtx) -> InstallCtx:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ctx: InstallCtx
    ran_steps: List[str]


def run_pipeline(
    *,
    ctx: InstallCtx,
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps in order. The first failure stops the sequence."""

    ids = [s.step_id for s in steps]
    for wanted in (start_at, stop_after):
        if wanted is not None and wanted not in ids:
            raise ConfigError(f"Unknown step {wanted!r} (expected one of {', '.join(ids)})")

    ran: List[str] = []
    started = start_at is None

    for step in steps:
        if not started:
            if step.step_id == start_at:
                started = True
            else:
                continue

        logger.debug("Running step %s", step.step_id)
        try:
            ctx = step.run(ctx)
        except Exception:
            logger.debug("Step %s failed", step.step_id, exc_info=True)
            raise
        ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.debug("Stopping after %s", stop_after)
            break

    return PipelineResult(ctx=ctx, ran_steps=ran)
