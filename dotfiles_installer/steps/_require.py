from __future__ import annotations

from ..errors import InstallerError
from ..lib.platform_detect import PlatformProfile
from ..pipeline import InstallCtx


def require_profile(ctx: InstallCtx, step_id: str) -> PlatformProfile:
    if ctx.profile is None:
        raise InstallerError(f"{step_id} needs a detected platform; run 10_detect_platform first")
    return ctx.profile
