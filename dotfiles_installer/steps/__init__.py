from .step_10_detect_platform import DetectPlatformStep
from .step_20_update_packages import UpdatePackagesStep
from .step_30_provision_dependencies import ProvisionDependenciesStep
from .step_40_local_overrides import LocalOverridesStep
from .step_50_apply_links import ApplyLinksStep

__all__ = [
    "DetectPlatformStep",
    "UpdatePackagesStep",
    "ProvisionDependenciesStep",
    "LocalOverridesStep",
    "ApplyLinksStep",
]
