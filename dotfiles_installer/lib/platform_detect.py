from __future__ import annotations

import enum
import logging
import platform
import shutil
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from ..errors import UnsupportedPlatformError

logger = logging.getLogger(__name__)


class Platform(str, enum.Enum):
    DARWIN = "darwin"
    APT = "apt"
    DNF = "dnf"
    YUM = "yum"
    PACMAN = "pacman"
    UNSUPPORTED = "unsupported"

    @property
    def is_linux(self) -> bool:
        return self in {Platform.APT, Platform.DNF, Platform.YUM, Platform.PACMAN}


# Probe order matters: Fedora ships both dnf and a yum shim.
LINUX_CANDIDATES: Tuple[Tuple[str, Platform], ...] = (
    ("apt-get", Platform.APT),
    ("dnf", Platform.DNF),
    ("yum", Platform.YUM),
    ("pacman", Platform.PACMAN),
)

PACKAGE_MANAGER_EXECUTABLES: Dict[Platform, str] = {
    Platform.DARWIN: "brew",
    **{plat: exe for exe, plat in LINUX_CANDIDATES},
}


def normalize_arch(machine: str) -> str:
    m = machine.lower()
    return {
        "x86_64": "amd64",
        "amd64": "amd64",
        "aarch64": "arm64",
        "arm64": "arm64",
        "armv7l": "armhf",
        "armv6l": "armhf",
    }.get(m, m)


@dataclass(frozen=True)
class PlatformProfile:
    platform: Platform
    system: str
    arch: str
    package_manager: str
    package_manager_path: Optional[str] = None
    evidence: Dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        where = self.package_manager_path or "not installed yet"
        return f"{self.platform.value} ({self.system} {self.arch}, {self.package_manager}: {where})"


def detect_platform(
    *,
    system: Optional[str] = None,
    machine: Optional[str] = None,
    which: Optional[Callable[[str], Optional[str]]] = None,
    candidates: Sequence[Tuple[str, Platform]] = LINUX_CANDIDATES,
) -> PlatformProfile:
    """Pick the provisioning path for this host.

    Darwin always maps to Homebrew, even before brew is installed. Linux maps
    to the first package manager found in ``candidates``. Anything else is
    fatal.
    """

    which = which or shutil.which
    system = system if system is not None else platform.system()
    arch = normalize_arch(machine if machine is not None else platform.machine())

    if system == "Darwin":
        brew = which("brew")
        return PlatformProfile(
            platform=Platform.DARWIN,
            system=system,
            arch=arch,
            package_manager="brew",
            package_manager_path=brew,
            evidence={"system": system, "brew": brew},
        )

    if system == "Linux":
        probed: Dict[str, Optional[str]] = {}
        for exe, plat in candidates:
            found = which(exe)
            probed[exe] = found
            if found:
                logger.debug("Found %s at %s", exe, found)
                return PlatformProfile(
                    platform=plat,
                    system=system,
                    arch=arch,
                    package_manager=exe,
                    package_manager_path=found,
                    evidence={"system": system, "probed": probed},
                )
        names = ", ".join(exe for exe, _ in candidates)
        raise UnsupportedPlatformError(
            f"Unsupported platform: no supported package manager found on Linux (looked for {names})"
        )

    raise UnsupportedPlatformError(f"Unsupported platform: {system or 'unknown'}")
