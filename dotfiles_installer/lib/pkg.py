from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Sequence

from ..errors import MissingToolError
from .command import path_env, run_cmd, which
from .platform_detect import PACKAGE_MANAGER_EXECUTABLES, Platform

logger = logging.getLogger(__name__)


def _privileged(platform: Platform, argv: List[str], *, use_sudo: bool) -> List[str]:
    # Homebrew refuses to run as root; everything else needs it.
    if platform.is_linux and use_sudo:
        return ["sudo", *argv]
    return argv


def install_argv(platform: Platform, packages: Sequence[str], *, use_sudo: bool = True) -> List[str]:
    if platform is Platform.DARWIN:
        argv = ["brew", "install"]
    elif platform is Platform.APT:
        argv = ["apt-get", "install", "-y"]
    elif platform is Platform.DNF:
        argv = ["dnf", "install", "-y"]
    elif platform is Platform.YUM:
        argv = ["yum", "install", "-y"]
    elif platform is Platform.PACMAN:
        argv = ["pacman", "-S", "--needed", "--noconfirm"]
    else:
        raise ValueError(f"No package manager for platform {platform.value}")
    return _privileged(platform, [*argv, *packages], use_sudo=use_sudo)


def update_argv(platform: Platform, *, use_sudo: bool = True) -> List[str]:
    argv = {
        Platform.DARWIN: ["brew", "update"],
        Platform.APT: ["apt-get", "update"],
        Platform.DNF: ["dnf", "makecache"],
        Platform.YUM: ["yum", "makecache"],
        Platform.PACMAN: ["pacman", "-Sy"],
    }.get(platform)
    if argv is None:
        raise ValueError(f"No package manager for platform {platform.value}")
    return _privileged(platform, argv, use_sudo=use_sudo)


def pkg_install(
    platform: Platform,
    packages: Sequence[str],
    *,
    use_sudo: bool = True,
    env: Optional[Mapping[str, str]] = None,
    dry_run: bool = False,
) -> None:
    if not packages:
        return
    run_cmd(install_argv(platform, packages, use_sudo=use_sudo), env=env, interactive=True, dry_run=dry_run)


def pkg_update(platform: Platform, *, use_sudo: bool = True, path: Optional[str] = None, dry_run: bool = False) -> None:
    """Refresh the package index of the platform's package manager.

    ``path`` replaces PATH for the lookup and the command, so a package
    manager installed earlier in the run (e.g. /opt/homebrew/bin/brew) is found.
    """

    exe = PACKAGE_MANAGER_EXECUTABLES.get(platform)
    if exe is None:
        raise ValueError(f"No package manager for platform {platform.value}")
    if which(exe, path=path) is None and not dry_run:
        hint = "Run the 'provision' target first." if platform is Platform.DARWIN else None
        raise MissingToolError(exe, hint)
    run_cmd(update_argv(platform, use_sudo=use_sudo), env=path_env(path), interactive=True, dry_run=dry_run)
