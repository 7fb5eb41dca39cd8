from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..config import InstallConfig
from ..errors import ProvisionError
from .command import run_cmd, search_path, shell_argv, which
from .manifests import Dependency, InstallAction, PresenceCheck
from .pkg import pkg_install
from .platform_detect import PlatformProfile

logger = logging.getLogger(__name__)


def current_login_shell() -> Optional[str]:
    """Login shell from the password database (reflects chsh immediately)."""
    try:
        import pwd
    except ImportError:  # pragma: no cover - not a POSIX host
        return None
    try:
        return pwd.getpwuid(os.getuid()).pw_shell
    except KeyError:
        return None


@dataclass
class ProvisionReport:
    present: List[str] = field(default_factory=list)
    installed: List[str] = field(default_factory=list)
    not_required: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.installed)


class Provisioner:
    """Ensure each dependency is present, installing only what is missing."""

    def __init__(
        self,
        *,
        config: InstallConfig,
        profile: PlatformProfile,
        extra_path: Sequence[str] = (),
    ) -> None:
        self.config = config
        self.profile = profile
        # Directories discovered via fallback paths (e.g. /opt/homebrew/bin right
        # after Homebrew installs itself) that later commands need on PATH.
        self.extra_path: List[str] = list(extra_path)

    def _which(self, name: str) -> Optional[str]:
        return which(name, path=search_path(self.extra_path))

    def _env(self, extra: Dict[str, str]) -> Dict[str, str]:
        env = {k: self.config.expand(v) for k, v in extra.items()}
        path = search_path(self.extra_path)
        if path is not None:
            env.setdefault("PATH", path)
        return env

    def is_present(self, check: PresenceCheck) -> bool:
        if check.kind == "command":
            if self._which(str(check.value)):
                return True
            for raw in check.paths:
                p = self.config.expand_path(raw)
                if p.exists():
                    if str(p.parent) not in self.extra_path:
                        self.extra_path.append(str(p.parent))
                    return True
            return False

        if check.kind == "path":
            return self.config.expand_path(str(check.value)).exists()

        if check.kind == "run":
            argv = [self.config.expand(a) for a in check.value]
            if self._which(argv[0]) is None:
                return False
            # Presence checks are read-only, so they run even in dry-run mode.
            r = run_cmd(argv, check=False, env=self._env({}))
            return r.returncode == 0

        if check.kind == "login_shell":
            shell = current_login_shell()
            return bool(shell) and Path(shell).name == str(check.value)

        raise ProvisionError(f"Unknown presence check kind: {check.kind}")

    def _privileged(self, argv: List[str], action: InstallAction) -> List[str]:
        if action.privileged and self.config.use_sudo:
            return ["sudo", *argv]
        return argv

    def run_action(self, action: InstallAction) -> None:
        dry_run = self.config.dry_run
        if action.packages:
            pkg_install(
                self.profile.platform,
                action.packages,
                use_sudo=self.config.use_sudo,
                env=self._env({}),
                dry_run=dry_run,
            )
            return

        if action.argv:
            argv = [self.config.expand(a) for a in action.argv]
        else:
            argv = shell_argv(self.config.expand(action.shell or ""))

        run_cmd(
            self._privileged(argv, action),
            env=self._env(action.env),
            interactive=True,
            dry_run=dry_run,
        )

    def ensure(self, dep: Dependency, report: ProvisionReport) -> None:
        logger.info("==> Checking for %s", dep.name)

        actions = dep.actions_for(self.profile.platform)
        if actions is None:
            logger.info("- %s not required on %s", dep.name, self.profile.platform.value)
            report.not_required.append(dep.name)
            return

        for raw in dep.requires:
            required = self.config.expand_path(raw)
            if not required.exists():
                raise ProvisionError(f"{required.name} not found ({required}), required by {dep.name}")

        if self.is_present(dep.check):
            logger.info("✓ %s is already installed", dep.name)
            report.present.append(dep.name)
            return

        logger.info("ℹ %s not found. Installing...", dep.name)
        # Files the installer must not leave behind if they did not exist before.
        absent = [p for p in map(self.config.expand_path, dep.keep_absent) if not os.path.lexists(p)]
        for action in actions:
            self.run_action(action)

        if not self.config.dry_run:
            self._remove_leftovers(dep.name, absent)
            if not self.is_present(dep.check):
                raise ProvisionError(f"Failed to install {dep.name}")

        logger.info("✓ %s installed successfully", dep.name)
        report.installed.append(dep.name)

    def _remove_leftovers(self, name: str, paths: Sequence[Path]) -> None:
        for p in paths:
            if not os.path.lexists(p):
                continue
            if p.is_dir() and not p.is_symlink():
                raise ProvisionError(f"{name} created directory {p}, which must not exist")
            p.unlink()
            logger.info("  -> Removed %s created by %s", p, name)

    def provision(self, deps: Sequence[Dependency]) -> ProvisionReport:
        report = ProvisionReport()
        for dep in deps:
            self.ensure(dep, report)
        return report
