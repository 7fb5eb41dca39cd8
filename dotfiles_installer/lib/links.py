from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Tuple

from ..config import InstallConfig
from ..errors import LinkError, MissingToolError
from .command import path_env, run_cmd, which
from .manifests import Package, PackagesManifest

logger = logging.getLogger(__name__)

LINKED = "linked"
MISSING = "missing"
FILE = "file"
SYMLINK = "symlink"
DIRECTORY = "directory"


@dataclass(frozen=True)
class LinkMapping:
    package: str
    source: Path
    destination: Path

    def state(self) -> str:
        dest = self.destination
        if dest.is_symlink() or dest.exists():
            try:
                if dest.resolve() == self.source.resolve():
                    return LINKED
            except (OSError, RuntimeError):
                # Symlink loop or unreadable path: treat as foreign.
                pass
        if dest.is_symlink():
            return SYMLINK
        if not dest.exists():
            return MISSING
        if dest.is_dir():
            return DIRECTORY
        return FILE


@dataclass
class LinkReport:
    linked: List[Path] = field(default_factory=list)
    backups: List[Tuple[Path, Path]] = field(default_factory=list)
    adopted: List[Path] = field(default_factory=list)
    captured: List[Path] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    packages: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.linked or self.backups or self.adopted or self.captured)


def next_backup_path(dest: Path, suffix: str = ".bak") -> Path:
    """First free backup name: ``x.bak``, then ``x.bak.1``, ``x.bak.2``...

    Existing backups are never overwritten.
    """
    candidate = dest.with_name(dest.name + suffix)
    n = 0
    while candidate.exists() or candidate.is_symlink():
        n += 1
        candidate = dest.with_name(f"{dest.name}{suffix}.{n}")
    return candidate


def plan_package(dotfiles_dir: Path, package: Package, home: Path, manifest: PackagesManifest) -> List[LinkMapping]:
    """Map every file in the package tree to the same relative path under home."""

    root = (dotfiles_dir / package.name).resolve()
    if not root.is_dir():
        raise LinkError(f"Package directory not found: {root}")

    mappings: List[LinkMapping] = []
    for item in sorted(root.rglob("*")):
        if item.is_dir() and not item.is_symlink():
            continue
        rel = item.relative_to(root)
        if any(manifest.is_ignored(part) for part in rel.parts):
            continue
        mappings.append(LinkMapping(package=package.name, source=item, destination=home / rel))
    return mappings


def capture_files(package: Package, config: InstallConfig) -> List[Path]:
    """Copy machine-generated home files into the package if it lacks them."""

    captured: List[Path] = []
    for rel in package.captures:
        src = config.home / rel
        dst = config.dotfiles_dir / package.name / rel
        if src.is_symlink() or not src.is_file() or dst.exists():
            continue
        if config.dry_run:
            logger.info("  -> Would copy %s into %s", src, dst)
        else:
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dst)
            logger.info("  -> Copied %s to dotfiles", rel)
        captured.append(dst)
    return captured


def clear_destination(
    mapping: LinkMapping,
    state: str,
    *,
    config: InstallConfig,
    report: LinkReport,
    adopt_in_place: bool,
) -> None:
    """Move whatever occupies the destination out of the way, keeping a backup.

    In adopt mode a real file is copied to the backup and then moved into the
    package (unless ``adopt_in_place`` is False because the linker adopts it
    itself). In backup mode, and for foreign symlinks, the destination is
    renamed aside.
    """

    dest = mapping.destination
    if state == DIRECTORY:
        raise LinkError(f"Cannot link {dest}: a directory is in the way")

    backup = next_backup_path(dest, config.backup_suffix)
    adopt = state == FILE and config.on_conflict == "adopt"

    if config.dry_run:
        verb = "adopt" if adopt else "move aside"
        logger.info("  -> Would back up %s to %s and %s", dest, backup, verb)
        return

    try:
        if adopt:
            shutil.copy2(dest, backup)
            logger.info("  -> Backed up %s to %s", dest, backup)
            if adopt_in_place:
                shutil.move(str(dest), str(mapping.source))
                logger.info("  -> Adopted %s into %s", dest, mapping.source)
            report.adopted.append(mapping.source)
        else:
            os.rename(dest, backup)
            logger.info("  -> Moved existing %s to %s", dest, backup)
    except OSError as e:
        raise LinkError(f"Could not back up {dest}: {e}") from e
    report.backups.append((dest, backup))


class Linker(Protocol):
    name: str

    def ensure_available(self) -> None:
        ...

    def link_package(
        self,
        package: Package,
        pending: Sequence[LinkMapping],
        *,
        config: InstallConfig,
        manifest: PackagesManifest,
        report: LinkReport,
    ) -> None:
        ...


class NativeLinker:
    """One absolute symlink per file; parent directories are real directories."""

    name = "native"

    def ensure_available(self) -> None:
        return None

    def link_package(self, package, pending, *, config, manifest, report) -> None:
        for m in pending:
            state = m.state()
            if state != MISSING:
                clear_destination(m, state, config=config, report=report, adopt_in_place=True)

            if config.dry_run:
                logger.info("  -> Would link %s -> %s", m.destination, m.source)
                continue

            try:
                m.destination.parent.mkdir(parents=True, exist_ok=True)
                os.symlink(m.source, m.destination)
            except OSError as e:
                raise LinkError(f"Could not link {m.destination}: {e}") from e
            logger.debug("LINK %s -> %s", m.destination, m.source)
            report.linked.append(m.destination)


class StowLinker:
    """Delegate the symlink farm to GNU Stow."""

    name = "stow"

    def __init__(self, search_path: Optional[str] = None) -> None:
        # PATH to look in, for a stow installed earlier in the same run.
        self.search_path = search_path

    def ensure_available(self) -> None:
        if which("stow", path=self.search_path) is None:
            raise MissingToolError(
                "GNU Stow",
                "Install it with 'brew install stow' (or your package manager), "
                "run the 'provision' target, or use --linker native",
            )

    def stow_argv(self, package: Package, *, config: InstallConfig, manifest: PackagesManifest) -> List[str]:
        argv = ["stow", "-v", "-d", str(config.dotfiles_dir), "-t", str(config.home)]
        if config.on_conflict == "adopt":
            argv.append("--adopt")
        argv += [f"--ignore={rx.pattern}" for rx in manifest.ignore]
        argv.append(package.name)
        return argv

    def link_package(self, package, pending, *, config, manifest, report) -> None:
        for m in pending:
            state = m.state()
            if state != MISSING:
                # stow --adopt moves the real file into the package itself.
                clear_destination(m, state, config=config, report=report, adopt_in_place=False)

        run_cmd(
            self.stow_argv(package, config=config, manifest=manifest),
            env=path_env(self.search_path),
            dry_run=config.dry_run,
        )
        if not config.dry_run:
            report.linked.extend(m.destination for m in pending)


def make_linker(name: str, search_path: Optional[str] = None) -> Linker:
    if name == StowLinker.name:
        return StowLinker(search_path=search_path)
    if name == NativeLinker.name:
        return NativeLinker()
    raise LinkError(f"Unknown linker: {name}")


def apply_links(
    packages: Sequence[Package],
    *,
    config: InstallConfig,
    manifest: PackagesManifest,
    linker: Linker,
) -> LinkReport:
    """Link each package in order, stopping at the first one that fails.

    The linker's tool requirement is verified before any package is touched.
    Packages whose files already resolve to the repository are left alone.
    """

    try:
        linker.ensure_available()
    except MissingToolError as e:
        if not config.dry_run:
            raise
        logger.warning("%s not found; dry run continues without it", e.tool)

    report = LinkReport()
    for package in packages:
        logger.info("  -> Linking %s configuration", package.name)
        report.captured += capture_files(package, config)

        mappings = plan_package(config.dotfiles_dir, package, config.home, manifest)
        if not mappings:
            logger.warning("Package %s has no files to link", package.name)

        pending = [m for m in mappings if m.state() != LINKED]
        if not pending:
            logger.info("✓ %s already linked", package.name)
            report.unchanged.append(package.name)
            continue

        linker.link_package(package, pending, config=config, manifest=manifest, report=report)
        report.packages.append(package.name)
        logger.info("✓ %s linked (%d file(s))", package.name, len(pending))

    return report
