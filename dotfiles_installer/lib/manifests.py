from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Tuple

from ..errors import ManifestError
from .platform_detect import Platform

CHECK_KINDS = ("command", "path", "run", "login_shell")


@dataclass(frozen=True)
class Package:
    name: str
    captures: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Override:
    example: str
    target: str


@dataclass(frozen=True)
class PackagesManifest:
    packages: Tuple[Package, ...]
    ignore: Tuple[Pattern[str], ...] = ()
    overrides: Tuple[Override, ...] = ()

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.packages]

    def select(self, names: Tuple[str, ...] = ()) -> List[Package]:
        """Return declared packages, restricted to ``names`` when given."""
        if not names:
            return list(self.packages)
        unknown = [n for n in names if n not in self.names]
        if unknown:
            raise ManifestError(f"Unknown package(s): {', '.join(unknown)}")
        return [p for p in self.packages if p.name in names]

    def is_ignored(self, name: str) -> bool:
        return any(rx.search(name) for rx in self.ignore)


@dataclass(frozen=True)
class PresenceCheck:
    kind: str
    value: Any
    paths: Tuple[str, ...] = ()


@dataclass(frozen=True)
class InstallAction:
    packages: Tuple[str, ...] = ()
    argv: Tuple[str, ...] = ()
    shell: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)
    privileged: bool = False


@dataclass(frozen=True)
class Dependency:
    name: str
    check: PresenceCheck
    install: Dict[str, Tuple[InstallAction, ...]]
    requires: Tuple[str, ...] = ()
    keep_absent: Tuple[str, ...] = ()
    description: str = ""

    def actions_for(self, platform: Platform) -> Optional[Tuple[InstallAction, ...]]:
        """Most specific action list for ``platform``; None if not required there."""
        keys = [platform.value]
        if platform.is_linux:
            keys.append("linux")
        keys.append("all")
        for key in keys:
            if key in self.install:
                return self.install[key]
        return None


@dataclass(frozen=True)
class Manifest:
    packages: PackagesManifest
    dependencies: Tuple[Dependency, ...]


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML manifest that must contain a mapping."""
    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ManifestError("PyYAML required to load manifests") from e

    if not path.exists():
        raise ManifestError(f"Manifest not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest must be a mapping/dict: {path}")
    return data


def _str_list(value: Any, where: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, list):
        raise ManifestError(f"{where} must be a list")
    return tuple(str(v) for v in value)


def parse_packages(data: Dict[str, Any]) -> PackagesManifest:
    raw_pkgs = data.get("packages") or []
    if not isinstance(raw_pkgs, list):
        raise ManifestError("packages must be a list")

    packages: List[Package] = []
    for i, item in enumerate(raw_pkgs):
        if isinstance(item, str):
            item = {"name": item}
        if not isinstance(item, dict) or not item.get("name"):
            raise ManifestError(f"packages[{i}] needs a name")
        name = str(item["name"])
        if "/" in name or name.startswith("."):
            raise ManifestError(f"Invalid package name: {name}")
        if name in [p.name for p in packages]:
            raise ManifestError(f"Duplicate package: {name}")
        packages.append(Package(name=name, captures=_str_list(item.get("captures"), f"{name}.captures")))

    ignore: List[Pattern[str]] = []
    for raw in _str_list(data.get("ignore"), "ignore"):
        try:
            ignore.append(re.compile(raw))
        except re.error as e:
            raise ManifestError(f"Invalid ignore pattern {raw!r}: {e}") from e

    overrides: List[Override] = []
    for i, item in enumerate(data.get("overrides") or []):
        if not isinstance(item, dict) or not item.get("example") or not item.get("target"):
            raise ManifestError(f"overrides[{i}] needs example and target")
        overrides.append(Override(example=str(item["example"]), target=str(item["target"])))

    return PackagesManifest(packages=tuple(packages), ignore=tuple(ignore), overrides=tuple(overrides))


def _parse_check(name: str, raw: Any) -> PresenceCheck:
    if not isinstance(raw, dict):
        raise ManifestError(f"{name}.check must be a mapping")
    kinds = [k for k in CHECK_KINDS if k in raw]
    if len(kinds) != 1:
        raise ManifestError(f"{name}.check needs exactly one of {', '.join(CHECK_KINDS)}")
    kind = kinds[0]
    value = raw[kind]
    if kind == "run":
        value = _str_list(value, f"{name}.check.run")
        if not value:
            raise ManifestError(f"{name}.check.run must not be empty")
    else:
        value = str(value)
    return PresenceCheck(kind=kind, value=value, paths=_str_list(raw.get("paths"), f"{name}.check.paths"))


def _parse_action(name: str, raw: Any) -> InstallAction:
    if not isinstance(raw, dict):
        raise ManifestError(f"{name}: install action must be a mapping")
    given = [k for k in ("packages", "argv", "shell") if raw.get(k)]
    if len(given) != 1:
        raise ManifestError(f"{name}: install action needs exactly one of packages, argv, shell")
    env = raw.get("env") or {}
    if not isinstance(env, dict):
        raise ManifestError(f"{name}: env must be a mapping")
    return InstallAction(
        packages=_str_list(raw.get("packages"), f"{name}.packages"),
        argv=_str_list(raw.get("argv"), f"{name}.argv"),
        shell=str(raw["shell"]) if raw.get("shell") else None,
        env={str(k): str(v) for k, v in env.items()},
        privileged=bool(raw.get("privileged", False)),
    )


def parse_dependencies(data: Dict[str, Any]) -> Tuple[Dependency, ...]:
    raw_deps = data.get("dependencies") or []
    if not isinstance(raw_deps, list):
        raise ManifestError("dependencies must be a list")

    valid_keys = {p.value for p in Platform if p is not Platform.UNSUPPORTED} | {"linux", "all"}
    deps: List[Dependency] = []
    for i, item in enumerate(raw_deps):
        if not isinstance(item, dict) or not item.get("name"):
            raise ManifestError(f"dependencies[{i}] needs a name")
        name = str(item["name"])

        raw_install = item.get("install") or {}
        if not isinstance(raw_install, dict) or not raw_install:
            raise ManifestError(f"{name}.install must be a non-empty mapping")
        install: Dict[str, Tuple[InstallAction, ...]] = {}
        for key, actions in raw_install.items():
            if key not in valid_keys:
                raise ManifestError(f"{name}.install: unknown platform key {key!r}")
            if isinstance(actions, dict):
                actions = [actions]
            if not isinstance(actions, list) or not actions:
                raise ManifestError(f"{name}.install.{key} must be an action or a list of actions")
            install[key] = tuple(_parse_action(name, a) for a in actions)

        deps.append(
            Dependency(
                name=name,
                check=_parse_check(name, item.get("check")),
                install=install,
                requires=_str_list(item.get("requires"), f"{name}.requires"),
                keep_absent=_str_list(item.get("keep_absent"), f"{name}.keep_absent"),
                description=str(item.get("description") or ""),
            )
        )
    return tuple(deps)


def load_manifest(manifests_dir: Path) -> Manifest:
    return Manifest(
        packages=parse_packages(load_yaml(manifests_dir / "packages.yaml")),
        dependencies=parse_dependencies(load_yaml(manifests_dir / "dependencies.yaml")),
    )
