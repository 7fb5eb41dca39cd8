from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigError

LINKERS = ("stow", "native")
CONFLICT_MODES = ("adopt", "backup")

DEFAULT_CONFIG_NAME = "installer.yaml"


def repo_root() -> Path:
    # dotfiles_installer/config.py -> dotfiles_installer -> repo root
    return Path(__file__).resolve().parents[1]


def default_log_path(home: Path) -> Path:
    return home / ".local" / "state" / "dotfiles-installer" / "install.log"


@dataclass(frozen=True)
class InstallConfig:
    """Everything the installer needs to know about the machine it runs on.

    Built once from the environment, an optional YAML file and CLI flags,
    then passed explicitly to every step. Nothing downstream reads
    environment variables.
    """

    home: Path
    dotfiles_dir: Path
    zsh_dir: Path
    zsh_custom: Path
    log_path: Path
    dry_run: bool = False
    use_sudo: bool = True
    linker: str = "stow"
    on_conflict: str = "adopt"
    backup_suffix: str = ".bak"
    packages: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def manifests_dir(self) -> Path:
        return self.dotfiles_dir / "manifests"

    def template_vars(self) -> Dict[str, str]:
        return {
            "home": str(self.home),
            "dotfiles": str(self.dotfiles_dir),
            "zsh_dir": str(self.zsh_dir),
            "zsh_custom": str(self.zsh_custom),
        }

    def expand(self, text: str) -> str:
        """Expand ``{home}``-style placeholders used by the manifests."""
        try:
            return text.format(**self.template_vars())
        except (KeyError, IndexError) as e:
            raise ConfigError(f"Unknown placeholder in {text!r}: {e}") from e

    def expand_path(self, text: str) -> Path:
        return Path(self.expand(text)).expanduser()


def from_environment(
    *,
    home: Optional[Path] = None,
    dotfiles_dir: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> InstallConfig:
    """Snapshot the ambient environment into an InstallConfig."""

    env = os.environ if environ is None else environ
    home = Path(home) if home is not None else Path(env.get("HOME") or Path.home())
    zsh_dir = Path(env.get("ZSH") or home / ".oh-my-zsh")
    zsh_custom = Path(env.get("ZSH_CUSTOM") or zsh_dir / "custom")

    return InstallConfig(
        home=home,
        dotfiles_dir=Path(dotfiles_dir) if dotfiles_dir is not None else repo_root(),
        zsh_dir=zsh_dir,
        zsh_custom=zsh_custom,
        log_path=default_log_path(home),
        use_sudo=_is_unprivileged(),
    )


def _is_unprivileged() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is None or geteuid() != 0


def _load_yaml(path: Path) -> Dict[str, Any]:
    if path.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigError(f"Installer config must be YAML: {path}")

    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ConfigError("PyYAML is required to read installer config") from e

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping/object")
    return raw


def apply_overrides(cfg: InstallConfig, values: Mapping[str, Any]) -> InstallConfig:
    """Return a copy of ``cfg`` with validated values applied (None means unset)."""

    changes: Dict[str, Any] = {}
    for key, value in values.items():
        if value is None:
            continue
        if key in {"home", "dotfiles_dir", "zsh_dir", "zsh_custom", "log_path"}:
            changes[key] = Path(str(value)).expanduser()
        elif key in {"dry_run", "use_sudo"}:
            changes[key] = bool(value)
        elif key == "linker":
            if value not in LINKERS:
                raise ConfigError(f"linker must be one of {', '.join(LINKERS)}, got {value!r}")
            changes[key] = value
        elif key == "on_conflict":
            if value not in CONFLICT_MODES:
                raise ConfigError(
                    f"on_conflict must be one of {', '.join(CONFLICT_MODES)}, got {value!r}"
                )
            changes[key] = value
        elif key == "backup_suffix":
            suffix = str(value)
            if not suffix or "/" in suffix:
                raise ConfigError(f"Invalid backup_suffix {value!r}")
            changes[key] = suffix
        elif key == "packages":
            if isinstance(value, str) or not isinstance(value, (list, tuple)):
                raise ConfigError("packages must be a list of package names")
            changes[key] = tuple(str(p) for p in value)
        else:
            raise ConfigError(f"Unknown config key: {key}")
    return replace(cfg, **changes)


def load_config(
    path: Optional[str] = None,
    *,
    home: Optional[Path] = None,
    dotfiles_dir: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> InstallConfig:
    """Defaults <- installer.yaml <- CLI overrides."""

    cfg = from_environment(home=home, dotfiles_dir=dotfiles_dir, environ=environ)

    if path is not None:
        p = Path(path).expanduser()
        if not p.exists():
            raise ConfigError(f"Config file not found: {p}")
        cfg = apply_overrides(cfg, _load_yaml(p))
    else:
        p = cfg.dotfiles_dir / DEFAULT_CONFIG_NAME
        if p.exists():
            cfg = apply_overrides(cfg, _load_yaml(p))

    return apply_overrides(cfg, overrides or {})
