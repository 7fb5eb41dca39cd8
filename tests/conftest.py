"""Shared test fixtures: a throwaway home directory and dotfiles repository."""

from __future__ import annotations

import logging
import pathlib

import pytest

import dotfiles_installer.config
import dotfiles_installer.lib.manifests
import dotfiles_installer.lib.platform_detect

PACKAGES_YAML = """\
ignore:
  - '\\.example$'
  - '\\.local$'
packages:
  - name: zsh
    captures: [.fzf.zsh]
  - name: git
overrides:
  - example: zsh/.zshrc.local.example
    target: "{home}/.zshrc.local"
  - example: git/.config/git/config.user.example
    target: "{dotfiles}/git/.config/git/config.user"
"""

DEPENDENCIES_YAML = """\
dependencies:
  - name: homebrew
    check:
      command: brew
    install:
      darwin:
        shell: 'echo install-brew'
  - name: stow
    check:
      command: stow
    install:
      all:
        packages: [stow]
  - name: zsh-autosuggestions
    check:
      path: "{zsh_custom}/plugins/zsh-autosuggestions"
    install:
      all:
        argv: [git, clone, "https://example.invalid/zsh-autosuggestions", "{zsh_custom}/plugins/zsh-autosuggestions"]
"""


@pytest.fixture(autouse=True)
def _reset_logging():
    """configure_logging() attaches handlers to the root logger once per process."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)
    for attr in ("_dotfiles_configured", "_dotfiles_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)


@pytest.fixture
def home(tmp_path: pathlib.Path) -> pathlib.Path:
    h = tmp_path / "home"
    h.mkdir()
    return h


@pytest.fixture
def dotfiles(tmp_path: pathlib.Path) -> pathlib.Path:
    """A small dotfiles repo with zsh and git packages and both manifests."""
    repo = tmp_path / "dotfiles"
    files = {
        "zsh/.zshrc": "new\n",
        "zsh/.zsh/plugins.zsh": "plugins=(git)\n",
        "zsh/.zshrc.local.example": "# local settings\n",
        "git/.config/git/config": "[include]\n\tpath = config.user\n",
        "git/.config/git/config.user.example": "[user]\n\tname = Your Name\n",
        "manifests/packages.yaml": PACKAGES_YAML,
        "manifests/dependencies.yaml": DEPENDENCIES_YAML,
    }
    for rel, content in files.items():
        p = repo / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content)
    return repo


@pytest.fixture
def make_config(home: pathlib.Path, dotfiles: pathlib.Path, tmp_path: pathlib.Path):
    """Factory for InstallConfig objects rooted in the temp home/repo."""

    def _make(**overrides):
        cfg = dotfiles_installer.config.load_config(
            home=home,
            dotfiles_dir=dotfiles,
            environ={},
            overrides={"log_path": tmp_path / "install.log", "use_sudo": True, **overrides},
        )
        return cfg

    return _make


@pytest.fixture
def config(make_config):
    return make_config(linker="native")


@pytest.fixture
def manifest(dotfiles: pathlib.Path):
    return dotfiles_installer.lib.manifests.load_manifest(dotfiles / "manifests")


@pytest.fixture
def fake_which():
    """Factory for a which() that only knows the given executables."""

    def _make(*names: str):
        known = {n: f"/usr/bin/{n}" for n in names}

        def _which(name, path=None):
            return known.get(name)

        return _which

    return _make


@pytest.fixture
def linux_profile():
    def _make(platform):
        return dotfiles_installer.lib.platform_detect.PlatformProfile(
            platform=platform,
            system="Linux",
            arch="amd64",
            package_manager=platform.value,
            package_manager_path=f"/usr/bin/{platform.value}",
        )

    return _make
