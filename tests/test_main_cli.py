"""End-to-end tests for the dotfiles-installer CLI."""

from __future__ import annotations

import logging
import platform
import shutil

import pytest

from dotfiles_installer.main import TARGETS, build_steps, main


@pytest.fixture
def cli(home, dotfiles, tmp_path):
    def _run(*args):
        return main(
            [
                *args,
                "--home",
                str(home),
                "--dotfiles-dir",
                str(dotfiles),
                "--log",
                str(tmp_path / "logs" / "install.log"),
            ]
        )

    return _run


@pytest.fixture
def simulate(monkeypatch):
    def _simulate(system, *executables):
        known = {name: f"/usr/bin/{name}" for name in executables}
        monkeypatch.setattr(platform, "system", lambda: system)
        monkeypatch.setattr(shutil, "which", lambda name, mode=None, path=None: known.get(name))

    return _simulate


def test_linux_without_package_manager_exits_nonzero_and_changes_nothing(cli, simulate, home, caplog):
    simulate("Linux")
    caplog.set_level(logging.INFO)

    assert cli("install", "--linker", "native") == 1

    assert list(home.iterdir()) == []
    assert "no supported package manager" in caplog.text


def test_link_scenario_keeps_old_zshrc(cli, home, dotfiles):
    (home / ".zshrc").write_text("old")

    assert cli("link", "--linker", "native") == 0

    zshrc = home / ".zshrc"
    assert zshrc.is_symlink()
    assert zshrc.resolve() == (dotfiles / "zsh" / ".zshrc").resolve()
    assert (home / ".zshrc.bak").read_text() == "old"
    # Override files are seeded before linking, so config.user is linked too.
    assert (home / ".zshrc.local").is_file()
    assert (home / ".config" / "git" / "config.user").is_symlink()


def test_link_twice_is_idempotent(cli, home):
    (home / ".zshrc").write_text("old")
    assert cli("link", "--linker", "native") == 0
    snapshot = sorted(str(p.relative_to(home)) for p in home.rglob("*"))

    assert cli("link", "--linker", "native") == 0

    assert sorted(str(p.relative_to(home)) for p in home.rglob("*")) == snapshot
    assert not (home / ".zshrc.bak.1").exists()


def test_link_single_package(cli, home):
    assert cli("link", "--linker", "native", "--package", "git") == 0
    assert (home / ".config" / "git" / "config").is_symlink()
    assert not (home / ".zshrc").exists()


def test_detect_reports_darwin(cli, simulate, caplog):
    simulate("Darwin")
    caplog.set_level(logging.INFO)
    assert cli("detect") == 0
    assert "Detected darwin" in caplog.text


def test_dry_run_install_on_apt(cli, simulate, home, dotfiles, caplog):
    simulate("Linux", "apt-get")
    caplog.set_level(logging.INFO)
    (dotfiles / "installer.yaml").write_text("use_sudo: true\n")
    (home / ".zshrc").write_text("old")

    assert cli("install", "--dry-run", "--linker", "native") == 0

    assert "CMD sudo apt-get install -y stow" in caplog.text
    assert "brew" not in caplog.text.replace("homebrew", "")
    assert sorted(p.name for p in home.iterdir()) == [".zshrc"]


def test_missing_stow_exits_nonzero(cli, simulate, home):
    simulate("Linux", "apt-get")
    (home / ".zshrc").write_text("old")

    assert cli("link", "--linker", "stow") == 1

    assert not (home / ".zshrc").is_symlink()
    assert (home / ".zshrc").read_text() == "old"


def test_unknown_start_step(cli):
    assert cli("link", "--linker", "native", "--start-at", "99_nope") == 1


def test_every_target_builds_steps():
    for target in TARGETS:
        steps = build_steps(target)
        assert steps
        ids = [s.step_id for s in steps]
        assert ids == sorted(ids)


SHELL_FRAMEWORK_YAML = """\
dependencies:
  - name: oh-my-zsh
    check:
      path: "{zsh_dir}/oh-my-zsh.sh"
    keep_absent:
      - "{home}/.zshrc"
    install:
      all:
        shell: 'test -e "$HOME_DIR/.zshrc" || echo omz-template > "$HOME_DIR/.zshrc"; mkdir -p "$ZSH"; touch "$ZSH/oh-my-zsh.sh"'
        env:
          ZSH: "{zsh_dir}"
          HOME_DIR: "{home}"
"""


def test_clean_home_install_links_repository_zshrc(cli, simulate, home, dotfiles, monkeypatch):
    monkeypatch.delenv("ZSH", raising=False)
    monkeypatch.delenv("ZSH_CUSTOM", raising=False)
    (dotfiles / "manifests" / "dependencies.yaml").write_text(SHELL_FRAMEWORK_YAML)
    simulate("Linux", "apt-get")

    assert cli("install", "--linker", "native") == 0

    assert (home / ".oh-my-zsh" / "oh-my-zsh.sh").exists()
    assert (dotfiles / "zsh" / ".zshrc").read_text() == "new\n"
    assert (home / ".zshrc").resolve() == (dotfiles / "zsh" / ".zshrc").resolve()
    assert not (home / ".zshrc.bak").exists()


def _main_without_log_flag(home, dotfiles, *args):
    return main([*args, "--home", str(home), "--dotfiles-dir", str(dotfiles)])


def test_log_path_from_installer_yaml(home, dotfiles, tmp_path):
    log = tmp_path / "yaml-logs" / "install.log"
    (dotfiles / "installer.yaml").write_text(f"log_path: {log}\n")

    assert _main_without_log_flag(home, dotfiles, "link", "--linker", "native") == 0

    assert "Linking zsh configuration" in log.read_text()


def test_log_flag_beats_installer_yaml(cli, dotfiles, tmp_path):
    from_yaml = tmp_path / "yaml-logs" / "install.log"
    (dotfiles / "installer.yaml").write_text(f"log_path: {from_yaml}\n")

    assert cli("link", "--linker", "native") == 0

    assert "Linking zsh configuration" in (tmp_path / "logs" / "install.log").read_text()
    assert not from_yaml.exists()


def test_unsupported_platform_leaves_only_the_installer_log(simulate, home, dotfiles):
    simulate("Linux")

    assert _main_without_log_flag(home, dotfiles, "install", "--linker", "native") == 1

    files = sorted(str(p.relative_to(home)) for p in home.rglob("*") if p.is_file())
    assert files == [".local/state/dotfiles-installer/install.log"]
    assert "no supported package manager" in (home / files[0]).read_text()
