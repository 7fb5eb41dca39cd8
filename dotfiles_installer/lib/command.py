from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..errors import CommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def which(name: str, path: str | None = None) -> str | None:
    return shutil.which(name, path=path)


def search_path(extra: Sequence[str]) -> str | None:
    """PATH with ``extra`` directories in front, or None when there are none."""
    if not extra:
        return None
    return os.pathsep.join([*extra, os.environ.get("PATH", "")])


def path_env(path: str | None) -> dict[str, str] | None:
    return {"PATH": path} if path else None


def shell_argv(script: str) -> list[str]:
    return ["bash", "-c", script]


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    interactive: bool = False,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - Captures stdout/stderr unless ``interactive`` is set, in which case the
      child inherits the terminal (installers and sudo may prompt).
    - dry_run logs but does not execute.
    - A missing executable is reported like any other failed command.
    """

    argv_list = list(argv)
    logger.info("CMD %s", fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    capture = None if interactive else subprocess.PIPE
    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=capture,
            stderr=capture,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
        )
    except FileNotFoundError as e:
        if check:
            raise CommandError(argv_list, 127, str(e)) from e
        return CmdResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))

    stdout = p.stdout or ""
    stderr = p.stderr or ""
    if stdout:
        logger.debug("STDOUT %s", stdout.strip())
    if stderr:
        logger.debug("STDERR %s", stderr.strip())

    if check and p.returncode != 0:
        raise CommandError(argv_list, p.returncode, stderr)

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=stdout, stderr=stderr)
