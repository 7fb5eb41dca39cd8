from __future__ import annotations

import shlex
from typing import Sequence


class InstallerError(RuntimeError):
    """Base class for every failure that should stop the install."""


class ConfigError(InstallerError, ValueError):
    pass


class ManifestError(InstallerError, ValueError):
    pass


class UnsupportedPlatformError(InstallerError):
    pass


class MissingToolError(InstallerError):
    def __init__(self, tool: str, hint: str | None = None) -> None:
        msg = f"{tool} not found"
        if hint:
            msg = f"{msg}. {hint}"
        super().__init__(msg)
        self.tool = tool
        self.hint = hint


class CommandError(InstallerError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        cmd = " ".join(shlex.quote(a) for a in argv)
        msg = f"Command failed ({returncode}): {cmd}"
        if stderr and stderr.strip():
            msg = f"{msg}\n{stderr.rstrip()}"
        super().__init__(msg)
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr


class ProvisionError(InstallerError):
    pass


class LinkError(InstallerError):
    pass
