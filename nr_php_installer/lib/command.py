from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

REDACTED = "***"


class CommandError(RuntimeError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"Command failed ({returncode}): {_fmt_argv(self.argv)}\n{stderr}")


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def redact(text: str, secrets: Iterable[str]) -> str:
    for s in secrets:
        if s:
            text = text.replace(s, REDACTED)
    return text


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    path: str | None = None,
    secrets: Sequence[str] = (),
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command, with any ``secrets`` masked.
    - ``path`` replaces PATH for the child, so executables are resolved
      against the caller's search path only.
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    logger.info("CMD %s", redact(_fmt_argv(argv_list), secrets))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    child_env = dict(os.environ, **(env or {}))
    if path is not None:
        child_env["PATH"] = path

    try:
        p = subprocess.run(
            argv_list,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=child_env,
        )
    except FileNotFoundError as e:
        # Executable not on the search path.
        raise CommandError(argv_list, 127, str(e)) from e

    if p.stdout:
        logger.debug("STDOUT %s", redact(p.stdout.strip(), secrets))
    if p.stderr:
        logger.debug("STDERR %s", redact(p.stderr.strip(), secrets))

    if check and p.returncode != 0:
        raise CommandError(argv_list, p.returncode, redact(p.stderr, secrets))

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)
