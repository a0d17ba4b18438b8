# src/fidoenroll/runner.py
"""Synchronous execution of external commands.

Every procedure talks to the system through a ``CommandRunner``. The real
implementation shells out with ``subprocess``; tests substitute a fake that
records invocations and returns scripted results.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import List, Protocol, Sequence

from .errors import CommandError, ToolNotFoundError

logger = logging.getLogger(__name__)


class Output(Enum):
    """How a command's standard streams are wired."""
    CAPTURE = "capture"
    STDOUT = "stdout"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class CommandResult:
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    def run(
        self,
        args: Sequence[str],
        *,
        privileged: bool = False,
        check: bool = True,
        output: Output = Output.CAPTURE,
    ) -> CommandResult:
        ...


class SubprocessRunner:
    """
    Runs commands with ``subprocess.run`` and waits for them to finish.

    Privileged commands are prefixed with ``sudo`` unless the process is
    already root or ``use_sudo`` is disabled. There is no timeout: several
    commands block until the user touches the security key.
    """

    def __init__(self, use_sudo: bool = True):
        self.use_sudo = use_sudo

    def _argv(self, args: Sequence[str], privileged: bool) -> List[str]:
        argv = [str(a) for a in args]
        if privileged and self.use_sudo and os.geteuid() != 0:
            argv = ["sudo"] + argv
        return argv

    def run(
        self,
        args: Sequence[str],
        *,
        privileged: bool = False,
        check: bool = True,
        output: Output = Output.CAPTURE,
    ) -> CommandResult:
        argv = self._argv(args, privileged)
        logger.info("Running command: %s", " ".join(argv))

        kwargs = {"text": True}
        if output is Output.CAPTURE:
            kwargs["capture_output"] = True
        elif output is Output.STDOUT:
            kwargs["stdout"] = subprocess.PIPE

        try:
            proc = subprocess.run(argv, **kwargs)
        except FileNotFoundError:
            raise ToolNotFoundError(
                f"`{argv[0]}` command not found. Please install it and try again."
            )

        result = CommandResult(
            args=argv,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )
        logger.debug("Command %s exited with %d", argv[0], result.returncode)

        if check and not result.ok:
            raise CommandError(argv, result.returncode, result.stderr)
        return result
