# src/fidoenroll/packages.py
"""Package installation through the system package manager."""

from typing import Sequence

from rich.console import Console

from .runner import CommandRunner, Output

console = Console(stderr=True)


def ensure_packages(runner: CommandRunner, install_command: Sequence[str], names: Sequence[str]) -> None:
    """
    Install the given packages. Safe to re-run; the package manager skips
    packages that are already present.
    """
    if not names:
        return
    console.print(f"📦 [bold]Installing required packages:[/bold] {' '.join(names)}")
    runner.run([*install_command, *names], privileged=True, output=Output.TERMINAL)
