# src/fidoenroll/initramfs.py
"""dracut configuration and initramfs rebuild."""

import logging
from pathlib import Path
from typing import Sequence

from rich.console import Console

from .runner import CommandRunner, Output

logger = logging.getLogger(__name__)
console = Console(stderr=True)


def dracut_fragment(modules: Sequence[str]) -> str:
    return f'add_dracutmodules+=" {" ".join(modules)} "\n'


def write_dracut_conf(path: Path, modules: Sequence[str]) -> Path:
    """Write the dracut drop-in that pulls the modules into the initramfs.

    The file is overwritten on every run.
    """
    path = Path(path)
    console.print(f"Ensuring dracut includes: [bold cyan]{' '.join(modules)}[/bold cyan]")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dracut_fragment(modules), encoding="utf-8")
    logger.info("Wrote dracut drop-in %s (modules: %s)", path, " ".join(modules))
    return path


def rebuild_initramfs(runner: CommandRunner) -> None:
    console.print("🔧 [bold]Rebuilding initramfs with dracut...[/bold]")
    runner.run(["dracut", "-f"], privileged=True, output=Output.TERMINAL)
