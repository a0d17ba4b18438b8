# src/fidoenroll/prompt.py
"""Interactive confirmation gates and prompts."""

from typing import Iterable

from rich.console import Console
from rich.prompt import Prompt

from .errors import UserAbortedError

console = Console(stderr=True)

AFFIRMATIVE = ("y", "Y")


def describe(title: str, steps: Iterable[str]) -> None:
    """Print what a procedure is about to do."""
    console.print(f"[bold cyan]{title}[/bold cyan]")
    for step in steps:
        console.print(f"  - {step}")


def confirm(question: str) -> bool:
    """
    Ask a yes/no question. Only ``y`` or ``Y`` counts as yes.

    End of input and Ctrl-C count as no.
    """
    try:
        answer = Prompt.ask(f"[bold yellow]{question} (y/N)[/bold yellow]", default="", show_default=False)
    except (KeyboardInterrupt, EOFError):
        console.print()
        return False
    return answer.strip() in AFFIRMATIVE


def require_confirmation(question: str) -> None:
    """
    Block until the user answers; anything but yes aborts.

    Raises:
        UserAbortedError: If the answer is not ``y``/``Y``.
    """
    if not confirm(question):
        raise UserAbortedError()


def ask_device_path(question: str) -> str:
    """Prompt for a device path."""
    try:
        return Prompt.ask(f"[bold cyan]{question}[/bold cyan]").strip()
    except (KeyboardInterrupt, EOFError):
        console.print()
        raise UserAbortedError()
