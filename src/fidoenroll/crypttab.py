# src/fidoenroll/crypttab.py
"""Decide whether /etc/crypttab can be rewritten for FIDO2 unlock, and do it.

The file is boot-critical, so it is only rewritten automatically when the
shape is unambiguous: exactly one active entry whose option list ends with
the anchor option. Any other shape is reported back for a manual edit.
"""

import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .errors import CrypttabMissingError
from .parsing import CrypttabEntry, parse_crypttab

logger = logging.getLogger(__name__)


class CrypttabState(Enum):
    MISSING = "missing"
    EMPTY = "empty"
    AMBIGUOUS = "ambiguous"
    ALREADY_ENABLED = "already-enabled"
    SINGLE_DISCARD = "single-discard"
    SINGLE_OTHER = "single-other"


@dataclass
class CrypttabReport:
    state: CrypttabState
    path: Path
    entries: List[CrypttabEntry] = field(default_factory=list)
    updated: bool = False
    backup_path: Optional[Path] = None


def _read(path: Path) -> str:
    with open(path, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
        return f.read()


def _option_name(option: str) -> str:
    return option.split("=", 1)[0]


def classify(entries: List[CrypttabEntry], anchor: str, unlock_option: str) -> CrypttabState:
    """Map the active entries of a crypttab onto a decision state."""
    if not entries:
        return CrypttabState.EMPTY
    if len(entries) > 1:
        return CrypttabState.AMBIGUOUS

    entry = entries[0]
    unlock_name = _option_name(unlock_option)
    if any(_option_name(opt) == unlock_name for opt in entry.options):
        return CrypttabState.ALREADY_ENABLED
    if entry.options and entry.options[-1] == anchor and not entry.extra:
        return CrypttabState.SINGLE_DISCARD
    return CrypttabState.SINGLE_OTHER


def inspect_crypttab(path: Path, anchor: str, unlock_option: str) -> CrypttabReport:
    """Read a crypttab and report its state without touching it."""
    path = Path(path)
    if not path.is_file():
        return CrypttabReport(CrypttabState.MISSING, path)

    entries = parse_crypttab(_read(path))
    return CrypttabReport(classify(entries, anchor, unlock_option), path, entries)


def rewrite_line(line: str, anchor: str, unlock_option: str) -> str:
    """
    Append ``,<unlock_option>`` right after a trailing anchor option.

    Trailing whitespace after the anchor is dropped and the line ending kept.
    A line that does not end with the anchor is returned unchanged.
    """
    body = line.rstrip("\r\n")
    ending = line[len(body):]
    pattern = re.compile(rf"(?<=[\s,]){re.escape(anchor)}[ \t]*$")
    new_body, count = pattern.subn(lambda m: f"{anchor},{unlock_option}", body, count=1)
    if not count:
        return line
    return new_body + ending


def _atomic_write(path: Path, content: str) -> None:
    """Replace a file's content in one step, keeping its permission bits."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except OSError:
        if tmp_path.exists():
            tmp_path.unlink()
        raise


def update_crypttab(
    path: Path,
    backup_path: Path,
    anchor: str = "discard",
    unlock_option: str = "fido2-device=auto",
) -> CrypttabReport:
    """
    Enable FIDO2 unlock in crypttab when it has a single anchored entry.

    The original is copied to ``backup_path`` (attributes preserved) before
    the rewrite. Every other state leaves the file untouched.

    Raises:
        CrypttabMissingError: If the crypttab file does not exist.
    """
    path = Path(path)
    backup_path = Path(backup_path)

    report = inspect_crypttab(path, anchor, unlock_option)
    if report.state is CrypttabState.MISSING:
        raise CrypttabMissingError(f"{path} not found or not a regular file. Manual configuration is required.")
    if report.state is not CrypttabState.SINGLE_DISCARD:
        logger.info("Leaving %s untouched (state: %s)", path, report.state.value)
        return report

    original = _read(path)
    shutil.copy2(path, backup_path)
    logger.info("Backed up %s to %s", path, backup_path)

    lines = original.splitlines(keepends=True)
    index = report.entries[0].line_number - 1
    lines[index] = rewrite_line(lines[index], anchor, unlock_option)
    _atomic_write(path, "".join(lines))
    logger.info("Appended %s to the entry on line %d of %s", unlock_option, index + 1, path)

    report.updated = True
    report.backup_path = backup_path
    return report
