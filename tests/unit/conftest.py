# tests/unit/conftest.py
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

import pytest

from fidoenroll import config
from fidoenroll.errors import CommandError
from fidoenroll.runner import CommandResult, Output


@dataclass
class Call:
    args: List[str]
    privileged: bool
    output: Output


class FakeRunner:
    """Records commands and answers them from scripted responses."""

    def __init__(self):
        self.calls: List[Call] = []
        self._responses = []

    def respond(self, *prefix: str, stdout: str = "", stderr: str = "", returncode: int = 0):
        self._responses.append((list(prefix), stdout, stderr, returncode))

    def run(self, args, *, privileged=False, check=True, output=Output.CAPTURE):
        args = [str(a) for a in args]
        self.calls.append(Call(args, privileged, output))
        for prefix, stdout, stderr, returncode in self._responses:
            if args[: len(prefix)] == prefix:
                break
        else:
            stdout, stderr, returncode = "", "", 0
        if check and returncode != 0:
            raise CommandError(args, returncode, stderr)
        return CommandResult(args, returncode, stdout, stderr)

    @property
    def commands(self) -> List[List[str]]:
        return [call.args for call in self.calls]

    def find(self, *prefix: str) -> List[Call]:
        return [call for call in self.calls if call.args[: len(prefix)] == list(prefix)]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture(autouse=True)
def clear_config_cache():
    config.load_config.cache_clear()
    yield
    config.load_config.cache_clear()


@pytest.fixture(autouse=True)
def isolate_app_logger():
    logger = logging.getLogger("fidoenroll")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def app_config(tmp_path: Path) -> config.AppConfig:
    """Defaults with every file the procedures touch moved under tmp_path."""
    return config.AppConfig.model_validate({
        "u2f": {"keys_file": str(tmp_path / "home" / ".config" / "Yubico" / "u2f_keys")},
        "luks": {
            "dracut_conf": str(tmp_path / "etc" / "dracut.conf.d" / "fido2.conf"),
            "crypttab": str(tmp_path / "etc" / "crypttab"),
            "crypttab_backup": str(tmp_path / "etc" / "crypttab.bak"),
        },
    })
