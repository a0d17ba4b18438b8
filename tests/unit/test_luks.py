# tests/unit/test_luks.py
import logging
import stat
import types
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from fidoenroll import luks
from fidoenroll.crypttab import CrypttabState
from fidoenroll.errors import (
    CrypttabMissingError,
    InvalidDeviceError,
    PrivilegeError,
    UserAbortedError,
)

SINGLE = "luks-root UUID=1234 none luks,discard\n"
DOUBLE = "luks-root UUID=1234 none luks,discard\nluks-home UUID=5678 none luks,discard\n"


@pytest.fixture
def as_root(mocker: MockerFixture):
    mocker.patch("fidoenroll.paths.is_root", return_value=True)


@pytest.fixture
def block_device(mocker: MockerFixture) -> Path:
    device = Path("/dev/nvme0n1p3")
    mocker.patch("fidoenroll.luks.validate_block_device", return_value=device)
    return device


@pytest.fixture
def crypttab_file(app_config) -> Path:
    path = Path(app_config.luks.crypttab)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def answers(mocker: MockerFixture, *values: str):
    return mocker.patch("fidoenroll.prompt.Prompt.ask", side_effect=list(values))


def test_require_root(mocker: MockerFixture):
    mocker.patch("fidoenroll.paths.is_root", return_value=False)

    with pytest.raises(PrivilegeError, match="sudo"):
        luks.require_root()


def test_validate_block_device_missing(tmp_path: Path):
    with pytest.raises(InvalidDeviceError, match="does not exist"):
        luks.validate_block_device(str(tmp_path / "nope"))


def test_validate_block_device_regular_file(tmp_path: Path):
    regular = tmp_path / "disk.img"
    regular.write_bytes(b"\0")

    with pytest.raises(InvalidDeviceError):
        luks.validate_block_device(str(regular))


def test_validate_block_device_empty():
    with pytest.raises(InvalidDeviceError):
        luks.validate_block_device("")


def test_validate_block_device_accepts_block_device(mocker: MockerFixture):
    mocker.patch(
        "fidoenroll.luks.os.stat",
        return_value=types.SimpleNamespace(st_mode=stat.S_IFBLK | 0o660),
    )

    assert luks.validate_block_device("/dev/sda3") == Path("/dev/sda3")


def test_setup_updates_crypttab_and_rebuilds(
    mocker: MockerFixture, fake_runner, app_config, as_root, block_device, crypttab_file
):
    crypttab_file.write_text(SINGLE)
    answers(mocker, "y", str(block_device), "n")

    report = luks.run_luks_setup(app_config, fake_runner)

    assert report.updated
    assert crypttab_file.read_text() == "luks-root UUID=1234 none luks,discard,fido2-device=auto\n"
    assert Path(app_config.luks.crypttab_backup).read_text() == SINGLE
    assert Path(app_config.luks.dracut_conf).read_text() == 'add_dracutmodules+=" fido2 "\n'
    assert fake_runner.commands == [
        ["lsblk", "-o", "NAME,TYPE,SIZE,MOUNTPOINT"],
        ["systemd-cryptenroll", "--fido2-device=auto", "/dev/nvme0n1p3"],
        ["dracut", "-f"],
    ]


def test_setup_ambiguous_crypttab_still_rebuilds(
    mocker: MockerFixture, fake_runner, app_config, as_root, block_device, crypttab_file, capsys
):
    crypttab_file.write_text(DOUBLE)
    answers(mocker, "y", str(block_device), "n")

    report = luks.run_luks_setup(app_config, fake_runner)

    assert report.state is CrypttabState.AMBIGUOUS
    assert crypttab_file.read_text() == DOUBLE
    assert not Path(app_config.luks.crypttab_backup).exists()
    assert fake_runner.find("dracut", "-f")
    assert "Manual update recommended" in capsys.readouterr().err


def test_setup_missing_crypttab_is_fatal(
    mocker: MockerFixture, fake_runner, app_config, as_root, block_device, crypttab_file
):
    answers(mocker, "y", str(block_device))

    with pytest.raises(CrypttabMissingError):
        luks.run_luks_setup(app_config, fake_runner)

    assert fake_runner.find("systemd-cryptenroll")
    assert fake_runner.find("dracut") == []


def test_setup_abort_touches_nothing(
    mocker: MockerFixture, fake_runner, app_config, as_root, crypttab_file
):
    crypttab_file.write_text(SINGLE)
    answers(mocker, "n")

    with pytest.raises(UserAbortedError):
        luks.run_luks_setup(app_config, fake_runner)

    assert fake_runner.calls == []
    assert not Path(app_config.luks.dracut_conf).exists()
    assert crypttab_file.read_text() == SINGLE


def test_setup_requires_root_before_prompting(mocker: MockerFixture, fake_runner, app_config):
    mocker.patch("fidoenroll.paths.is_root", return_value=False)
    ask = answers(mocker, "y")

    with pytest.raises(PrivilegeError):
        luks.run_luks_setup(app_config, fake_runner)

    ask.assert_not_called()
    assert fake_runner.calls == []


def test_setup_invalid_device_stops_before_enrollment(
    mocker: MockerFixture, fake_runner, app_config, as_root, tmp_path
):
    answers(mocker, "y", str(tmp_path / "not-a-device"))

    with pytest.raises(InvalidDeviceError):
        luks.run_luks_setup(app_config, fake_runner)

    assert fake_runner.find("systemd-cryptenroll") == []


def test_setup_reboots_when_confirmed(
    mocker: MockerFixture, fake_runner, app_config, as_root, block_device, crypttab_file
):
    crypttab_file.write_text(SINGLE)
    answers(mocker, "y", str(block_device), "Y")

    luks.run_luks_setup(app_config, fake_runner)

    assert fake_runner.commands[-2:] == [["dracut", "-f"], ["reboot"]]
    assert fake_runner.find("reboot")[0].privileged


def test_setup_non_utf8_crypttab_still_rebuilds(
    mocker: MockerFixture, fake_runner, app_config, as_root, block_device, crypttab_file
):
    crypttab_file.write_bytes(b"# caf\xe9\nroot UUID=1 none luks,discard\n")
    answers(mocker, "y", str(block_device), "n")

    report = luks.run_luks_setup(app_config, fake_runner)

    assert report.updated
    assert crypttab_file.read_bytes() == b"# caf\xe9\nroot UUID=1 none luks,discard,fido2-device=auto\n"
    assert fake_runner.find("dracut", "-f")


def test_setup_logs_each_stage(
    mocker: MockerFixture, fake_runner, app_config, as_root, block_device, crypttab_file, caplog
):
    caplog.set_level(logging.INFO, logger="fidoenroll")
    crypttab_file.write_text(SINGLE)
    answers(mocker, "y", str(block_device), "n")

    luks.run_luks_setup(app_config, fake_runner)

    assert f"Wrote dracut drop-in {app_config.luks.dracut_conf}" in caplog.text
    assert "Enrolled FIDO2 key with /dev/nvme0n1p3" in caplog.text
    assert "state=single-discard updated=True" in caplog.text
    assert "Reboot declined" in caplog.text


def test_validate_block_device_logs_selection(mocker: MockerFixture, caplog):
    caplog.set_level(logging.INFO, logger="fidoenroll")
    mocker.patch(
        "fidoenroll.luks.os.stat",
        return_value=types.SimpleNamespace(st_mode=stat.S_IFBLK | 0o660),
    )

    luks.validate_block_device("/dev/sda3")

    assert "Selected block device /dev/sda3" in caplog.text
