# src/fidoenroll/luks.py
"""Enroll a FIDO2 security key for LUKS unlock at boot."""

import logging
import os
import stat
from pathlib import Path

from rich.console import Console

from . import initramfs, paths, prompt
from .config import AppConfig, LuksConfig
from .crypttab import CrypttabReport, CrypttabState, update_crypttab
from .errors import InvalidDeviceError, PrivilegeError
from .runner import CommandRunner, Output

logger = logging.getLogger(__name__)
console = Console(stderr=True)

STEPS = [
    "Configure dracut to include fido2 support",
    "Enroll your security key with a LUKS-encrypted volume using systemd-cryptenroll",
    "Modify /etc/crypttab to enable FIDO2 unlocking",
    "Regenerate the initramfs (dracut -f)",
]

ENROLL_COMMAND = ["systemd-cryptenroll", "--fido2-device=auto"]


def require_root() -> None:
    if not paths.is_root():
        raise PrivilegeError("LUKS enrollment edits files under /etc. Re-run with sudo: sudo fidoenroll luks")


def list_block_devices(runner: CommandRunner, columns: str) -> None:
    console.print("Available block devices:")
    runner.run(["lsblk", "-o", columns], output=Output.TERMINAL)


def validate_block_device(device: str) -> Path:
    """
    Raises:
        InvalidDeviceError: If the path does not exist or is not a block device.
    """
    if not device:
        raise InvalidDeviceError("No device path given.")
    try:
        st = os.stat(device)
    except OSError:
        raise InvalidDeviceError(f"Device {device} does not exist or is not a block device.")
    if not stat.S_ISBLK(st.st_mode):
        raise InvalidDeviceError(f"Device {device} does not exist or is not a block device.")
    logger.info("Selected block device %s", device)
    return Path(device)


def enroll_device(runner: CommandRunner, device: Path) -> None:
    console.print(f"👆 [bold]Enrolling your security key with {device}...[/bold] Touch it when it blinks.")
    runner.run([*ENROLL_COMMAND, str(device)], privileged=True, output=Output.TERMINAL)
    logger.info("Enrolled FIDO2 key with %s", device)


def report_crypttab(report: CrypttabReport, luks: LuksConfig) -> None:
    """Tell the user what happened to crypttab and what to do by hand."""
    example = f"Example option to append: ,{luks.unlock_option}"
    state = report.state

    if report.updated:
        console.print(f"Backed up original crypttab to [bold]{report.backup_path}[/bold]")
        console.print(f"✅ [green]Updated {report.path} to enable FIDO2 unlocking.[/green]")
    elif state is CrypttabState.AMBIGUOUS:
        console.print(f"⚠️ [yellow]Multiple entries in {report.path}. Manual update recommended.[/yellow]")
        console.print(example, markup=False, highlight=False)
    elif state is CrypttabState.EMPTY:
        console.print(f"⚠️ [yellow]No active entries in {report.path}. Manual update recommended.[/yellow]")
        console.print(example, markup=False, highlight=False)
    elif state is CrypttabState.ALREADY_ENABLED:
        console.print(f"✅ [green]{report.path} already requests FIDO2 unlocking.[/green]")
    else:
        console.print(
            f"⚠️ [yellow]Single entry detected, but it does not end with '{luks.anchor_option}'.[/yellow]"
        )
        console.print(
            f"Manual edit recommended. Example: add ',{luks.unlock_option}' to the options field.",
            markup=False,
            highlight=False,
        )


def offer_reboot(runner: CommandRunner) -> bool:
    console.print("\nSetup complete. A system reboot is required to test security key unlocking at boot.")
    if prompt.confirm("Do you want to reboot now?"):
        logger.info("Rebooting after LUKS enrollment")
        console.print("Rebooting system...")
        runner.run(["reboot"], privileged=True, output=Output.TERMINAL)
        return True
    logger.info("Reboot declined")
    console.print("You chose not to reboot now. Please reboot manually later to test the setup.")
    return False


def run_luks_setup(config: AppConfig, runner: CommandRunner) -> CrypttabReport:
    """Procedure B: enroll the key against a LUKS volume and prepare the boot path."""
    luks = config.luks
    require_root()

    prompt.describe("This will:", STEPS)
    console.print("\nYou will need to touch your security key during enrollment.\n")
    prompt.require_confirmation("Do you want to proceed?")

    initramfs.write_dracut_conf(Path(luks.dracut_conf), luks.dracut_modules)
    list_block_devices(runner, luks.lsblk_columns)

    device = validate_block_device(
        prompt.ask_device_path(
            "Enter the full device path of your LUKS-encrypted partition (e.g. /dev/nvme0n1p3)"
        )
    )
    enroll_device(runner, device)

    console.print(f"Checking {luks.crypttab} for update...")
    report = update_crypttab(
        Path(luks.crypttab),
        Path(luks.crypttab_backup),
        anchor=luks.anchor_option,
        unlock_option=luks.unlock_option,
    )
    logger.info("crypttab %s: state=%s updated=%s", report.path, report.state.value, report.updated)
    report_crypttab(report, luks)

    initramfs.rebuild_initramfs(runner)
    offer_reboot(runner)
    return report
