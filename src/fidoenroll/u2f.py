# src/fidoenroll/u2f.py
"""Register a FIDO2 security key for PAM login with pam-u2f."""

import getpass
import logging
from pathlib import Path
from typing import List

from rich.console import Console

from . import authselect, packages, paths, prompt
from .config import AppConfig
from .errors import ParseError
from .parsing import first_fido_device_path
from .runner import CommandRunner, Output

logger = logging.getLogger(__name__)
console = Console(stderr=True)

STEPS = [
    "Install required packages for security key PAM authentication",
    "Detect and initialize a security key using FIDO2",
    "Register your security key with pam-u2f",
    "Save your credentials in the pam-u2f key mapping file",
    "Configure your system's authselect profile to use pam-u2f",
]


def detect_device(runner: CommandRunner) -> str:
    """
    List FIDO2 devices and return the first device path.

    Raises:
        DeviceNotFoundError: If no device is attached.
        ParseError: If the listing contains no device path.
    """
    console.print("🔎 [bold]Detecting security key (FIDO2 device)...[/bold]")
    listing = runner.run(["fido2-token", "-L"], check=False).stdout
    if listing.strip():
        console.print(listing.rstrip(), markup=False, highlight=False)
    device_path = first_fido_device_path(listing)
    console.print(f"Found security key at [bold cyan]{device_path}[/bold cyan]")
    return device_path


def initialize_device(runner: CommandRunner, device_path: str) -> None:
    console.print("Initializing security key for use (this is safe to rerun)...")
    runner.run(["fido2-token", "-C", device_path], privileged=True, output=Output.TERMINAL)


def registration_command(pin_verification: bool, additional: bool = False) -> List[str]:
    command = ["pamu2fcfg"]
    if additional:
        command.append("-n")
    if pin_verification:
        command.append("--pin-verification")
    return command


def _mapping_line_index(lines: List[str], username: str):
    prefix = f"{username}:"
    for index, line in enumerate(lines):
        if line.startswith(prefix):
            return index
    return None


def has_mapping(keys_file: Path, username: str) -> bool:
    """Check whether the key mapping file already holds a line for the user."""
    if not keys_file.is_file():
        return False
    lines = keys_file.read_text(encoding="utf-8").splitlines()
    return _mapping_line_index(lines, username) is not None


def write_mapping(keys_file: Path, mapping: str) -> None:
    """Replace the key mapping file with a freshly captured mapping."""
    keys_file.parent.mkdir(parents=True, exist_ok=True)
    keys_file.write_text(mapping.strip() + "\n", encoding="utf-8")


def append_credential(keys_file: Path, username: str, fragment: str) -> None:
    """
    Add another device's credential to the user's mapping line.

    pam-u2f keeps every device of a user on one line, separated by ``:``.
    ``pamu2fcfg -n`` prints the fragment in that form (``:<credential>``).

    Raises:
        ParseError: If the fragment does not start with ``:``.
    """
    fragment = fragment.strip()
    if not fragment.startswith(":"):
        raise ParseError("Unexpected output from 'pamu2fcfg -n'.", fragment)

    lines = keys_file.read_text(encoding="utf-8").splitlines()
    index = _mapping_line_index(lines, username)
    if index is None:
        lines.append(f"{username}{fragment}")
    else:
        lines[index] = lines[index].rstrip() + fragment
    keys_file.write_text("\n".join(lines) + "\n", encoding="utf-8")


def register_key(config: AppConfig, runner: CommandRunner) -> Path:
    """Capture the key's credential into the pam-u2f key mapping file."""
    keys_file = config.keys_file_path()
    username = getpass.getuser()

    additional = False
    if has_mapping(keys_file, username):
        console.print(f"A key is already registered for [bold]{username}[/bold] in {keys_file}.")
        additional = prompt.confirm("Add this key as an additional device instead of replacing it?")

    console.print("👆 [bold]Touch your security key when prompted to complete registration...[/bold]")
    result = runner.run(
        registration_command(config.u2f.pin_verification, additional=additional),
        output=Output.STDOUT,
    )
    if not result.stdout.strip():
        raise ParseError("pamu2fcfg produced no credential.", result.stdout)
    logger.debug(
        "pamu2fcfg output for %(user)s (additional=%(additional)s): %(credential)s",
        {"user": username, "additional": additional, "credential": result.stdout.strip()},
    )

    if additional:
        append_credential(keys_file, username, result.stdout)
    else:
        write_mapping(keys_file, result.stdout)
    logger.info("Saved pam-u2f mapping for %s to %s", username, keys_file)

    console.print(f"✅ [bold green]U2F keys saved to {keys_file}[/bold green]")
    return keys_file


def run_u2f_setup(config: AppConfig, runner: CommandRunner) -> authselect.AuthselectOutcome:
    """Procedure A: register the key with pam-u2f and enable it in authselect."""
    prompt.describe("This will:", STEPS)
    console.print("\nYou will be prompted to touch your security key during the process.\n")
    prompt.require_confirmation("Do you want to proceed?")

    if paths.is_root():
        console.print(
            "⚠️ [yellow]Running as root: the key will be registered for root, "
            "not for your regular user.[/yellow]"
        )

    packages.ensure_packages(runner, config.packages.install_command, config.packages.u2f)
    device_path = detect_device(runner)
    initialize_device(runner, device_path)
    register_key(config, runner)
    outcome = authselect.enable_feature(runner, config.u2f)

    console.print("🎉 [bold green]Security key PAM authentication setup complete.[/bold green]")
    return outcome
