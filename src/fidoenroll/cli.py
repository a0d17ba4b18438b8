# src/fidoenroll/cli.py
"""Command-line interface for fidoenroll."""

import shutil
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from . import __version__, config, errors, paths
from .errors import FidoEnrollError

app = typer.Typer(
    name="fidoenroll",
    help="Enroll a FIDO2 security key for PAM login and LUKS unlock at boot.",
    add_completion=False,
)

console = Console(stderr=True)

REQUIRED_BINARIES = [
    "dnf",
    "fido2-token",
    "pamu2fcfg",
    "authselect",
    "systemd-cryptenroll",
    "dracut",
    "lsblk",
]


def version_callback(value: bool):
    """Print the version and exit."""
    if value:
        print(f"fidoenroll version: {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help=f"Path to the config.yaml file. [default: {paths.get_default_config_path()}]",
        resolve_path=True,
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True
    ),
):
    """
    fidoenroll CLI.
    """
    from . import logging
    try:
        cfg = config.load_config(config_path)
        logging.setup_logging(cfg)
        ctx.obj = cfg
    except FidoEnrollError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=e.exit_code)


def _runner(cfg: config.AppConfig):
    from .runner import SubprocessRunner
    return SubprocessRunner(use_sudo=cfg.use_sudo)


@app.command()
def u2f(ctx: typer.Context):
    """Register a security key for PAM login (pam-u2f + authselect)."""
    from . import u2f as procedure

    cfg: config.AppConfig = ctx.obj
    try:
        procedure.run_u2f_setup(cfg, _runner(cfg))
    except FidoEnrollError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=e.exit_code)


@app.command()
def luks(ctx: typer.Context):
    """Enroll a security key for LUKS unlock at boot (systemd-cryptenroll + dracut)."""
    from . import luks as procedure

    cfg: config.AppConfig = ctx.obj
    try:
        procedure.run_luks_setup(cfg, _runner(cfg))
    except FidoEnrollError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=e.exit_code)


@app.command()
def crypttab(
    ctx: typer.Context,
    path: Optional[Path] = typer.Option(
        None, "--path", help="crypttab file to inspect. Overrides config."
    ),
):
    """Report whether crypttab can be updated automatically. Read-only."""
    from .crypttab import CrypttabState, inspect_crypttab

    cfg: config.AppConfig = ctx.obj
    target = path or Path(cfg.luks.crypttab)
    try:
        report = inspect_crypttab(target, cfg.luks.anchor_option, cfg.luks.unlock_option)
    except OSError as e:
        console.print(f"[bold red]Error:[/bold red] Cannot read {target}: {e}")
        raise typer.Exit(code=errors.ExitCode.UNKNOWN_ERROR)

    console.print(f"{report.path}: [bold]{report.state.value}[/bold]")
    for entry in report.entries:
        console.print(f"  {entry.line_number}: {entry.raw}", markup=False, highlight=False)
    if report.state is CrypttabState.MISSING:
        raise typer.Exit(code=errors.ExitCode.CRYPTTAB_MISSING)


@app.command("paths")
def show_paths(ctx: typer.Context):
    """Print resolved paths as JSON."""
    import orjson

    cfg: config.AppConfig = ctx.obj
    data = {
        "HOME": str(paths.HOME),
        "XDG_CONFIG_HOME": str(paths.get_xdg_config_home()),
        "app_config_dir": str(paths.get_app_config_dir()),
        "default_config_path": str(paths.get_default_config_path()),
        "keys_file": str(cfg.keys_file_path()),
        "dracut_conf": cfg.luks.dracut_conf,
        "crypttab": cfg.luks.crypttab,
        "crypttab_backup": cfg.luks.crypttab_backup,
    }
    print(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode())


@app.command()
def doctor(ctx: typer.Context):
    """Check for the external tools both procedures rely on."""
    console.print("[bold]🩺 Running fidoenroll doctor...[/bold]")

    missing = 0
    for binary in REQUIRED_BINARIES:
        if shutil.which(binary):
            console.print(f"✅ [green]Found '{binary}' in PATH.[/green]")
        else:
            missing += 1
            console.print(f"❌ [red]Could not find '{binary}' in PATH.[/red]")

    if paths.is_root():
        console.print("ℹ️  Running as root: 'luks' can run, 'u2f' would register the key for root.")
    else:
        console.print("ℹ️  Running as a regular user: 'u2f' can run, 'luks' needs sudo.")

    if missing:
        raise typer.Exit(code=errors.ExitCode.TOOL_NOT_FOUND)


def run_cli():
    """Main entry point for the CLI application."""
    try:
        app()
    except typer.Exit:
        raise
    except FidoEnrollError as e:
        console.print(f"[bold red]Error:[/bold red] {e}", highlight=False)
        sys.exit(e.exit_code)
    except Exception as e:
        console.print(f"[bold red]An unexpected error occurred:[/bold red] {e}")
        sys.exit(errors.ExitCode.UNKNOWN_ERROR)


if __name__ == "__main__":
    run_cli()
