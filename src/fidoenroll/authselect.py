# src/fidoenroll/authselect.py
"""Add the pam-u2f feature to the active authselect profile.

Only the ``local`` profile is reapplied automatically. For any other profile
the correct base profile cannot be inferred safely, and reapplying the wrong
one can lock the user out, so a command is suggested instead.
"""

import logging
import shlex
from dataclasses import dataclass, field
from typing import List, Optional

from rich.console import Console

from .config import U2fConfig
from .errors import ParseError
from .parsing import AuthProfile, parse_authselect_current
from .runner import CommandRunner, Output

logger = logging.getLogger(__name__)
console = Console(stderr=True)


@dataclass
class AuthselectOutcome:
    """What happened to the authselect profile."""
    profile: Optional[AuthProfile]
    applied: bool = False
    already_enabled: bool = False
    command: List[str] = field(default_factory=list)

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)


def select_command(profile_id: str, features: List[str], feature: str) -> List[str]:
    """Build ``authselect select`` keeping the enabled features and adding one."""
    combined = [f for f in features if f != feature] + [feature]
    return ["authselect", "select", profile_id, *combined]


def current_profile(runner: CommandRunner) -> tuple[str, Optional[AuthProfile]]:
    """Query authselect; unparsable output yields no profile."""
    result = runner.run(["authselect", "current"], check=False)
    raw = result.stdout
    try:
        return raw, parse_authselect_current(raw)
    except ParseError as e:
        logger.warning("%s", e)
        return raw, None


def enable_feature(runner: CommandRunner, u2f: U2fConfig) -> AuthselectOutcome:
    """Enable ``u2f.authselect_feature`` on the local profile, or suggest how to."""
    console.print("🔎 [bold]Checking authselect profile...[/bold]")
    raw, profile = current_profile(runner)
    feature = u2f.authselect_feature

    if profile is not None and profile.profile_id == u2f.local_profile:
        if profile.has_feature(feature):
            console.print(f"✅ [green]'{feature}' is already enabled on the {profile.profile_id} profile.[/green]")
            return AuthselectOutcome(profile, already_enabled=True)

        command = select_command(profile.profile_id, profile.features, feature)
        options = " ".join(command[3:])
        console.print(f"Using {profile.profile_id} profile. Applying authselect options: [bold cyan]{options}[/bold cyan]")
        runner.run(command, privileged=True, output=Output.TERMINAL)
        return AuthselectOutcome(profile, applied=True, command=command)

    features = profile.features if profile else []
    profile_id = profile.profile_id if profile else u2f.fallback_profile
    suggestion = ["sudo", *select_command(profile_id, features, feature)]

    console.print(f"⚠️ [yellow]Your current authselect profile is not {u2f.local_profile}:[/yellow]")
    console.print(raw.rstrip() or "(no output from 'authselect current')", markup=False, highlight=False)
    console.print()
    console.print("⚠️ [yellow]To continue, you'll need to review your authselect configuration manually.[/yellow]")
    console.print("Suggested command:")
    console.print(f"  {shlex.join(suggestion)}", markup=False, highlight=False, soft_wrap=True)
    return AuthselectOutcome(profile, command=suggestion)
