# src/fidoenroll/parsing.py
"""Parsers for the text output of external tools and for crypttab.

Each parser accepts a fixed grammar and raises ``ParseError`` when the text
does not match it, so a change in an upstream tool's output surfaces as a
typed failure instead of silently wrong behaviour.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import DeviceNotFoundError, ParseError

# fido2-token -L: "/dev/hidraw4: vendor=0x1050, product=0x0407 (Yubico YubiKey OTP+FIDO+CCID)"
_FIDO_DEVICE_RE = re.compile(r"^\s*(?P<path>/dev/hidraw\d+)(?::\s*(?P<description>.*))?$")

# authselect current
_PROFILE_ID_RE = re.compile(r"^\s*Profile ID:\s*(?P<id>\S+)\s*$")
_FEATURES_HEADER_RE = re.compile(r"^\s*Enabled features:\s*$")
_FEATURE_ITEM_RE = re.compile(r"^\s*-\s+(?P<feature>\S+)\s*$")


@dataclass(frozen=True)
class FidoDevice:
    path: str
    description: str = ""


@dataclass(frozen=True)
class AuthProfile:
    """A snapshot of ``authselect current``."""
    profile_id: str
    features: List[str] = field(default_factory=list)

    def has_feature(self, feature: str) -> bool:
        return feature in self.features


@dataclass(frozen=True)
class CrypttabEntry:
    """One active crypttab line: ``name device keyfile options``."""
    line_number: int
    raw: str
    name: str
    device: Optional[str] = None
    keyfile: Optional[str] = None
    options: List[str] = field(default_factory=list)
    extra: List[str] = field(default_factory=list)


def parse_fido_devices(text: str) -> List[FidoDevice]:
    """Parse ``fido2-token -L`` output into devices, ignoring unrelated lines."""
    devices = []
    for line in text.splitlines():
        match = _FIDO_DEVICE_RE.match(line)
        if match:
            devices.append(FidoDevice(match.group("path"), (match.group("description") or "").strip()))
    return devices


def first_fido_device_path(text: str) -> str:
    """
    Return the path of the first FIDO2 device listed.

    Raises:
        DeviceNotFoundError: If the listing is empty.
        ParseError: If the listing has content but no device path.
    """
    if not text.strip():
        raise DeviceNotFoundError("No FIDO2 device found. Please insert your security key and try again.")
    devices = parse_fido_devices(text)
    if not devices:
        raise ParseError("Failed to extract device path.", text)
    return devices[0].path


def parse_authselect_current(text: str) -> AuthProfile:
    """
    Parse ``authselect current`` output.

    Raises:
        ParseError: If no ``Profile ID`` line is present, e.g. when authselect
            reports that no configuration exists.
    """
    profile_id = None
    features: List[str] = []
    in_features = False

    for line in text.splitlines():
        id_match = _PROFILE_ID_RE.match(line)
        if id_match:
            profile_id = id_match.group("id")
            in_features = False
            continue
        if _FEATURES_HEADER_RE.match(line):
            in_features = True
            continue
        if in_features:
            item = _FEATURE_ITEM_RE.match(line)
            if item:
                features.append(item.group("feature"))
            elif line.strip():
                in_features = False

    if profile_id is None:
        raise ParseError("Could not determine the current authselect profile.", text)
    return AuthProfile(profile_id, features)


def is_active_line(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith("#")


def parse_crypttab(text: str) -> List[CrypttabEntry]:
    """Parse crypttab content into its active (non-blank, non-comment) entries."""
    entries = []
    for number, line in enumerate(text.splitlines(), start=1):
        if not is_active_line(line):
            continue
        fields = line.split()
        options = fields[3].split(",") if len(fields) > 3 else []
        entries.append(
            CrypttabEntry(
                line_number=number,
                raw=line,
                name=fields[0],
                device=fields[1] if len(fields) > 1 else None,
                keyfile=fields[2] if len(fields) > 2 else None,
                options=options,
                extra=fields[4:],
            )
        )
    return entries
