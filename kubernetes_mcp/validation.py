"""Argument checks for tool inputs.

All checks raise ValidationError with a message suitable for returning to the
calling agent.
"""

import re
from datetime import datetime, timedelta, timezone

from kubernetes_mcp.errors import ValidationError
from kubernetes_mcp.resolver import ALL_KINDS

_KIND_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9]*$")
_NAMESPACE_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
_RESOURCE_NAME_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")
_LABEL_KEY_RE = re.compile(r"^!?[A-Za-z0-9]([-A-Za-z0-9_./]*[A-Za-z0-9])?$")
_SELECTOR_SPLIT_RE = re.compile(r",(?![^()]*\))")
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_RFC3339_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})?$"
)

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

EVENT_TYPES = ("Normal", "Warning")


def validate_kind(kind: str) -> None:
    if not kind:
        raise ValidationError("resource kind cannot be empty")
    if kind == ALL_KINDS:
        return
    if not _KIND_RE.match(kind):
        raise ValidationError(
            "invalid resource kind: must start with letter and contain only alphanumeric characters"
        )


def validate_namespace(namespace: str) -> None:
    if not namespace:
        return
    if len(namespace) > 63:
        raise ValidationError("namespace name too long (max 63 characters)")
    if not _NAMESPACE_RE.match(namespace):
        raise ValidationError(
            "invalid namespace name: must contain only lowercase alphanumeric characters or '-'"
        )


def validate_resource_name(name: str) -> None:
    if not name:
        raise ValidationError("resource name cannot be empty")
    if len(name) > 253:
        raise ValidationError("resource name too long (max 253 characters)")
    if not _RESOURCE_NAME_RE.match(name):
        raise ValidationError(
            "invalid resource name: must contain only lowercase alphanumeric characters, '-', or '.'"
        )


def validate_label_selector(selector: str) -> None:
    if not selector:
        return
    for part in _SELECTOR_SPLIT_RE.split(selector):
        part = part.strip()
        if not part:
            continue
        if "=" in part or " in " in part or " notin " in part:
            continue
        # Bare "key" and "!key" are existence checks.
        if _LABEL_KEY_RE.match(part):
            continue
        raise ValidationError(f"invalid label selector format: {part}")


def validate_event_type(event_type: str) -> str:
    """Return the canonical spelling of a Normal/Warning event type."""
    for known in EVENT_TYPES:
        if event_type.lower() == known.lower():
            return known
    raise ValidationError("invalid event_type: must be 'Normal' or 'Warning' (case-insensitive)")


def parse_duration(value: str) -> timedelta:
    """Parse a Go-style duration such as "30s", "5m" or "1h30m"."""
    text = value.strip()
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValidationError(f"invalid duration '{value}'")

    seconds = 0.0
    pos = 0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValidationError(f"invalid duration '{value}': expected values like '5s', '2m', '1h'")
    return timedelta(seconds=sign * seconds)


def validate_timeout(timeout_seconds: int, default: int) -> int:
    """Return the server-side timeout to send; 0 selects ``default``."""
    if timeout_seconds is None or timeout_seconds == 0:
        return default
    if timeout_seconds < 0:
        raise ValidationError("timeout_seconds must not be negative")
    return int(timeout_seconds)


def parse_rfc3339(value: str) -> datetime:
    match = _RFC3339_RE.match(value.strip())
    if not match:
        raise ValidationError(f"invalid timestamp '{value}' (expected RFC3339)")
    date, clock, fraction, offset = match.groups()
    text = f"{date}T{clock}"
    if fraction:
        # fromisoformat on 3.10 only takes 3 or 6 fractional digits.
        text += "." + fraction[:6].ljust(6, "0")
    if offset and offset not in ("Z", "z"):
        text += offset
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(f"invalid timestamp '{value}' (expected RFC3339): {exc}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
