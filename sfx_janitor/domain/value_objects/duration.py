"""
Duration Value Object

Architectural Intent:
- Parses operator-supplied duration expressions ("45m", "1h30m", "1.5h")
- Keeps the CLI free of unit arithmetic; callers receive a timedelta

Design Decisions:
- Grammar: optional sign, then one or more <decimal><unit> pairs
- Units: ns, us (or µs), ms, s, m, h
- A bare "0" is the only unit-less expression accepted
"""

import re
from datetime import timedelta

_UNIT_MICROSECONDS = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}

# Longest units first so "ms" is not read as "m" followed by garbage
_COMPONENT_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


class InvalidDurationError(ValueError):
    """Raised when a duration expression cannot be parsed."""


def parse_duration(text: str) -> timedelta:
    """Parse a duration expression into a timedelta.

    Raises:
        InvalidDurationError: if the expression is empty or malformed
    """
    original = text
    if not text:
        raise InvalidDurationError("invalid duration: empty string")

    sign = 1
    if text[0] in "+-":
        if text[0] == "-":
            sign = -1
        text = text[1:]

    if text == "0":
        return timedelta(0)
    if not text:
        raise InvalidDurationError(f"invalid duration: {original!r}")

    total_us = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT_RE.match(text, pos)
        if not match:
            raise InvalidDurationError(f"invalid duration: {original!r}")
        number, unit = match.groups()
        total_us += float(number) * _UNIT_MICROSECONDS[unit]
        pos = match.end()

    try:
        return timedelta(microseconds=sign * total_us)
    except (OverflowError, ValueError) as e:
        raise InvalidDurationError(f"duration out of range: {original!r}") from e
