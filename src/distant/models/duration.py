"""Engine time values such as ``'30s'`` or ``'5m'``."""

from __future__ import annotations

import re
from typing import Annotated

from pydantic import AfterValidator

_DURATION_RE = re.compile(r"^(\d+)(nanos|micros|ms|s|m|h|d)$")
_DURATION_UNITS = {
    "nanos": 1e-9,
    "micros": 1e-6,
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}


def parse_duration(value: str) -> float:
    """Convert an engine duration string (``'30s'``, ``'5m'``) to seconds.

    Raises:
        ValueError: If ``value`` is not an integer followed by one of the
            engine's time units.
    """
    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(
            f"Invalid duration: {value!r} (expected an integer and one of {', '.join(_DURATION_UNITS)}, e.g. '5m')"
        )
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit]


def _check_duration(value: str) -> str:
    parse_duration(value)
    return value


Duration = Annotated[str, AfterValidator(_check_duration)]
