"""Formatting utilities for byte sizes and history counters."""

import re

# ASCII digits only: no sign, "_" separators or other Unicode digits.
_INTEGER = re.compile(r"[0-9]+")
_DECIMAL = re.compile(r"[0-9]+(\.[0-9]*)?|\.[0-9]+")

# Power-of-1024 multipliers for compact size tokens ("1.5M", "512K").
_TOKEN_UNITS = {
    "B": 1,
    "K": 1024,
    "M": 1024**2,
    "G": 1024**3,
    "T": 1024**4,
}

_HUMAN_UNITS = ["B", "KiB", "MiB", "GiB", "TiB", "PiB"]


def parse_size_token(token: str) -> int:
    """Parse a compact size token into an exact byte count.

    Args:
        token: Bare integer ("1024") or number with one unit letter ("1.5M", "2g")

    Returns:
        Byte count. Unparseable input degrades to 0; an unknown unit letter is
        treated as bytes.
    """
    t = token.strip()
    if not t:
        return 0
    if _INTEGER.fullmatch(t):
        return int(t)

    num, unit = t[:-1], t[-1:]
    if not _DECIMAL.fullmatch(num):
        return 0
    multiplier = _TOKEN_UNITS.get(unit.upper(), 1)
    return int(float(num) * multiplier)


def format_bytes(size: int) -> str:
    """Format a byte count as a human-readable string.

    Returns:
        "512 B" at byte scale, otherwise two decimals: "1.50 MiB"
    """
    value = float(size)
    i = 0
    while value >= 1024 and i < len(_HUMAN_UNITS) - 1:
        value /= 1024
        i += 1
    if i == 0:
        return f"{size} {_HUMAN_UNITS[0]}"
    return f"{value:.2f} {_HUMAN_UNITS[i]}"


def format_history_lines(history_size: int, history_limit: int) -> str | None:
    """Format pane scrollback as "size/limit", or None for unowned processes."""
    if history_size < 0:
        return None
    return f"{history_size}/{history_limit}"
