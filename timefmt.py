"""Parsing and formatting helpers for race times and paces."""

from __future__ import annotations

import math

# Longest duration accepted anywhere (24 h); longer text is treated as a typo.
MAX_DURATION_SECONDS = 24 * 3600
_MAX_PART_DIGITS = 6


def round_half_up(value: float) -> int:
    """Round ``.5`` away from zero for positive values (``round`` is banker's)."""

    return int(math.floor(value + 0.5))


def _pad2(value: int) -> str:
    return f"{value:02d}"


def parse_duration(text: str | None) -> int | None:
    """Parse ``ss``, ``mm:ss`` or ``hh:mm:ss`` into seconds.

    Returns ``None`` for empty text, when any component is not a plain
    non-negative integer, or when the total exceeds 24 hours. Nothing is
    partially parsed.
    """

    if text is None:
        return None
    text = text.strip()
    if not text:
        return None

    parts = text.split(":")
    if len(parts) > 3:
        return None
    values: list[int] = []
    for part in parts:
        part = part.strip()
        if not part.isdigit() or not part.isascii() or len(part) > _MAX_PART_DIGITS:
            return None
        values.append(int(part))

    if len(values) == 3:
        hh, mm, ss = values
        total = hh * 3600 + mm * 60 + ss
    elif len(values) == 2:
        mm, ss = values
        total = mm * 60 + ss
    else:
        total = values[0]
    if total > MAX_DURATION_SECONDS:
        return None
    return total


def format_duration(seconds: float | None) -> str:
    if seconds is None:
        return ""
    total = round_half_up(seconds)
    hh = total // 3600
    mm = (total % 3600) // 60
    ss = total % 60
    if hh > 0:
        return f"{hh}:{_pad2(mm)}:{_pad2(ss)}"
    return f"{mm}:{_pad2(ss)}"


def format_pace(sec_per_km: float) -> str:
    total = round_half_up(sec_per_km)
    minutes = total // 60
    seconds = total % 60
    return f"{minutes}:{_pad2(seconds)}/km"
