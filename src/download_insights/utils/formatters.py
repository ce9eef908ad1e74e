"""Human readable formatting for byte counts and throughput."""

from __future__ import annotations

from typing import Sequence, Tuple

_BYTE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")
_SPEED_UNITS = ("B/s", "KB/s", "MB/s", "GB/s")


def _scale(value: float, units: Sequence[str]) -> Tuple[float, str]:
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return value, units[index]


def format_bytes(value: float, decimals: int = 2) -> str:
    if not value or value <= 0:
        return "0 B"
    scaled, unit = _scale(float(value), _BYTE_UNITS)
    return f"{round(scaled, decimals):g} {unit}"


def format_speed(bytes_per_second: float) -> str:
    if not bytes_per_second or bytes_per_second <= 0:
        return "0 B/s"
    scaled, unit = _scale(float(bytes_per_second), _SPEED_UNITS)
    return f"{scaled:.1f} {unit}"


def split_speed(bytes_per_second: float) -> Tuple[str, str]:
    """Return value and unit separately for large-number displays."""

    value, _, unit = format_speed(bytes_per_second).partition(" ")
    return value, unit


def format_percent(value: float) -> str:
    return f"{value:.1f}%"
