"""Human-readable formatting of sizes, rates, durations and identifiers."""

from __future__ import annotations

import math
from datetime import datetime

from syncdash.models.base import ZERO_TIME

_IEC_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB")

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
SECONDS_PER_MONTH = 2629800  # 30.44 days
SECONDS_PER_YEAR = 31557600  # 365.25 days

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

OS_NAMES = {
    "darwin": "macOS",
    "dragonfly": "DragonFly BSD",
    "freebsd": "FreeBSD",
    "openbsd": "OpenBSD",
    "netbsd": "NetBSD",
    "linux": "Linux",
    "windows": "Windows",
    "solaris": "Solaris",
}

ARCH_NAMES = {
    "386": "32-bit Intel/AMD",
    "amd64": "64-bit Intel/AMD",
    "arm": "32-bit ARM",
    "arm64": "64-bit ARM",
    "ppc64": "64-bit PowerPC",
    "ppc64le": "64-bit PowerPC (LE)",
    "mips": "32-bit MIPS",
    "mipsle": "32-bit MIPS (LE)",
    "mips64": "64-bit MIPS",
    "mips64le": "64-bit MIPS (LE)",
    "riscv64": "64-bit RISC-V",
    "s390x": "64-bit z/Architecture",
}


def ibytes(size: int) -> str:
    """IEC size: ``512 B``, ``1.5 KiB``, ``12 MiB``."""
    if size < 10:
        return f"{max(size, 0)} B"
    exponent = 0
    while exponent < len(_IEC_UNITS) - 1 and size >= 1024 ** (exponent + 1):
        exponent += 1
    value = math.floor(size / 1024**exponent * 10 + 0.5) / 10
    if value >= 10:
        return f"{value:.0f} {_IEC_UNITS[exponent]}"
    return f"{value:.1f} {_IEC_UNITS[exponent]}"


def byte_rate(bytes_per_second: int) -> str:
    return f"{ibytes(bytes_per_second)}/s"


def duration(seconds: int) -> str:
    """Compact duration without seconds, e.g. ``01d 02h 03m``; ``0s`` when short."""
    parts = []
    for unit, suffix in (
        (SECONDS_PER_YEAR, "y"),
        (SECONDS_PER_MONTH, "mo"),
        (SECONDS_PER_DAY, "d"),
        (SECONDS_PER_HOUR, "h"),
        (SECONDS_PER_MINUTE, "m"),
    ):
        count, seconds = divmod(seconds, unit)
        if count > 0:
            parts.append(f"{count:02d}{suffix}")
    return " ".join(parts) or "0s"


def scan_eta(seconds: int) -> str:
    """Approximate time left for a scan, e.g. ``~02m 05s``."""
    if seconds > SECONDS_PER_MONTH:
        return "> 1 month"
    days, seconds = divmod(seconds, SECONDS_PER_DAY)
    hours, seconds = divmod(seconds, SECONDS_PER_HOUR)
    minutes, seconds = divmod(seconds, SECONDS_PER_MINUTE)
    parts = [f"{v:02d}{s}" for v, s in ((days, "d"), (hours, "h"), (minutes, "m")) if v > 0]
    parts.append(f"{seconds:02d}s")
    return "~" + " ".join(parts)


def short_id(device_id: str) -> str:
    """First group of a device ID, upper-cased."""
    return device_id.split("-", 1)[0].upper()


def os_name(os: str) -> str:
    return OS_NAMES.get(os, "unknown os")


def arch_name(arch: str) -> str:
    return ARCH_NAMES.get(arch, "unknown arch")


def timestamp(at: datetime | None) -> str:
    if at is None or at == ZERO_TIME:
        return "Never"
    return at.strftime(DATETIME_FORMAT)
