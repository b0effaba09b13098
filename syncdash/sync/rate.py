"""Throughput from two samples of a cumulative byte counter."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from syncdash.models.system import ConnectionTotal


@dataclass(frozen=True)
class ByteSample:
    """A cumulative byte counter read at a point in time."""

    bytes: int
    at: datetime


def rate(before: ByteSample, after: ByteSample) -> int:
    """Bytes per second between two samples of the same counter.

    Returns 0 when there is no prior sample (``before.bytes == 0``) or when
    less than one whole second separates the samples.
    """
    if before.bytes == 0:
        return 0
    seconds = int((after.at - before.at).total_seconds())
    if seconds == 0:
        return 0
    return int((after.bytes - before.bytes) / seconds)


def in_out_rates(
    before: ConnectionTotal | None, after: ConnectionTotal | None,
) -> tuple[int, int]:
    """Incoming and outgoing rates between two connection samples."""
    if before is None or after is None:
        return 0, 0
    inbound = rate(
        ByteSample(before.in_bytes_total, before.at),
        ByteSample(after.in_bytes_total, after.at),
    )
    outbound = rate(
        ByteSample(before.out_bytes_total, before.at),
        ByteSample(after.out_bytes_total, after.at),
    )
    return inbound, outbound
