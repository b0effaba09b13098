"""Tests for human-readable formatting helpers."""

from __future__ import annotations

import pytest
from conftest import NAS_ID, NOW

from syncdash.display.humanize import (
    arch_name,
    byte_rate,
    duration,
    ibytes,
    os_name,
    scan_eta,
    short_id,
    timestamp,
)
from syncdash.models.base import ZERO_TIME


class TestIbytes:
    @pytest.mark.parametrize(("size", "expected"), [
        (0, "0 B"),
        (9, "9 B"),
        (512, "512 B"),
        (1023, "1023 B"),
        (1024, "1.0 KiB"),
        (1536, "1.5 KiB"),
        (10 * 1024 * 1024, "10 MiB"),
        (5 * 1024**3 + 1024**3 // 2, "5.5 GiB"),
    ])
    def test_sizes(self, size, expected):
        assert ibytes(size) == expected

    def test_rate(self):
        assert byte_rate(2048) == "2.0 KiB/s"


class TestDuration:
    def test_days_hours_minutes(self):
        assert duration(86400 + 2 * 3600 + 3 * 60 + 59) == "01d 02h 03m"

    def test_under_a_minute(self):
        assert duration(59) == "0s"

    def test_skips_zero_units(self):
        assert duration(3600) == "01h"


class TestScanEta:
    def test_minutes_and_seconds(self):
        assert scan_eta(125) == "~02m 05s"

    def test_seconds_only(self):
        assert scan_eta(5) == "~05s"

    def test_days(self):
        assert scan_eta(86400 + 1) == "~01d 01s"

    def test_more_than_a_month(self):
        assert scan_eta(40 * 86400) == "> 1 month"


class TestNames:
    def test_short_id(self):
        assert short_id(NAS_ID) == "NASNAS1"
        assert short_id("abc") == "ABC"

    def test_os_and_arch(self):
        assert os_name("darwin") == "macOS"
        assert os_name("plan9") == "unknown os"
        assert arch_name("arm64") == "64-bit ARM"

    def test_timestamp(self):
        assert timestamp(NOW) == "2026-10-19 12:00:00"
        assert timestamp(None) == "Never"
        assert timestamp(ZERO_TIME) == "Never"
