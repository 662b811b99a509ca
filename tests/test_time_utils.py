from pathlib import Path
import sys
from datetime import datetime

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import pytest

from time_utils import format_event_time, parse_event_time


def test_bare_time_lands_on_event_date(monkeypatch):
    monkeypatch.setenv("EVENT_DATE", "2025-03-01")
    value = parse_event_time("10:30")
    assert (value.year, value.month, value.day, value.hour, value.minute) == (2025, 3, 1, 10, 30)
    assert value.utcoffset().total_seconds() == 5.5 * 3600


def test_twelve_hour_clock(monkeypatch):
    monkeypatch.setenv("EVENT_DATE", "2025-03-01")
    assert parse_event_time("02:15 pm").hour == 14
    assert parse_event_time("9 AM").hour == 9


def test_full_datetime_formats():
    assert parse_event_time("2025-03-02 09:00").day == 2
    value = parse_event_time("01/03/2025 18:45")
    assert (value.day, value.month, value.hour) == (1, 3, 18)
    iso = parse_event_time("2025-03-01T04:00:00Z")
    assert iso.hour == 9 and iso.minute == 30


def test_blank_and_invalid_values():
    assert parse_event_time(None) is None
    assert parse_event_time("  ") is None
    with pytest.raises(ValueError):
        parse_event_time("after lunch")


def test_format_event_time():
    assert format_event_time(None) == ""
    assert format_event_time(datetime(2025, 3, 1, 10, 5)) == "2025-03-01 10:05"
