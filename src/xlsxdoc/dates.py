from __future__ import annotations

from datetime import date, datetime, time, timedelta
from enum import Enum

SECONDS_PER_DAY = 86400

_WINDOWS_EPOCH = datetime(1899, 12, 30)
_WINDOWS_EARLY_EPOCH = datetime(1899, 12, 31)
_WINDOWS_LEAP_BUG_SERIAL = 60
_MAC_EPOCH = datetime(1904, 1, 1)


class Calendar(str, Enum):
    WINDOWS_1900 = "windows_1900"
    MAC_1904 = "mac_1904"


def time_to_fraction(value: time) -> float:
    seconds = value.hour * 3600 + value.minute * 60 + value.second + value.microsecond / 1_000_000
    return seconds / SECONDS_PER_DAY


def to_serial(value: datetime | date | time | timedelta, calendar: Calendar = Calendar.WINDOWS_1900) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds() / SECONDS_PER_DAY
    if isinstance(value, time):
        return time_to_fraction(value)
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    value = value.replace(tzinfo=None)

    if calendar is Calendar.MAC_1904:
        delta = value - _MAC_EPOCH
    elif value < datetime(1900, 3, 1):
        delta = value - _WINDOWS_EARLY_EPOCH
    else:
        delta = value - _WINDOWS_EPOCH
    return delta.days + delta.seconds / SECONDS_PER_DAY + delta.microseconds / (SECONDS_PER_DAY * 1_000_000)


def from_serial(serial: float, calendar: Calendar = Calendar.WINDOWS_1900) -> datetime:
    days = int(serial // 1)
    # serials carry millisecond resolution
    microseconds = round((serial - days) * SECONDS_PER_DAY * 1000) * 1000
    offset = timedelta(days=days, microseconds=microseconds)

    if calendar is Calendar.MAC_1904:
        return _MAC_EPOCH + offset
    if days < _WINDOWS_LEAP_BUG_SERIAL:
        return _WINDOWS_EARLY_EPOCH + offset
    if days == _WINDOWS_LEAP_BUG_SERIAL:
        return datetime(1900, 2, 28) + timedelta(microseconds=microseconds)
    return _WINDOWS_EPOCH + offset


def fraction_to_time(serial: float) -> time:
    moment = datetime(2000, 1, 1) + timedelta(milliseconds=round((serial % 1) * SECONDS_PER_DAY * 1000))
    return moment.time()
