"""Primitive value grammars of RFC 6350 section 4: parsing and formatting.

Dates are modelled by a small ``Date`` class rather than ``datetime.date``
because truncated vCard dates (``--0412``) carry year 0000, which the standard
library cannot represent.  Times are timezone-aware ``datetime.time`` values;
a missing offset means UTC.
"""
from __future__ import annotations

import calendar
import math
import re
from dataclasses import dataclass
from datetime import time, timedelta, timezone
from urllib.parse import urlsplit

from .errors import (
    InvalidBoolean,
    InvalidDate,
    InvalidDateTime,
    InvalidFloat,
    InvalidInteger,
    InvalidTime,
    InvalidTimestamp,
    InvalidUtcOffset,
    LanguageParse,
    UriParse,
)


# ── Value classes ──────────────────────────────────────────────────────────────

@dataclass(frozen=True, order=True)
class Date:
    year: int
    month: int = 1
    day: int = 1

    def __post_init__(self) -> None:
        if not 0 <= self.year <= 9999:
            raise InvalidDate(str(self), "year out of range")
        if not 1 <= self.month <= 12:
            raise InvalidDate(str(self), "month out of range")
        if not 1 <= self.day <= days_in_month(self.year, self.month):
            raise InvalidDate(str(self), "day out of range")

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


@dataclass(frozen=True)
class DateTime:
    date: Date
    time: time  # always timezone-aware


DateAndOrTime = Date | DateTime | time


def days_in_month(year: int, month: int) -> int:
    # calendar.monthrange() needs year >= 1; isleap() accepts year 0.
    return calendar.mdays[month] + (month == 2 and calendar.isleap(year))


# ── UTC offset ─────────────────────────────────────────────────────────────────

_OFFSET_RE = re.compile(r"([+-])(\d{2})(\d{2})?")


def parse_utc_offset(value: str) -> timezone:
    if value == "Z":
        return timezone.utc
    m = _OFFSET_RE.fullmatch(value)
    if not m:
        raise InvalidUtcOffset(value)
    sign, hours, minutes = m.group(1), int(m.group(2)), int(m.group(3) or 0)
    if hours > 23 or minutes > 59:
        raise InvalidUtcOffset(value, "out of range")
    delta = timedelta(hours=hours, minutes=minutes)
    if not delta:
        return timezone.utc
    return timezone(-delta if sign == "-" else delta)


def format_utc_offset(offset: timezone | timedelta | None) -> str:
    if isinstance(offset, timezone):
        offset = offset.utcoffset(None)
    seconds = int(offset.total_seconds()) if offset else 0
    sign = "-" if seconds < 0 else "+"
    hours, rem = divmod(abs(seconds) // 60, 60)
    return f"{sign}{hours:02d}{rem:02d}"


def _is_utc(t: time) -> bool:
    return not t.utcoffset()


# ── Time ───────────────────────────────────────────────────────────────────────

_TIME_RE = re.compile(r"(\d{2})(?:(:?)(\d{2})(?:\2(\d{2}))?)?")


def parse_time(value: str) -> time:
    """Parse ``hh[mm[ss]]`` with optional ``Z`` or offset suffix.

    Leading dashes stand for omitted fields (``-2200`` is minute 22,
    second 00) and are replaced by ``00``.
    """
    text = value
    if text.startswith("-"):
        if len(text) < 2:
            raise InvalidTime(value, "no time after '-'")
        text = "00" + ("00" + text[2:] if text[1] == "-" else text[1:])

    offset = timezone.utc
    sign_at = text.find("-")
    if sign_at < 0:
        sign_at = text.find("+")
    if sign_at >= 0:
        try:
            offset = parse_utc_offset(text[sign_at:])
        except InvalidUtcOffset as exc:
            raise InvalidTime(value, str(exc)) from exc
        text = text[:sign_at]
    elif text.endswith("Z"):
        text = text[:-1]

    m = _TIME_RE.fullmatch(text)
    if not m:
        raise InvalidTime(value)
    hour, minute, second = int(m.group(1)), int(m.group(3) or 0), int(m.group(4) or 0)
    if hour > 23 or minute > 59 or second > 60:
        raise InvalidTime(value, "out of range")
    # leap seconds are clamped
    return time(hour, minute, min(second, 59), tzinfo=offset)


def format_time(value: time) -> str:
    return f"{value.hour:02d}{value.minute:02d}{value.second:02d}" + format_utc_offset(
        value.utcoffset()
    )


# ── Date ───────────────────────────────────────────────────────────────────────

_DATE_RE = re.compile(r"(\d{4})(-?)(\d{2})\2(\d{2})")


def parse_date(value: str) -> Date:
    """Parse complete, reduced (``YYYY-MM``, ``YYYY``) and truncated dates.

    ``--MMDD`` yields year 0000; ``---DD`` yields year 0000, month 01.
    """
    text = value
    if text.startswith("-"):
        chars = list(text)
        for index, filler in ((0, "00"), (1, "00"), (2, "01")):
            if index < len(chars) and chars[index] == "-":
                chars[index] = filler
        text = "".join(chars)
    elif len(text) == 7:
        text += "-01"
    elif len(text) == 4:
        text += "-01-01"

    m = _DATE_RE.fullmatch(text)
    if not m:
        raise InvalidDate(value)
    try:
        return Date(int(m.group(1)), int(m.group(3)), int(m.group(4)))
    except InvalidDate as exc:
        raise InvalidDate(value, exc.reason) from exc


def format_date(value: Date) -> str:
    return f"{value.year:04d}{value.month:02d}{value.day:02d}"


# ── Date-time ──────────────────────────────────────────────────────────────────

def parse_date_time(value: str) -> DateTime:
    date_part, sep, time_part = value.partition("T")
    if not sep or not date_part or not time_part:
        raise InvalidDateTime(value, "expected <date>T<time>")
    try:
        return DateTime(parse_date(date_part), parse_time(time_part))
    except (InvalidDate, InvalidTime) as exc:
        raise InvalidDateTime(value, str(exc)) from exc


def format_date_time(value: DateTime) -> str:
    t = value.time
    suffix = "Z" if _is_utc(t) else format_utc_offset(t.utcoffset())
    return f"{format_date(value.date)}T{t.hour:02d}{t.minute:02d}{t.second:02d}{suffix}"


# ── Timestamp ──────────────────────────────────────────────────────────────────

# full offset, hour-only offset, explicit Z, implicit UTC
_TIMESTAMP_RE = re.compile(
    r"(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})([+-]\d{4}|[+-]\d{2}|Z)?"
)


def parse_timestamp(value: str) -> DateTime:
    m = _TIMESTAMP_RE.fullmatch(value)
    if not m:
        raise InvalidTimestamp(value)
    year, month, day, hour, minute, second = (int(g) for g in m.groups()[:6])
    try:
        offset = parse_utc_offset(m.group(7)) if m.group(7) else timezone.utc
        if hour > 23 or minute > 59 or second > 60:
            raise InvalidTime(value, "out of range")
        return DateTime(Date(year, month, day), time(hour, minute, min(second, 59), tzinfo=offset))
    except (InvalidDate, InvalidTime, InvalidUtcOffset) as exc:
        raise InvalidTimestamp(value, str(exc)) from exc


format_timestamp = format_date_time


# ── Date and/or time ───────────────────────────────────────────────────────────

def parse_date_and_or_time(value: str) -> DateAndOrTime:
    """A leading ``T`` forces a time; otherwise date-time, then date, then time."""
    if value.startswith("T"):
        return parse_time(value[1:])
    try:
        return parse_date_time(value)
    except InvalidDateTime:
        pass
    try:
        return parse_date(value)
    except InvalidDate:
        pass
    return parse_time(value)


def format_date_and_or_time(value: DateAndOrTime) -> str:
    if isinstance(value, DateTime):
        return format_date_time(value)
    if isinstance(value, Date):
        return format_date(value)
    return "T" + format_time(value)


# ── Boolean / numbers ──────────────────────────────────────────────────────────

def parse_boolean(value: str) -> bool:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise InvalidBoolean(value)


def format_boolean(value: bool) -> str:
    return "TRUE" if value else "FALSE"


_INTEGER_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(r"[+-]?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")


def parse_integer(value: str) -> int:
    if not _INTEGER_RE.fullmatch(value):
        raise InvalidInteger(value)
    return int(value)


def parse_float(value: str) -> float:
    if not _FLOAT_RE.fullmatch(value):
        raise InvalidFloat(value)
    result = float(value)
    if not math.isfinite(result):
        raise InvalidFloat(value, "out of range")
    return result


def parse_integer_list(value: str) -> list[int]:
    return [parse_integer(item) for item in value.split(",")]


def parse_float_list(value: str) -> list[float]:
    return [parse_float(item) for item in value.split(",")]


def format_float(value: float) -> str:
    return repr(float(value))


# ── URI / language tag ─────────────────────────────────────────────────────────

_SCHEME_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.-]*")
_FORBIDDEN_URI_CHARS = re.compile(r"[\s\x00-\x1f\x7f\"<>\\^`{|}]")


def parse_uri(value: str) -> str:
    """Validate an absolute URI and return it unchanged."""
    if _FORBIDDEN_URI_CHARS.search(value):
        raise UriParse(value, "illegal character")
    try:
        parts = urlsplit(value)
    except ValueError as exc:
        raise UriParse(value, str(exc)) from exc
    if not parts.scheme or not _SCHEME_RE.fullmatch(parts.scheme):
        raise UriParse(value, "missing scheme")
    if value.find(":") != len(parts.scheme):
        raise UriParse(value, "missing scheme")
    if len(value) == len(parts.scheme) + 1:
        raise UriParse(value, "empty URI")
    return value


# BCP 47 well-formedness: language[-script][-region]*(-variant)*(-extension)*[-privateuse],
# plus the bare private-use and grandfathered i- forms.
_LANGUAGE_TAG_RE = re.compile(
    r"""
    (?:
        [A-Za-z]{2,3}(?:-[A-Za-z]{3}){0,3}
        | [A-Za-z]{4,8}
    )
    (?:-[A-Za-z]{4})?
    (?:-(?:[A-Za-z]{2}|\d{3}))?
    (?:-(?:[A-Za-z0-9]{5,8}|\d[A-Za-z0-9]{3}))*
    (?:-[0-9A-WY-Za-wy-z](?:-[A-Za-z0-9]{2,8})+)*
    (?:-[xX](?:-[A-Za-z0-9]{1,8})+)?
    | [xX](?:-[A-Za-z0-9]{1,8})+
    | [iI]-[A-Za-z]{3,8}
    """,
    re.VERBOSE,
)


def parse_language_tag(value: str) -> str:
    if not _LANGUAGE_TAG_RE.fullmatch(value):
        raise LanguageParse(value)
    return value


# ── Lists ──────────────────────────────────────────────────────────────────────

def parse_list(value: str, parse_one) -> list:
    return [parse_one(item) for item in value.split(",")]
