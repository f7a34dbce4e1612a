from __future__ import annotations

import dataclasses
import logging
import re
import unicodedata
from pathlib import Path
from typing import Any, Iterable

from .errors import UriParse
from .model import (
    AddressProperty,
    Card,
    ClientPidMapProperty,
    DateAndOrTimeProperty,
    ExtensionProperty,
    GenderProperty,
    KindProperty,
    LanguageProperty,
    TextListProperty,
    TextProperty,
    TimestampProperty,
    UriProperty,
    UtcOffsetProperty,
)
from .parameters import Parameters, ValueType
from .values import (
    format_boolean,
    format_date,
    format_date_and_or_time,
    format_date_time,
    format_float,
    format_time,
    format_timestamp,
    format_utc_offset,
    parse_uri,
)

logger = logging.getLogger(__name__)

FOLD_WIDTH = 75
CRLF = "\r\n"

# ── Escaping / folding ─────────────────────────────────────────────────────────

def escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace("\r\n", "\n")
        .replace("\n", "\\n")
        .replace(",", "\\,")
        .replace(";", "\\;")
    )


# Units never split by a fold: escape sequences and parameter keys.
_FOLD_TOKEN = re.compile(r"\\[\\,;nN]|[A-Za-z0-9-]{1,40}=")

_ZWJ = "\u200d"


def _is_regional_indicator(ch: str) -> bool:
    return "\U0001f1e6" <= ch <= "\U0001f1ff"


def _extends(unit: str, ch: str) -> bool:
    """True if *ch* belongs to the same user-perceived character as *unit*."""
    if unicodedata.category(ch).startswith("M") or ch == _ZWJ or unit.endswith(_ZWJ):
        return True
    if "\U0001f3fb" <= ch <= "\U0001f3ff":  # skin tone modifiers
        return True
    return len(unit) == 1 and _is_regional_indicator(unit) and _is_regional_indicator(ch)


def _fold_units(line: str) -> list[str]:
    units: list[str] = []
    pos = 0
    while pos < len(line):
        m = _FOLD_TOKEN.match(line, pos)
        if m:
            units.append(m.group())
            pos = m.end()
            continue
        ch = line[pos]
        if units and _extends(units[-1], ch):
            units[-1] += ch
        else:
            units.append(ch)
        pos += 1
    return units


def fold_line(line: str, width: int = FOLD_WIDTH) -> str:
    """Fold *line* so no physical line exceeds *width* UTF-8 octets.

    A break never separates a base character from its combining marks,
    emoji modifiers or zero-width-joined partners, and never falls inside a
    multi-byte character.  Escape sequences and parameter keys are kept
    whole as well.
    """
    out: list[str] = []
    used = 0
    for cluster in _fold_units(line):
        size = len(cluster.encode("utf-8"))
        if used and used + size > width:
            out.append(CRLF + " ")
            used = 1  # the leading space of the continuation line
        out.append(cluster)
        used += size
    return "".join(out)


# ── Values ─────────────────────────────────────────────────────────────────────

_EXTENSION_FORMATTERS = {
    ValueType.TEXT: escape_text,
    ValueType.URI: str,
    ValueType.LANGUAGE_TAG: str,
    ValueType.BOOLEAN: format_boolean,
    ValueType.UTC_OFFSET: format_utc_offset,
    ValueType.INTEGER: lambda v: ",".join(str(i) for i in v),
    ValueType.FLOAT: lambda v: ",".join(format_float(f) for f in v),
    ValueType.DATE: lambda v: ",".join(format_date(d) for d in v),
    ValueType.TIME: lambda v: ",".join(format_time(t) for t in v),
    ValueType.DATE_TIME: lambda v: ",".join(format_date_time(d) for d in v),
    ValueType.DATE_AND_OR_TIME: lambda v: ",".join(format_date_and_or_time(d) for d in v),
    ValueType.TIMESTAMP: lambda v: ",".join(format_timestamp(d) for d in v),
}


def format_value(name: str, prop: Any) -> str:
    if isinstance(prop, TextProperty):
        return escape_text(prop.value)
    if isinstance(prop, TextListProperty):
        delimiter = "," if name == "CATEGORIES" else ";"
        return delimiter.join(escape_text(part) for part in prop.value)
    if isinstance(prop, (UriProperty, LanguageProperty)):
        return prop.value
    if isinstance(prop, DateAndOrTimeProperty):
        return format_date_and_or_time(prop.value)
    if isinstance(prop, TimestampProperty):
        return format_timestamp(prop.value)
    if isinstance(prop, UtcOffsetProperty):
        return format_utc_offset(prop.value)
    if isinstance(prop, KindProperty):
        return prop.value.value
    if isinstance(prop, GenderProperty):
        gender = prop.value
        if gender.identity is None:
            return gender.sex.value
        return f"{gender.sex.value};{escape_text(gender.identity)}"
    if isinstance(prop, AddressProperty):
        return ";".join(escape_text(part) for part in prop.value.components())
    if isinstance(prop, ClientPidMapProperty):
        return f"{prop.value.source};{prop.value.uri}"
    if isinstance(prop, ExtensionProperty):
        return _EXTENSION_FORMATTERS[prop.value_type](prop.value)
    raise TypeError(f"cannot serialize {type(prop).__name__} as {name}")


def _implied_value_type(name: str, prop: Any) -> ValueType | None:
    """VALUE hint needed for *prop* to parse back into the same variant."""
    if isinstance(prop, ExtensionProperty):
        return None if prop.value_type is ValueType.TEXT else prop.value_type
    if name == "TZ":
        if isinstance(prop, UtcOffsetProperty):
            return ValueType.UTC_OFFSET
        if isinstance(prop, UriProperty):
            return ValueType.URI
    if name in ("BDAY", "ANNIVERSARY") and isinstance(prop, TextProperty):
        return ValueType.TEXT
    if name in ("TEL", "UID", "KEY", "RELATED") and isinstance(prop, TextProperty):
        try:
            parse_uri(prop.value)
        except UriParse:
            return None
        return ValueType.TEXT
    return None


def _parameters(name: str, prop: Any) -> str:
    params: Parameters | None = prop.parameters
    implied = _implied_value_type(name, prop)
    if implied is not None and (params is None or params.value is None):
        params = dataclasses.replace(params or Parameters(), value=implied)
    return "" if params is None else str(params)


# ── Content lines / cards ──────────────────────────────────────────────────────

def content_line(name: str, prop: Any, width: int = FOLD_WIDTH) -> str:
    group = f"{prop.group}." if prop.group else ""
    line = f"{group}{name}{_parameters(name, prop)}:{format_value(name, prop)}"
    return fold_line(line, width) + CRLF


def serialize(card: Card, width: int = FOLD_WIDTH) -> str:
    lines = ["BEGIN:VCARD" + CRLF, "VERSION:4.0" + CRLF]
    lines.extend(content_line(name, prop, width) for name, prop in card.properties())
    lines.append("END:VCARD" + CRLF)
    return "".join(lines)


def serialize_all(cards: Iterable[Card], width: int = FOLD_WIDTH) -> str:
    return "".join(serialize(card, width) for card in cards)


def export_vcards(cards: list[Card], path: Path, width: int = FOLD_WIDTH) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize_all(cards, width), encoding="utf-8", newline="")
    logger.debug("Wrote %d card(s) to %s", len(cards), path)
    return len(cards)
