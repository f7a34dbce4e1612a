"""Property parameters (RFC 6350 section 5): the typed record and its codec."""
from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from datetime import timezone
from enum import Enum

from .errors import (
    GeoNotQuoted,
    InvalidPid,
    InvalidUtcOffset,
    LabelNotAllowed,
    PrefOutOfRange,
    TypeNotAllowed,
    UnknownParameterName,
    UnknownValueType,
    UriParse,
)
from .values import (
    format_utc_offset,
    parse_integer,
    parse_language_tag,
    parse_uri,
    parse_utc_offset,
)


class ValueType(Enum):
    TEXT = "text"
    URI = "uri"
    DATE = "date"
    TIME = "time"
    DATE_TIME = "date-time"
    DATE_AND_OR_TIME = "date-and-or-time"
    TIMESTAMP = "timestamp"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    UTC_OFFSET = "utc-offset"
    LANGUAGE_TAG = "language-tag"

    @classmethod
    def parse(cls, value: str) -> ValueType:
        try:
            return cls(value.lower())
        except ValueError:
            raise UnknownValueType(value) from None


# ── TYPE parameter ─────────────────────────────────────────────────────────────
#
# A TYPE value is one of:
#   GenericType      home / work on any property that allows TYPE
#   TelephoneType    values scoped to TEL
#   RelatedType      values scoped to RELATED
#   str              anything else, kept verbatim
#
# TEL and RELATED decode every value, home and work included, into their own
# enum so callers can dispatch on a single type per property.

class GenericType(Enum):
    HOME = "home"
    WORK = "work"


class TelephoneType(Enum):
    HOME = "home"
    WORK = "work"
    TEXT = "text"
    VOICE = "voice"
    FAX = "fax"
    CELL = "cell"
    VIDEO = "video"
    PAGER = "pager"
    TEXTPHONE = "textphone"


class RelatedType(Enum):
    HOME = "home"
    WORK = "work"
    CONTACT = "contact"
    ACQUAINTANCE = "acquaintance"
    FRIEND = "friend"
    MET = "met"
    CO_WORKER = "co-worker"
    COLLEAGUE = "colleague"
    CO_RESIDENT = "co-resident"
    NEIGHBOR = "neighbor"
    CHILD = "child"
    PARENT = "parent"
    SIBLING = "sibling"
    SPOUSE = "spouse"
    KIN = "kin"
    MUSE = "muse"
    CRUSH = "crush"
    DATE = "date"
    SWEETHEART = "sweetheart"
    ME = "me"
    AGENT = "agent"
    EMERGENCY = "emergency"


TypeValue = GenericType | TelephoneType | RelatedType | str

# Properties on which TYPE is legal.
TYPE_PROPERTIES = frozenset({
    "FN", "NICKNAME", "PHOTO", "ADR", "TEL", "EMAIL", "IMPP", "LANG", "TZ",
    "GEO", "TITLE", "ROLE", "LOGO", "ORG", "RELATED", "CATEGORIES", "NOTE",
    "SOUND", "URL", "KEY", "FBURL", "CALADRURI", "CALURI",
})

_SCOPED_TYPES: dict[str, type[Enum]] = {
    "TEL": TelephoneType,
    "RELATED": RelatedType,
}


def parse_type_value(value: str, property_name: str) -> TypeValue:
    enum = _SCOPED_TYPES.get(property_name, GenericType)
    try:
        return enum(value.lower())
    except ValueError:
        return value


def format_type_value(value: TypeValue) -> str:
    return value if isinstance(value, str) else value.value


# ── PID / TZ ───────────────────────────────────────────────────────────────────

_PID_RE = re.compile(r"(\d+)(?:\.(\d+))?")


@dataclass(frozen=True)
class Pid:
    local: int
    source: int | None = None

    @classmethod
    def parse(cls, value: str) -> Pid:
        m = _PID_RE.fullmatch(value)
        if not m:
            raise InvalidPid(value)
        return cls(int(m.group(1)), int(m.group(2)) if m.group(2) is not None else None)

    def __str__(self) -> str:
        return str(self.local) if self.source is None else f"{self.local}.{self.source}"


@dataclass(frozen=True)
class TzText:
    value: str


@dataclass(frozen=True)
class TzUri:
    value: str


TimeZoneParameter = TzText | TzUri | timezone


def parse_tz_parameter(value: str, quoted: bool) -> TimeZoneParameter:
    """Quoted values are tried as URIs, unquoted ones as UTC offsets."""
    if quoted:
        try:
            return TzUri(parse_uri(value))
        except UriParse:
            return TzText(value)
    try:
        return parse_utc_offset(value)
    except InvalidUtcOffset:
        return TzText(value)


# ── Parameters record ──────────────────────────────────────────────────────────

@dataclass
class Parameters:
    language: str | None = None
    value: ValueType | None = None
    pref: int | None = None
    alt_id: str | None = None
    pid: list[Pid] | None = None
    types: list[TypeValue] | None = None
    media_type: str | None = None
    calscale: str | None = None
    sort_as: list[str] | None = None
    geo: str | None = None
    timezone: TimeZoneParameter | None = None
    label: str | None = None
    extensions: list[tuple[str, list[str]]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return all(not getattr(self, f.name) for f in fields(self))

    # ── Parse ──────────────────────────────────────────────────────────────────

    def set(self, key: str, raw: str, quoted: bool, property_name: str) -> None:
        """Store one ``KEY=value`` pair; *raw* is already unfolded and unescaped."""
        key = key.upper()
        if key == "LANGUAGE":
            self.language = parse_language_tag(raw)
        elif key == "VALUE":
            self.value = ValueType.parse(raw)
        elif key == "PREF":
            pref = parse_integer(raw)
            if not 1 <= pref <= 100:
                raise PrefOutOfRange(pref)
            self.pref = pref
        elif key == "ALTID":
            self.alt_id = raw
        elif key == "PID":
            self.pid = (self.pid or []) + [Pid.parse(item) for item in raw.split(",")]
        elif key == "TYPE":
            if property_name not in TYPE_PROPERTIES:
                raise TypeNotAllowed(property_name)
            self.types = (self.types or []) + [
                parse_type_value(item, property_name) for item in raw.split(",") if item
            ]
        elif key == "MEDIATYPE":
            self.media_type = raw
        elif key == "CALSCALE":
            self.calscale = raw
        elif key == "SORT-AS":
            self.sort_as = raw.split(",")
        elif key == "GEO":
            if not quoted:
                raise GeoNotQuoted()
            self.geo = parse_uri(raw)
        elif key == "TZ":
            self.timezone = parse_tz_parameter(raw, quoted)
        elif key == "LABEL":
            if property_name != "ADR":
                raise LabelNotAllowed(property_name)
            self.label = raw
        elif key.startswith("X-"):
            self.extensions.append((key, raw.split(",")))
        else:
            raise UnknownParameterName(key)

    # ── Format ─────────────────────────────────────────────────────────────────

    def __str__(self) -> str:
        out: list[str] = []
        if self.language is not None:
            out.append(f";LANGUAGE={self.language}")
        if self.value is not None:
            out.append(f";VALUE={self.value.value}")
        if self.pref is not None:
            out.append(f";PREF={self.pref}")
        if self.alt_id is not None:
            out.append(";ALTID=" + _quote(self.alt_id))
        if self.pid:
            out.append(";PID=" + ",".join(str(p) for p in self.pid))
        if self.types:
            # commas separate TYPE values, so they alone do not force quotes
            out.append(";TYPE=" + _maybe_quote(
                ",".join(format_type_value(t) for t in self.types), _SPECIAL[1:]
            ))
        if self.media_type is not None:
            out.append(";MEDIATYPE=" + _maybe_quote(self.media_type))
        if self.calscale is not None:
            out.append(";CALSCALE=" + _maybe_quote(self.calscale))
        if self.sort_as:
            out.append(";SORT-AS=" + _quote(",".join(self.sort_as)))
        if self.geo is not None:
            out.append(f';GEO="{self.geo}"')
        if self.timezone is not None:
            out.append(";TZ=" + _format_tz(self.timezone))
        if self.label is not None:
            out.append(";LABEL=" + _quote(self.label))
        for name, values in self.extensions:
            out.append(f";{name}=" + _quote(",".join(values)))
        return "".join(out)


def _format_tz(value: TimeZoneParameter) -> str:
    if isinstance(value, TzUri):
        return f'"{value.value}"'
    if isinstance(value, TzText):
        # unquoted text would read back as a UTC offset
        return _quote(value.value)
    return format_utc_offset(value)


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace("\n", "\\n") + '"'


# Characters that force a parameter value into quotes.
_SPECIAL = ',;:"\\\n'


def _maybe_quote(value: str, special: str = _SPECIAL) -> str:
    return _quote(value) if any(c in special for c in value) else value
