from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timezone
from enum import Enum
from typing import Any, Iterator

from .errors import NoFormattedName
from .parameters import Parameters, ValueType
from .values import DateAndOrTime, DateTime


# ── Structured values ──────────────────────────────────────────────────────────

@dataclass
class Address:
    po_box: str | None = None
    extended: str | None = None
    street: str | None = None
    locality: str | None = None
    region: str | None = None
    postal_code: str | None = None
    country: str | None = None  # display country name (not ISO code)

    def components(self) -> list[str]:
        return [
            part or ""
            for part in (
                self.po_box, self.extended, self.street, self.locality,
                self.region, self.postal_code, self.country,
            )
        ]

    @classmethod
    def from_components(cls, parts: list[str]) -> Address:
        parts = list(parts) + [""] * (7 - len(parts))
        return cls(*(part or None for part in parts[:7]))


class Kind(Enum):
    INDIVIDUAL = "individual"
    GROUP = "group"
    ORG = "org"
    LOCATION = "location"


class Sex(Enum):
    NONE = ""
    MALE = "M"
    FEMALE = "F"
    OTHER = "O"
    NOT_APPLICABLE = "N"
    UNKNOWN = "U"


@dataclass
class Gender:
    sex: Sex = Sex.NONE
    identity: str | None = None


@dataclass
class ClientPidMap:
    source: int
    uri: str


# ── Property instances ─────────────────────────────────────────────────────────
#
# Every property carries an optional group (``HOME.TITLE``) and optional
# parameters. Sum-typed slots (TEL, BDAY, TZ, ...) hold one of several of
# these classes; the class itself is the variant tag.

@dataclass
class TextProperty:
    value: str
    group: str | None = None
    parameters: Parameters | None = None


@dataclass
class TextListProperty:
    value: list[str]
    group: str | None = None
    parameters: Parameters | None = None


@dataclass
class UriProperty:
    value: str
    group: str | None = None
    parameters: Parameters | None = None


@dataclass
class DateAndOrTimeProperty:
    value: DateAndOrTime
    group: str | None = None
    parameters: Parameters | None = None


@dataclass
class TimestampProperty:
    value: DateTime
    group: str | None = None
    parameters: Parameters | None = None


@dataclass
class UtcOffsetProperty:
    value: timezone
    group: str | None = None
    parameters: Parameters | None = None


@dataclass
class LanguageProperty:
    value: str
    group: str | None = None
    parameters: Parameters | None = None


@dataclass
class KindProperty:
    value: Kind
    group: str | None = None
    parameters: Parameters | None = None


@dataclass
class GenderProperty:
    value: Gender
    group: str | None = None
    parameters: Parameters | None = None


@dataclass
class AddressProperty:
    value: Address
    group: str | None = None
    parameters: Parameters | None = None


@dataclass
class ClientPidMapProperty:
    value: ClientPidMap
    group: str | None = None
    parameters: Parameters | None = None


@dataclass
class ExtensionProperty:
    """An ``X-`` property; ``value_type`` tags the Python type of ``value``.

    text / language-tag / uri -> str, boolean -> bool, utc-offset -> timezone,
    every other type -> a list of that type's values.
    """

    name: str
    value: Any
    value_type: ValueType = ValueType.TEXT
    group: str | None = None
    parameters: Parameters | None = None


TextOrUriProperty = TextProperty | UriProperty
DateTimeOrTextProperty = DateAndOrTimeProperty | TextProperty
TimeZoneProperty = TextProperty | UriProperty | UtcOffsetProperty


# ── Card ───────────────────────────────────────────────────────────────────────

@dataclass
class Card:
    # general
    source: list[UriProperty] = field(default_factory=list)
    kind: KindProperty | None = None
    xml: list[TextProperty] = field(default_factory=list)
    # identification
    formatted_name: list[TextProperty] = field(default_factory=list)
    name: TextListProperty | None = None
    nickname: list[TextProperty] = field(default_factory=list)
    photo: list[UriProperty] = field(default_factory=list)
    bday: DateTimeOrTextProperty | None = None
    anniversary: DateTimeOrTextProperty | None = None
    gender: GenderProperty | None = None
    # delivery
    address: list[AddressProperty] = field(default_factory=list)
    # communications
    tel: list[TextOrUriProperty] = field(default_factory=list)
    email: list[TextProperty] = field(default_factory=list)
    impp: list[UriProperty] = field(default_factory=list)
    lang: list[LanguageProperty] = field(default_factory=list)
    # geographic
    timezone: list[TimeZoneProperty] = field(default_factory=list)
    geo: list[UriProperty] = field(default_factory=list)
    # organizational
    title: list[TextProperty] = field(default_factory=list)
    role: list[TextProperty] = field(default_factory=list)
    logo: list[UriProperty] = field(default_factory=list)
    org: list[TextListProperty] = field(default_factory=list)
    member: list[UriProperty] = field(default_factory=list)
    related: list[TextOrUriProperty] = field(default_factory=list)
    # explanatory
    categories: list[TextListProperty] = field(default_factory=list)
    note: list[TextProperty] = field(default_factory=list)
    prod_id: TextProperty | None = None
    rev: TimestampProperty | None = None
    sound: list[UriProperty] = field(default_factory=list)
    uid: TextOrUriProperty | None = None
    client_pid_map: list[ClientPidMapProperty] = field(default_factory=list)
    url: list[UriProperty] = field(default_factory=list)
    # security
    key: list[TextOrUriProperty] = field(default_factory=list)
    # calendar
    fburl: list[UriProperty] = field(default_factory=list)
    cal_adr_uri: list[UriProperty] = field(default_factory=list)
    cal_uri: list[UriProperty] = field(default_factory=list)
    # extensions
    extensions: list[ExtensionProperty] = field(default_factory=list)

    def validate(self) -> None:
        if not self.formatted_name:
            raise NoFormattedName()

    def properties(self) -> Iterator[tuple[str, Any]]:
        """Yield ``(NAME, property)`` for every populated slot, in output order."""
        for name, attr in SLOTS:
            slot = getattr(self, attr)
            if slot is None:
                continue
            for prop in slot if isinstance(slot, list) else (slot,):
                yield name, prop
        for prop in self.extensions:
            yield prop.name, prop

    @property
    def display_name(self) -> str | None:
        return self.formatted_name[0].value if self.formatted_name else None


# Property name -> Card attribute, in serialization order.
SLOTS: tuple[tuple[str, str], ...] = (
    ("SOURCE", "source"),
    ("KIND", "kind"),
    ("XML", "xml"),
    ("FN", "formatted_name"),
    ("N", "name"),
    ("NICKNAME", "nickname"),
    ("PHOTO", "photo"),
    ("BDAY", "bday"),
    ("ANNIVERSARY", "anniversary"),
    ("GENDER", "gender"),
    ("ADR", "address"),
    ("TEL", "tel"),
    ("EMAIL", "email"),
    ("IMPP", "impp"),
    ("LANG", "lang"),
    ("TZ", "timezone"),
    ("GEO", "geo"),
    ("TITLE", "title"),
    ("ROLE", "role"),
    ("LOGO", "logo"),
    ("ORG", "org"),
    ("MEMBER", "member"),
    ("RELATED", "related"),
    ("CATEGORIES", "categories"),
    ("NOTE", "note"),
    ("PRODID", "prod_id"),
    ("REV", "rev"),
    ("SOUND", "sound"),
    ("UID", "uid"),
    ("CLIENTPIDMAP", "client_pid_map"),
    ("URL", "url"),
    ("KEY", "key"),
    ("FBURL", "fburl"),
    ("CALADRURI", "cal_adr_uri"),
    ("CALURI", "cal_uri"),
)
SLOT_BY_NAME = dict(SLOTS)
