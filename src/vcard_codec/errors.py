"""Exception hierarchy for the vCard engine.

Three families:

* ``StructuralError``: the token stream does not follow the card grammar.
  Always fatal, whatever the parser's strictness.
* ``PropertyError``: one content line is well-formed but semantically wrong.
  Fatal in strict mode; in lenient mode the property is dropped.
* ``ValueParseError``: a primitive value grammar (date, URI, integer...)
  rejected its input.  These are property errors too, so lenient mode drops
  the owning property.
"""
from __future__ import annotations


class VcardError(Exception):
    """Base class for everything raised by vcard_codec."""


# ── Structural ─────────────────────────────────────────────────────────────────

class StructuralError(VcardError):
    pass


class TokenExpected(StructuralError):
    def __init__(self, expected: str, offset: int) -> None:
        self.expected = expected
        self.offset = offset
        super().__init__(f"expected {expected} at offset {offset}, reached end of input")


class IncorrectToken(StructuralError):
    def __init__(self, expected: str, found: str, offset: int) -> None:
        self.expected = expected
        self.found = found
        self.offset = offset
        super().__init__(f"expected {expected} at offset {offset}, found {found!r}")


class DelimiterExpected(StructuralError):
    def __init__(self, name: str, offset: int) -> None:
        self.name = name
        self.offset = offset
        super().__init__(f"content line {name!r} at offset {offset} has no ':' delimiter")


# ── Card level ─────────────────────────────────────────────────────────────────

class NoFormattedName(VcardError):
    def __init__(self) -> None:
        super().__init__("card has no FN property")


# ── Property level ─────────────────────────────────────────────────────────────

class PropertyError(VcardError):
    pass


class UnknownPropertyName(PropertyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"unknown property name {name!r}")


class UnknownParameterName(PropertyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"unknown parameter name {name!r}")


class TypeNotAllowed(PropertyError):
    def __init__(self, property_name: str) -> None:
        self.property_name = property_name
        super().__init__(f"TYPE parameter is not allowed on {property_name}")


class UnknownValueType(PropertyError):
    def __init__(self, value_type: str, property_name: str | None = None) -> None:
        self.value_type = value_type
        self.property_name = property_name
        where = f" for {property_name}" if property_name else ""
        super().__init__(f"unknown or unsupported VALUE type {value_type!r}{where}")


class GeoNotQuoted(PropertyError):
    def __init__(self) -> None:
        super().__init__("GEO parameter value must be quoted")


class LabelNotAllowed(PropertyError):
    def __init__(self, property_name: str) -> None:
        self.property_name = property_name
        super().__init__(f"LABEL parameter is only allowed on ADR, not {property_name}")


class OnlyOnce(PropertyError):
    def __init__(self, property_name: str) -> None:
        self.property_name = property_name
        super().__init__(f"{property_name} may only appear once")


class PrefOutOfRange(PropertyError):
    def __init__(self, value: int) -> None:
        self.value = value
        super().__init__(f"PREF must be between 1 and 100, got {value}")


class InvalidPid(PropertyError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"invalid PID {value!r}")


class InvalidClientPidMap(PropertyError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"invalid CLIENTPIDMAP {value!r}")


class VersionMisplaced(PropertyError):
    def __init__(self) -> None:
        super().__init__("VERSION must directly follow BEGIN:VCARD")


class UnknownKind(PropertyError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"unknown KIND {value!r}")


class UnknownSex(PropertyError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"unknown sex {value!r} in GENDER")


class NoSex(PropertyError):
    def __init__(self) -> None:
        super().__init__("GENDER without a sex component needs a ';' delimiter")


class InvalidPropertyValue(PropertyError):
    def __init__(self, property_name: str, reason: str) -> None:
        self.property_name = property_name
        super().__init__(f"invalid {property_name} value: {reason}")


# ── Primitive values ───────────────────────────────────────────────────────────

class ValueParseError(PropertyError, ValueError):
    kind = "value"

    def __init__(self, value: str, reason: str | None = None) -> None:
        self.value = value
        self.reason = reason
        msg = f"invalid {self.kind} {value!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidDate(ValueParseError):
    kind = "date"


class InvalidTime(ValueParseError):
    kind = "time"


class InvalidDateTime(ValueParseError):
    kind = "date-time"


class InvalidTimestamp(ValueParseError):
    kind = "timestamp"


class InvalidUtcOffset(ValueParseError):
    kind = "utc-offset"


class InvalidBoolean(ValueParseError):
    kind = "boolean"


class InvalidInteger(ValueParseError):
    kind = "integer"


class InvalidFloat(ValueParseError):
    kind = "float"


class UriParse(ValueParseError):
    kind = "URI"


class LanguageParse(ValueParseError):
    kind = "language tag"
