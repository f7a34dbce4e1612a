"""Grammar-enforcing parser: token stream -> ``Card``.

Card level::

    BEGIN:VCARD NEWLINE VERSION NEWLINE property* END:VCARD

Each property is read as one content line (every lexeme up to the next
unfolded line break) before it is interpreted, so a property that fails in
lenient mode can be dropped without resynchronising the token stream.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterator

from .errors import (
    DelimiterExpected,
    IncorrectToken,
    InvalidClientPidMap,
    InvalidPropertyValue,
    NoSex,
    OnlyOnce,
    PropertyError,
    TokenExpected,
    UnknownKind,
    UnknownParameterName,
    UnknownPropertyName,
    UnknownSex,
    UnknownValueType,
    UriParse,
    VersionMisplaced,
)
from .model import (
    SLOT_BY_NAME,
    Address,
    AddressProperty,
    Card,
    ClientPidMap,
    ClientPidMapProperty,
    DateAndOrTimeProperty,
    ExtensionProperty,
    Gender,
    GenderProperty,
    Kind,
    KindProperty,
    LanguageProperty,
    Sex,
    TextListProperty,
    TextProperty,
    TimestampProperty,
    UriProperty,
    UtcOffsetProperty,
)
from .parameters import Parameters, ValueType
from .tokenizer import Lexeme, Token, tokenize
from .values import (
    parse_boolean,
    parse_date,
    parse_date_and_or_time,
    parse_date_time,
    parse_float_list,
    parse_integer_list,
    parse_language_tag,
    parse_list,
    parse_time,
    parse_timestamp,
    parse_uri,
    parse_utc_offset,
)

logger = logging.getLogger(__name__)

_ESCAPES = {
    Token.ESCAPED_COMMA: ",",
    Token.ESCAPED_SEMI_COLON: ";",
    Token.ESCAPED_BACKSLASH: "\\",
    Token.ESCAPED_NEW_LINE: "\n",
}

_SINGLETONS = frozenset({"KIND", "N", "BDAY", "ANNIVERSARY", "GENDER", "PRODID", "REV", "UID"})


# ── Token cursor ───────────────────────────────────────────────────────────────

class _Cursor:
    """Lexeme stream with one token of lookahead."""

    def __init__(self, source: str, offset: int) -> None:
        self.source = source
        self.offset = offset
        self._lexemes = tokenize(source, offset)
        self._peeked: Lexeme | None = None

    def peek(self) -> Lexeme | None:
        if self._peeked is None:
            self._peeked = next(self._lexemes, None)
        return self._peeked

    def next(self) -> Lexeme | None:
        lex = self.peek()
        self._peeked = None
        if lex is not None:
            self.offset = lex.end
        return lex

    def expect(self, token: Token) -> Lexeme:
        lex = self.next()
        if lex is None:
            raise TokenExpected(token.value, self.offset)
        if lex.token is not token:
            raise IncorrectToken(token.value, lex.text(self.source), lex.start)
        return lex

    def read_line(self) -> list[Lexeme]:
        """Consume one content line, including its terminating line break."""
        line: list[Lexeme] = []
        while True:
            lex = self.next()
            if lex is None:
                raise TokenExpected(Token.NEW_LINE.value, self.offset)
            if lex.token is Token.NEW_LINE:
                return line
            line.append(lex)


# ── Parser ─────────────────────────────────────────────────────────────────────

class VcardParser:
    """Parse vCard text.

    In strict mode the first property error aborts parsing.  In lenient mode
    the offending property is logged and dropped; structural errors and a
    missing FN are fatal either way.
    """

    def __init__(self, source: str, strict: bool = True) -> None:
        self.source = source
        self.strict = strict

    def parse(self) -> list[Card]:
        cards = list(self.iter_cards())
        if not cards:
            raise TokenExpected(Token.BEGIN.value, 0)
        return cards

    def iter_cards(self) -> Iterator[Card]:
        offset = 0
        while True:
            offset = self.skip_blank(offset)
            if offset >= len(self.source):
                return
            card, offset = self.parse_one(offset)
            yield card

    def skip_blank(self, offset: int) -> int:
        """Return the offset of the first lexeme that is not blank."""
        for lex in tokenize(self.source, offset):
            if lex.token in (Token.NEW_LINE, Token.FOLDED_LINE):
                continue
            if lex.token is Token.TEXT and lex.text(self.source).isspace():
                continue
            return lex.start
        return len(self.source)

    def parse_one(self, offset: int = 0) -> tuple[Card, int]:
        """Parse the card starting at *offset*; return it with its end offset.

        Offsets index code points of the source ``str``, not encoded bytes.
        The end offset points just past ``END:VCARD``; pass it back in, after
        ``skip_blank``, to read the next card.
        """
        cursor = _Cursor(self.source, offset)
        while (lex := cursor.peek()) is not None and lex.token is Token.NEW_LINE:
            cursor.next()
        cursor.expect(Token.BEGIN)
        cursor.expect(Token.NEW_LINE)
        cursor.expect(Token.VERSION)
        cursor.expect(Token.NEW_LINE)

        card = Card()
        while True:
            lex = cursor.peek()
            if lex is None:
                raise TokenExpected(Token.END.value, cursor.offset)
            if lex.token is Token.END:
                cursor.next()
                break
            line = cursor.read_line()
            if not line:
                raise IncorrectToken(Token.PROPERTY_NAME.value, "", lex.start)
            try:
                self._parse_property(card, line)
            except PropertyError as exc:
                if self.strict:
                    raise
                logger.debug(
                    "Dropped property at offset %d (%s): %s",
                    line[0].start, line[0].text(self.source), exc,
                )

        card.validate()
        return card, cursor.offset

    # ── Content line ───────────────────────────────────────────────────────────

    def _parse_property(self, card: Card, line: list[Lexeme]) -> None:
        first = line[0]
        text = first.text(self.source)
        if first.token is Token.VERSION:
            raise VersionMisplaced()
        if first.token is not Token.PROPERTY_NAME:
            if first.token is Token.TEXT and len(line) > 1 and line[1].token in (
                Token.PARAMETER_DELIMITER, Token.PROPERTY_DELIMITER,
            ):
                if text.rpartition(".")[2].upper() == "VERSION":
                    raise VersionMisplaced()
                raise UnknownPropertyName(text)
            raise IncorrectToken(Token.PROPERTY_NAME.value, text, first.start)

        group, _, name = text.rpartition(".")
        name = name.upper()

        index = _skip_folds(line, 1)
        if index >= len(line):
            raise DelimiterExpected(name, first.end)
        delimiter = line[index]
        if delimiter.token is Token.PROPERTY_DELIMITER:
            parameters, index = None, index + 1
        elif delimiter.token is Token.PARAMETER_DELIMITER:
            parameters, index = self._parse_parameters(line, index + 1, name)
        else:
            raise DelimiterExpected(name, delimiter.start)

        prop = self._build_property(name, line[index:], group or None, parameters)
        if name.startswith("X-"):
            card.extensions.append(prop)
            return
        attr = SLOT_BY_NAME[name]
        if name in _SINGLETONS:
            if getattr(card, attr) is not None:
                raise OnlyOnce(name)
            setattr(card, attr, prop)
        else:
            getattr(card, attr).append(prop)

    # ── Parameters ─────────────────────────────────────────────────────────────

    def _parse_parameters(
        self, line: list[Lexeme], index: int, name: str
    ) -> tuple[Parameters | None, int]:
        params = Parameters()
        while True:
            index = _skip_folds(line, index)
            if index >= len(line):
                raise DelimiterExpected(name, line[-1].end)
            key = line[index]
            if key.token is not Token.PARAMETER_KEY:
                text = key.text(self.source)
                if key.token is Token.TEXT:
                    raise UnknownParameterName(text.partition("=")[0])
                raise IncorrectToken(Token.PARAMETER_KEY.value, text, key.start)
            raw, quoted, index = self._read_parameter_value(line, index + 1)
            params.set(key.text(self.source)[:-1], raw, quoted, name)

            if index >= len(line):
                raise DelimiterExpected(name, line[-1].end)
            token = line[index].token
            if token is Token.PROPERTY_DELIMITER:
                index += 1
                break
            if token is Token.PARAMETER_DELIMITER:
                index += 1
        return (None if params.is_empty() else params), index

    def _read_parameter_value(self, line: list[Lexeme], index: int) -> tuple[str, bool, int]:
        """Read up to the next unquoted delimiter or parameter key."""
        start = index
        in_quotes = False
        rebuild = False
        while index < len(line):
            lex = line[index]
            if not in_quotes and lex.token in (
                Token.PARAMETER_DELIMITER, Token.PROPERTY_DELIMITER, Token.PARAMETER_KEY,
            ):
                break
            if lex.token is Token.FOLDED_LINE or lex.token in _ESCAPES:
                rebuild = True
            elif lex.token is Token.TEXT:
                if lex.text(self.source).count('"') % 2:
                    in_quotes = not in_quotes
            index += 1

        raw = self._join(line[start:index], rebuild)
        if len(raw) >= 2 and raw[0] == '"' and raw[-1] == '"':
            return raw[1:-1], True, index
        return raw, False, index

    # ── Values ─────────────────────────────────────────────────────────────────

    def _join(self, lexemes: list[Lexeme], rebuild: bool) -> str:
        if not lexemes:
            return ""
        if not rebuild:
            # common case: slice the source directly
            return self.source[lexemes[0].start:lexemes[-1].end]
        out: list[str] = []
        for lex in lexemes:
            if lex.token is Token.FOLDED_LINE:
                continue
            escaped = _ESCAPES.get(lex.token)
            out.append(escaped if escaped is not None else lex.text(self.source))
        return "".join(out)

    def _value(self, lexemes: list[Lexeme]) -> str:
        rebuild = any(lex.token is Token.FOLDED_LINE or lex.token in _ESCAPES for lex in lexemes)
        return self._join(lexemes, rebuild)

    def _components(self, lexemes: list[Lexeme], delimiter: str, maxsplit: int = -1) -> list[str]:
        """Split on unescaped *delimiter*, unescaping each component."""
        parts: list[list[str]] = [[]]
        for lex in lexemes:
            if lex.token is Token.FOLDED_LINE:
                continue
            escaped = _ESCAPES.get(lex.token)
            if escaped is not None:
                parts[-1].append(escaped)
                continue
            chunks = lex.text(self.source).split(delimiter)
            parts[-1].append(chunks[0])
            for chunk in chunks[1:]:
                if 0 <= maxsplit < len(parts):
                    parts[-1].append(delimiter + chunk)
                else:
                    parts.append([chunk])
        return ["".join(part) for part in parts]

    # ── Property construction ──────────────────────────────────────────────────

    def _build_property(
        self, name: str, lexemes: list[Lexeme], group: str | None, params: Parameters | None
    ):
        hint = params.value if params is not None else None

        if name.startswith("X-"):
            return self._extension(name, lexemes, group, params, hint or ValueType.TEXT)

        builder = _BUILDERS.get(name)
        if builder is None:
            raise UnknownPropertyName(name)
        return builder(self, name, lexemes, group, params, hint)

    def _text(self, name, lexemes, group, params, hint):
        _require(name, hint, ValueType.TEXT)
        return TextProperty(self._value(lexemes), group, params)

    def _text_list(self, name, lexemes, group, params, hint):
        _require(name, hint, ValueType.TEXT)
        delimiter = "," if name == "CATEGORIES" else ";"
        return TextListProperty(self._components(lexemes, delimiter), group, params)

    def _uri(self, name, lexemes, group, params, hint):
        _require(name, hint, ValueType.URI)
        return UriProperty(parse_uri(self._value(lexemes)), group, params)

    def _text_or_uri(self, name, lexemes, group, params, hint):
        value = self._value(lexemes)
        if hint is ValueType.TEXT:
            return TextProperty(value, group, params)
        if hint is ValueType.URI:
            return UriProperty(parse_uri(value), group, params)
        if hint is not None:
            raise UnknownValueType(hint.value, name)
        try:
            return UriProperty(parse_uri(value), group, params)
        except UriParse:
            return TextProperty(value, group, params)

    def _date_time_or_text(self, name, lexemes, group, params, hint):
        value = self._value(lexemes)
        if hint is ValueType.TEXT:
            return TextProperty(value, group, params)
        _require(
            name, hint, ValueType.DATE_AND_OR_TIME,
            ValueType.DATE, ValueType.DATE_TIME, ValueType.TIME,
        )
        return DateAndOrTimeProperty(parse_date_and_or_time(value), group, params)

    def _kind(self, name, lexemes, group, params, hint):
        _require(name, hint, ValueType.TEXT)
        value = self._value(lexemes)
        try:
            kind = Kind(value.lower())
        except ValueError:
            raise UnknownKind(value) from None
        return KindProperty(kind, group, params)

    def _gender(self, name, lexemes, group, params, hint):
        _require(name, hint, ValueType.TEXT)
        parts = self._components(lexemes, ";", maxsplit=1)
        if len(parts) == 1 and not parts[0]:
            raise NoSex()
        try:
            sex = Sex(parts[0].upper())
        except ValueError:
            raise UnknownSex(parts[0]) from None
        identity = parts[1] if len(parts) > 1 else None
        return GenderProperty(Gender(sex, identity), group, params)

    def _address(self, name, lexemes, group, params, hint):
        _require(name, hint, ValueType.TEXT)
        parts = self._components(lexemes, ";")
        if len(parts) > 7:
            raise InvalidPropertyValue(name, f"{len(parts)} components, at most 7 allowed")
        return AddressProperty(Address.from_components(parts), group, params)

    def _language(self, name, lexemes, group, params, hint):
        _require(name, hint, ValueType.LANGUAGE_TAG)
        return LanguageProperty(parse_language_tag(self._value(lexemes)), group, params)

    def _timezone(self, name, lexemes, group, params, hint):
        value = self._value(lexemes)
        if hint is ValueType.UTC_OFFSET:
            return UtcOffsetProperty(parse_utc_offset(value), group, params)
        if hint is ValueType.URI:
            return UriProperty(parse_uri(value), group, params)
        _require(name, hint, ValueType.TEXT)
        return TextProperty(value, group, params)

    def _timestamp(self, name, lexemes, group, params, hint):
        _require(name, hint, ValueType.TIMESTAMP)
        return TimestampProperty(parse_timestamp(self._value(lexemes)), group, params)

    def _client_pid_map(self, name, lexemes, group, params, hint):
        parts = self._components(lexemes, ";", maxsplit=1)
        source = parts[0]
        if len(parts) != 2 or not (source.isascii() and source.isdigit()) or int(source) < 1:
            raise InvalidClientPidMap(self._value(lexemes))
        return ClientPidMapProperty(ClientPidMap(int(source), parse_uri(parts[1])), group, params)

    def _extension(self, name, lexemes, group, params, hint: ValueType) -> ExtensionProperty:
        value = self._value(lexemes)
        parse_value = _EXTENSION_PARSERS.get(hint)
        parsed = value if parse_value is None else parse_value(value)
        return ExtensionProperty(name, parsed, hint, group, params)


def _skip_folds(line: list[Lexeme], index: int) -> int:
    while index < len(line) and line[index].token is Token.FOLDED_LINE:
        index += 1
    return index


def _require(name: str, hint: ValueType | None, *allowed: ValueType) -> None:
    if hint is not None and hint not in allowed:
        raise UnknownValueType(hint.value, name)


_BUILDERS: dict[str, Callable] = {
    **dict.fromkeys(
        ("FN", "NICKNAME", "TITLE", "ROLE", "EMAIL", "NOTE", "XML", "PRODID"), VcardParser._text
    ),
    **dict.fromkeys(("N", "ORG", "CATEGORIES"), VcardParser._text_list),
    **dict.fromkeys(
        (
            "PHOTO", "LOGO", "URL", "MEMBER", "SOURCE", "GEO", "IMPP", "SOUND",
            "FBURL", "CALADRURI", "CALURI",
        ),
        VcardParser._uri,
    ),
    **dict.fromkeys(("TEL", "UID", "KEY", "RELATED"), VcardParser._text_or_uri),
    **dict.fromkeys(("BDAY", "ANNIVERSARY"), VcardParser._date_time_or_text),
    "KIND": VcardParser._kind,
    "GENDER": VcardParser._gender,
    "ADR": VcardParser._address,
    "LANG": VcardParser._language,
    "TZ": VcardParser._timezone,
    "REV": VcardParser._timestamp,
    "CLIENTPIDMAP": VcardParser._client_pid_map,
}

_EXTENSION_PARSERS: dict[ValueType, Callable[[str], object]] = {
    ValueType.URI: parse_uri,
    ValueType.BOOLEAN: parse_boolean,
    ValueType.INTEGER: parse_integer_list,
    ValueType.FLOAT: parse_float_list,
    ValueType.DATE: lambda v: parse_list(v, parse_date),
    ValueType.TIME: lambda v: parse_list(v, parse_time),
    ValueType.DATE_TIME: lambda v: parse_list(v, parse_date_time),
    ValueType.DATE_AND_OR_TIME: lambda v: parse_list(v, parse_date_and_or_time),
    ValueType.TIMESTAMP: lambda v: parse_list(v, parse_timestamp),
    ValueType.LANGUAGE_TAG: parse_language_tag,
    ValueType.UTC_OFFSET: parse_utc_offset,
}


# ── Entry points ───────────────────────────────────────────────────────────────

def parse(text: str, strict: bool = True) -> list[Card]:
    """Parse every card in *text*; raise on the first fatal error."""
    return VcardParser(text, strict=strict).parse()


def parse_loose(text: str) -> list[Card]:
    return parse(text, strict=False)


def iter_cards(text: str, strict: bool = True) -> Iterator[Card]:
    """Lazily parse one card at a time.

    The first error propagates out of ``next()`` and ends the iteration.
    """
    return VcardParser(text, strict=strict).iter_cards()
