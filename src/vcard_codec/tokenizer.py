"""Lexical scanner for vCard text.

The scanner never copies: each ``Lexeme`` is a token kind plus a ``[start,
end)`` span into the source string.  Nothing is rejected here; input that
fits no specific rule comes out as ``Token.TEXT`` and the parser decides
whether it is legal at that position.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Iterator, NamedTuple


class Token(Enum):
    BEGIN = "BEGIN:VCARD"
    VERSION = "VERSION"
    END = "END:VCARD"
    FOLDED_LINE = "folded line"
    NEW_LINE = "new line"
    ESCAPED_COMMA = "\\,"
    ESCAPED_SEMI_COLON = "\\;"
    ESCAPED_BACKSLASH = "\\\\"
    ESCAPED_NEW_LINE = "\\n"
    PARAMETER_KEY = "parameter key"
    PROPERTY_NAME = "property name"
    PARAMETER_DELIMITER = ";"
    PROPERTY_DELIMITER = ":"
    TEXT = "text"


class Lexeme(NamedTuple):
    token: Token
    start: int
    end: int

    def text(self, source: str) -> str:
        return source[self.start:self.end]


PROPERTY_NAMES = (
    "SOURCE", "KIND", "FN", "N", "NICKNAME", "PHOTO", "BDAY", "ANNIVERSARY",
    "GENDER", "ADR", "TEL", "EMAIL", "IMPP", "LANG", "TZ", "GEO", "TITLE",
    "ROLE", "LOGO", "ORG", "MEMBER", "RELATED", "CATEGORIES", "NOTE",
    "PRODID", "REV", "SOUND", "UID", "CLIENTPIDMAP", "URL", "KEY", "FBURL",
    "CALADRURI", "CALURI", "XML",
)

PARAMETER_NAMES = (
    "LANGUAGE", "VALUE", "PREF", "ALTID", "PID", "TYPE", "MEDIATYPE",
    "CALSCALE", "SORT-AS", "GEO", "TZ", "LABEL",
)

_X_NAME = r"X-[A-Za-z0-9-]+"

# Order matters: the first alternative that matches at a position wins.
_RULES: tuple[tuple[Token, str], ...] = (
    (Token.BEGIN, r"(?i:BEGIN:VCARD)"),
    (Token.VERSION, r"(?i:VERSION:[34]\.0)"),
    (Token.END, r"(?i:END:VCARD)"),
    (Token.FOLDED_LINE, r"\r?\n[ \t]"),
    (Token.NEW_LINE, r"\r?\n"),
    (Token.ESCAPED_COMMA, r"\\,"),
    (Token.ESCAPED_SEMI_COLON, r"\\;"),
    (Token.ESCAPED_BACKSLASH, r"\\\\"),
    (Token.ESCAPED_NEW_LINE, r"\\[nN]"),
    (Token.PARAMETER_KEY, r"(?i:(?:%s|%s)=)" % ("|".join(PARAMETER_NAMES), _X_NAME)),
    (
        Token.PROPERTY_NAME,
        r"(?:[A-Za-z0-9-]+\.)?(?i:%s|%s)(?=[;:])" % ("|".join(PROPERTY_NAMES), _X_NAME),
    ),
    (Token.PARAMETER_DELIMITER, r";"),
    (Token.PROPERTY_DELIMITER, r":"),
    (Token.TEXT, r"[^;:\\\r\n]+|[\s\S]"),
)

_SCANNER = re.compile("|".join(f"(?P<{tok.name}>{pattern})" for tok, pattern in _RULES))


def tokenize(source: str, pos: int = 0) -> Iterator[Lexeme]:
    """Yield lexemes of *source* starting at offset *pos* until the end."""
    end = len(source)
    match = _SCANNER.match
    while pos < end:
        m = match(source, pos)
        # The TEXT fallback accepts any single character, so m is never None.
        assert m is not None
        yield Lexeme(Token[m.lastgroup], pos, m.end())
        pos = m.end()
