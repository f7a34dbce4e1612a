from __future__ import annotations

from vcard_codec import parse, serialize
from vcard_codec.model import Card


def vcard(*lines: str, version: str = "4.0") -> str:
    """Wrap content lines in BEGIN/VERSION/END with CRLF line breaks."""
    body = "".join(f"{line}\r\n" for line in lines)
    return f"BEGIN:VCARD\r\nVERSION:{version}\r\n{body}END:VCARD\r\n"


def parse_one(text: str, strict: bool = True) -> Card:
    cards = parse(text, strict=strict)
    assert len(cards) == 1
    return cards[0]


def assert_round_trip(card: Card) -> None:
    assert parse(serialize(card)) == [card]
