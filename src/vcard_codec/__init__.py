"""vcard_codec: parse and serialize vCard 4.0 (RFC 6350) contact cards."""
from __future__ import annotations

from .errors import PropertyError, StructuralError, VcardError
from .exporter import serialize, serialize_all
from .model import Card
from .parser import VcardParser, iter_cards, parse, parse_loose

__all__ = [
    "Card",
    "PropertyError",
    "StructuralError",
    "VcardError",
    "VcardParser",
    "iter_cards",
    "parse",
    "parse_loose",
    "serialize",
    "serialize_all",
]

__version__ = "0.1.0"
