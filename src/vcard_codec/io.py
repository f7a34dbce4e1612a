from __future__ import annotations

import logging
from pathlib import Path

from .errors import VcardError
from .model import Card
from .parser import VcardParser

logger = logging.getLogger(__name__)

VCARD_SUFFIXES = (".vcf", ".vcard")


# ── Reading ────────────────────────────────────────────────────────────────────

def read_text(path: Path, encoding: str = "utf-8") -> str:
    """Read a vCard file, dropping a leading byte-order mark."""
    text = path.read_text(encoding=encoding, errors="replace")
    return text.removeprefix("\ufeff")


def read_cards(path: Path, strict: bool = True, encoding: str = "utf-8") -> list[Card]:
    try:
        cards = VcardParser(read_text(path, encoding), strict=strict).parse()
    except VcardError as exc:
        logger.warning("Could not parse %s: %s", path.name, exc)
        raise
    logger.debug("%s: %d card(s)", path.name, len(cards))
    return cards


# ── Public API ─────────────────────────────────────────────────────────────────

def read_cards_from_files(
    paths: list[Path],
    strict: bool = True,
    encoding: str = "utf-8",
) -> list[tuple[Card, str]]:
    """Parse all files and return (card, source_label) pairs."""
    results: list[tuple[Card, str]] = []
    for p in paths:
        label = p.stem
        for card in read_cards(p, strict=strict, encoding=encoding):
            results.append((card, label))
    return results


def collect_sources(directory: Path) -> list[Path]:
    """Return all vCard files found directly inside directory, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in VCARD_SUFFIXES
    )
