from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from pathlib import Path

from rich.columns import Columns
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .model import Card, UriProperty

console = Console()

# ── Palette ────────────────────────────────────────────────────────────────────
_ACCENT  = "#4d9fff"
_GREEN   = "#3ecf8e"
_RED     = "#f05c5c"
_TEXT    = "#c9d1e0"
_MID     = "#8896af"
_DIM     = "#546075"
_BORDER  = "#2a3347"


@dataclass
class CheckResult:
    path: Path
    cards: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _stat_panel(value: str, label: str, colour: str) -> Panel:
    body = Text()
    body.append(f"{value}\n", style=f"bold {colour}")
    body.append(label, style=f"dim {_DIM}")
    return Panel(body, border_style=_BORDER, padding=(0, 2), expand=True)


def print_check_summary(results: list[CheckResult]) -> None:
    failed = [r for r in results if not r.ok]

    console.print()
    console.print(Text("  CHECK SUMMARY", style=f"dim {_DIM}"))
    console.print()
    console.print(Columns([
        _stat_panel(str(len(results)),                 "files checked", _ACCENT),
        _stat_panel(str(sum(r.cards for r in results)), "cards parsed",  _GREEN),
        _stat_panel(str(len(failed)),                  "files failed",  _RED if failed else _TEXT),
    ], equal=True, expand=True))
    console.print()

    table = Table(border_style=_BORDER, header_style=f"bold {_MID}")
    table.add_column("File")
    table.add_column("Cards", justify="right")
    table.add_column("Status")
    for r in results:
        status = Text("ok", style=_GREEN) if r.ok else Text(r.error or "", style=_RED)
        table.add_row(r.path.name, str(r.cards), status)
    console.print(table)


def _first(values: list, default: str = "") -> str:
    return str(values[0].value) if values else default


def _tel_text(card: Card) -> str:
    if not card.tel:
        return ""
    tel = card.tel[0]
    return tel.value.removeprefix("tel:") if isinstance(tel, UriProperty) else tel.value


def print_cards(cards: list[Card], title: str | None = None) -> None:
    table = Table(title=title, border_style=_BORDER, header_style=f"bold {_MID}")
    for column in ("Name", "Kind", "Email", "Phone", "Organisation"):
        table.add_column(column)
    for card in cards:
        table.add_row(
            card.display_name or "",
            card.kind.value.value if card.kind else "",
            _first(card.email),
            _tel_text(card),
            " / ".join(part for part in card.org[0].value if part) if card.org else "",
        )
    console.print(table)


def build_source_counts(pairs: list[tuple[object, str]]) -> dict[str, int]:
    return dict(Counter(label for _, label in pairs))
