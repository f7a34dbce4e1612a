from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from .config import CONFIG_NAME, Settings, load_settings, write_default_config
from .errors import VcardError
from .exporter import export_vcards, serialize_all
from .io import collect_sources, read_cards, read_cards_from_files
from .report import CheckResult, build_source_counts, print_cards, print_check_summary

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="vcard-codec: validate, reformat and inspect vCard 4.0 files.",
)
console = Console()

_state: dict[str, Settings] = {}


@app.callback()
def main(
    config: Path | None = typer.Option(
        None, "--config", "-c", help=f"Config file (default: ./{CONFIG_NAME})"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log dropped properties"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    _state["settings"] = load_settings(config)


def _settings() -> Settings:
    return _state.get("settings") or Settings()


def _strictness(strict: bool | None) -> bool:
    return _settings().strict if strict is None else strict


def _expand(paths: list[Path]) -> list[Path]:
    files: list[Path] = []
    for p in paths:
        files.extend(collect_sources(p) if p.is_dir() else [p])
    return files


# ── `check` command ────────────────────────────────────────────────────────────

@app.command()
def check(
    paths: list[Path] = typer.Argument(..., help="vCard files or directories"),
    strict: bool | None = typer.Option(
        None, "--strict/--lenient", help="Fail on bad properties, or drop them"
    ),
) -> None:
    """Parse each file and report which ones are valid."""
    files = _expand(paths)
    if not files:
        console.print("[bold red]No .vcf files found.[/bold red]")
        raise typer.Exit(code=2)

    settings = _settings()
    results: list[CheckResult] = []
    for f in files:
        try:
            cards = read_cards(f, strict=_strictness(strict), encoding=settings.encoding)
            results.append(CheckResult(f, cards=len(cards)))
        except (OSError, VcardError) as exc:
            results.append(CheckResult(f, error=str(exc)))

    print_check_summary(results)
    if any(not r.ok for r in results):
        raise typer.Exit(code=1)


# ── `fmt` command ──────────────────────────────────────────────────────────────

@app.command()
def fmt(
    path: Path = typer.Argument(..., help="vCard file to reformat"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write here instead of stdout"),
    strict: bool | None = typer.Option(None, "--strict/--lenient"),
) -> None:
    """Re-serialize a file in canonical vCard 4.0 form."""
    settings = _settings()
    try:
        cards = read_cards(path, strict=_strictness(strict), encoding=settings.encoding)
    except (OSError, VcardError) as exc:
        console.print(Panel(Text(str(exc)), title=escape(str(path)), border_style="red"))
        raise typer.Exit(code=1)

    if output is None:
        typer.echo(serialize_all(cards, settings.fold_width), nl=False)
        return
    n = export_vcards(cards, output, settings.fold_width)
    console.print(
        f"[green]✓[/green] Wrote [bold]{n}[/bold] card(s) to [dim]{escape(str(output))}[/dim]"
    )


# ── `show` command ─────────────────────────────────────────────────────────────

@app.command()
def show(
    paths: list[Path] = typer.Argument(..., help="vCard files or directories"),
    strict: bool | None = typer.Option(None, "--strict/--lenient"),
) -> None:
    """List the cards in one or more files."""
    settings = _settings()
    try:
        pairs = read_cards_from_files(
            _expand(paths), strict=_strictness(strict), encoding=settings.encoding
        )
    except (OSError, VcardError) as exc:
        console.print(Text(str(exc), style="bold red"))
        raise typer.Exit(code=1)

    counts = build_source_counts(pairs)
    title = ", ".join(f"{label} ({n})" for label, n in sorted(counts.items()))
    print_cards([card for card, _ in pairs], title=title or None)


# ── `init` command ─────────────────────────────────────────────────────────────

@app.command()
def init(
    path: Path = typer.Argument(Path(CONFIG_NAME), help="Where to write the config file"),
) -> None:
    """Write a default configuration file."""
    if write_default_config(path):
        console.print(f"[green]✓[/green] Created [dim]{escape(str(path))}[/dim]")
    else:
        console.print(f"[yellow]{escape(str(path))} already exists, left unchanged.[/yellow]")
