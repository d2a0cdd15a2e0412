from __future__ import annotations

from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from fundboard.dashboard import summarize, top_performers
from fundboard.domain.errors import DataUnavailable
from fundboard.domain.models import FetchResult, FundCategory, FundRecord, Provenance

_PROVENANCE_BANNERS = {
    Provenance.LIVE: ("green", "Live data from TEFAS"),
    Provenance.PROXIED: ("yellow", "Live data via CORS relay (trusted proxy unreachable)"),
    Provenance.CACHED: ("yellow", "Showing cached data; TEFAS could not be reached"),
}

_RETURN_COLUMNS = (
    ("Daily %", "daily_return"),
    ("Weekly %", "weekly_return"),
    ("1M %", "monthly_return"),
    ("3M %", "three_month_return"),
    ("6M %", "six_month_return"),
    ("YTD %", "ytd_return"),
    ("1Y %", "yearly_return"),
    ("3Y %", "three_year_return"),
)


def _pct(value: float) -> str:
    style = "green" if value >= 0 else "red"
    return f"[{style}]{value:+.2f}[/{style}]"


def _bar(value: float, peak: float, width: int = 30) -> str:
    if peak <= 0:
        return ""
    length = max(0, round(width * max(value, 0.0) / peak))
    return "█" * length


def print_provenance(
    result: FetchResult, last_updated: Optional[str] = None, console: Optional[Console] = None
) -> None:
    """Non-blocking banner telling the viewer whether data is live or stale."""
    console = console or Console()
    style, text = _PROVENANCE_BANNERS[result.provenance]
    if result.provenance.is_stale and last_updated:
        text = f"{text} (cache updated {last_updated})"
    console.print(f"[{style}]● {text}[/{style}]  [dim]source tier: {result.tier or '-'}[/dim]")


def print_summary(records: Sequence[FundRecord], console: Optional[Console] = None) -> None:
    """
    Render the three stat cards: best daily performer, average yearly return, fund count.
    """
    console = console or Console()
    summary = summarize(records)
    cards = Table.grid(expand=True, padding=(0, 2))
    for _ in range(3):
        cards.add_column(ratio=1)
    cards.add_row(
        Panel(
            f"[bold]{summary.best_code or '-'}[/bold]\n{_pct(summary.best_daily_return)} daily",
            title="Best of the day",
        ),
        Panel(
            f"[bold]%{summary.average_yearly_return:.1f}[/bold]\n[dim]sector average[/dim]"
            if summary.fund_count
            else "[bold]-[/bold]",
            title="Average yearly return",
        ),
        Panel(f"[bold]{summary.fund_count}[/bold]\n[dim]active funds[/dim]", title="Listed funds"),
    )
    console.print(cards)


def print_top_performers(records: Sequence[FundRecord], console: Optional[Console] = None) -> None:
    console = console or Console()
    series = top_performers(records)
    if not series:
        return
    peak = max(value for _, value in series)
    table = Table(title="Top yearly performers", box=box.SIMPLE, show_header=False)
    table.add_column("Fund", style="cyan", no_wrap=True)
    table.add_column("Yearly %", justify="right")
    table.add_column("", style="green")
    for code, value in series:
        table.add_row(code, _pct(value), _bar(value, peak))
    console.print(table)


def print_funds(
    records: Sequence[FundRecord],
    category: FundCategory = FundCategory.ALL,
    sort_caption: str = "",
    console: Optional[Console] = None,
) -> None:
    """
    Render the fund table in the order given.
    """
    console = console or Console()

    if not records:
        console.print("[yellow]No funds to display.[/yellow]")
        return

    table = Table(
        title=f"TEFAS funds: {category.label}",
        box=box.ROUNDED,
        caption=sort_caption or None,
    )
    table.add_column("Code", style="cyan", no_wrap=True)
    table.add_column("Fund", overflow="ellipsis", max_width=40)
    table.add_column("Price", justify="right", style="magenta")
    for header, _ in _RETURN_COLUMNS:
        table.add_column(header, justify="right")

    for record in records:
        table.add_row(
            record.code,
            escape(record.title),
            f"{record.price:,.4f}",
            *(_pct(getattr(record, field)) for _, field in _RETURN_COLUMNS),
        )

    console.print(table)


def print_unavailable(error: DataUnavailable, console: Optional[Console] = None) -> None:
    """Empty-state for 'no data for this filter', retryable error for 'no source reachable'."""
    console = console or Console()
    if error.only_empty:
        console.print("[yellow]Data was fetched but the list is empty. Check the filters.[/yellow]")
        return
    lines = "\n".join(f"• {escape(failure.describe())}" for failure in error.failures)
    console.print(
        Panel(
            f"Could not load TEFAS data from any source. Try again.\n\n{lines}",
            title="Connection error",
            border_style="red",
        )
    )


__all__ = [
    "print_funds",
    "print_provenance",
    "print_summary",
    "print_top_performers",
    "print_unavailable",
]
