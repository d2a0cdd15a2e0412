"""
Read-time dashboard views over a fund record set.

Sorting, the summary cards (best daily performer, average yearly return, fund
count) and the top-performers chart series. Nothing here is persisted; every
view is recomputed from the records of the latest FetchResult.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Optional, Sequence, Tuple

from fundboard.domain.models import RETURN_FIELDS, FundRecord

SortDirection = Literal["asc", "desc"]

SORT_FIELDS: Tuple[str, ...] = ("code", "price", *RETURN_FIELDS)
DEFAULT_SORT_FIELD = "daily_return"
CHART_SIZE = 7


def sort_records(
    records: Sequence[FundRecord],
    field: str = DEFAULT_SORT_FIELD,
    direction: SortDirection = "desc",
) -> List[FundRecord]:
    """Return a new list ordered by `field`; text fields compare case-insensitively."""
    if field not in SORT_FIELDS:
        raise ValueError(f"Cannot sort by '{field}'. Available: {', '.join(SORT_FIELDS)}")
    if direction not in ("asc", "desc"):
        raise ValueError(f"Sort direction must be 'asc' or 'desc', got '{direction}'")

    def key(record: FundRecord):
        value = getattr(record, field)
        return value.casefold() if isinstance(value, str) else value

    return sorted(records, key=key, reverse=direction == "desc")


def toggle_sort(
    current_field: str, current_direction: SortDirection, clicked_field: str
) -> Tuple[str, SortDirection]:
    """Header click: flip direction on the active column, otherwise sort the new one descending."""
    if clicked_field == current_field:
        return current_field, "asc" if current_direction == "desc" else "desc"
    return clicked_field, "desc"


def best_performer(records: Sequence[FundRecord]) -> Optional[FundRecord]:
    """Fund with the highest daily return."""
    if not records:
        return None
    return max(records, key=lambda r: r.daily_return)


def average_yearly_return(records: Sequence[FundRecord]) -> float:
    if not records:
        return 0.0
    return sum(r.yearly_return for r in records) / len(records)


def top_performers(
    records: Sequence[FundRecord], size: int = CHART_SIZE, field: str = "yearly_return"
) -> List[Tuple[str, float]]:
    """(code, value) pairs for the bar chart, best first."""
    ordered = sort_records(records, field=field, direction="desc")
    return [(r.code, getattr(r, field)) for r in ordered[:size]]


@dataclass(frozen=True)
class DashboardSummary:
    fund_count: int
    best_code: Optional[str]
    best_daily_return: float
    average_yearly_return: float


def summarize(records: Sequence[FundRecord]) -> DashboardSummary:
    best = best_performer(records)
    return DashboardSummary(
        fund_count=len(records),
        best_code=best.code if best else None,
        best_daily_return=best.daily_return if best else 0.0,
        average_yearly_return=average_yearly_return(records),
    )


__all__ = [
    "CHART_SIZE",
    "DEFAULT_SORT_FIELD",
    "DashboardSummary",
    "SORT_FIELDS",
    "SortDirection",
    "average_yearly_return",
    "best_performer",
    "sort_records",
    "summarize",
    "toggle_sort",
    "top_performers",
]
