from __future__ import annotations

import pytest

from fundboard.dashboard import (
    CHART_SIZE,
    average_yearly_return,
    best_performer,
    sort_records,
    summarize,
    toggle_sort,
    top_performers,
)
from fundboard.domain.models import FundRecord

EXPECTED_AVERAGE = 49.0


def _fund(code: str, daily: float = 0.0, yearly: float = 0.0, price: float = 1.0) -> FundRecord:
    return FundRecord(code=code, daily_return=daily, yearly_return=yearly, price=price)


@pytest.fixture
def funds():
    return [_fund("bbb", daily=0.5, yearly=12.0), _fund("AAA", daily=1.2, yearly=55.0),
            _fund("CCC", daily=-0.3, yearly=80.0)]


def test_sort_records_numeric_both_directions(funds) -> None:
    assert [r.code for r in sort_records(funds, "yearly_return", "desc")] == ["CCC", "AAA", "bbb"]
    assert [r.code for r in sort_records(funds, "yearly_return", "asc")] == ["bbb", "AAA", "CCC"]


def test_sort_records_text_is_case_insensitive(funds) -> None:
    assert [r.code for r in sort_records(funds, "code", "asc")] == ["AAA", "bbb", "CCC"]


def test_sort_records_does_not_mutate_input(funds) -> None:
    before = list(funds)

    sort_records(funds, "daily_return")

    assert funds == before


@pytest.mark.parametrize(("field", "direction"), [("title", "asc"), ("price", "up")])
def test_sort_records_rejects_unknown_inputs(funds, field: str, direction: str) -> None:
    with pytest.raises(ValueError):
        sort_records(funds, field, direction)


def test_toggle_sort() -> None:
    assert toggle_sort("daily_return", "desc", "daily_return") == ("daily_return", "asc")
    assert toggle_sort("daily_return", "asc", "daily_return") == ("daily_return", "desc")
    assert toggle_sort("daily_return", "asc", "price") == ("price", "desc")


def test_summary_cards(funds) -> None:
    summary = summarize(funds)

    assert best_performer(funds).code == "AAA"
    assert average_yearly_return(funds) == pytest.approx(EXPECTED_AVERAGE)
    assert summary.fund_count == 3
    assert summary.best_code == "AAA"
    assert summary.best_daily_return == 1.2


def test_summary_of_empty_set() -> None:
    summary = summarize([])

    assert summary.fund_count == 0
    assert summary.best_code is None
    assert summary.average_yearly_return == 0.0


def test_top_performers_is_bounded() -> None:
    funds = [_fund(f"F{i:02d}", yearly=float(i)) for i in range(CHART_SIZE + 3)]

    series = top_performers(funds)

    assert len(series) == CHART_SIZE
    assert series[0] == (f"F{CHART_SIZE + 2:02d}", float(CHART_SIZE + 2))
    assert [value for _, value in series] == sorted((v for _, v in series), reverse=True)
