from __future__ import annotations

import json
from typing import Any, List, Optional

import pytest
from typer.testing import CliRunner

from fundboard import main as cli
from fundboard.domain.errors import DataUnavailable, TierFailure
from fundboard.domain.models import FetchResult, FundCategory, FundRecord, Provenance

runner = CliRunner()


class _StubOrchestrator:
    def __init__(self, outcome: Any) -> None:
        self.outcome = outcome
        self.requested: List[FundCategory] = []

    def resolve_category(self, category: Optional[str]) -> FundCategory:
        return FundCategory.parse(category)

    def acquire(self, category: FundCategory) -> FetchResult:
        self.requested.append(category)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def wire(monkeypatch, test_settings, make_store):
    """Point the CLI at test settings and a stub orchestrator."""

    def install(outcome: Any) -> _StubOrchestrator:
        stub = _StubOrchestrator(outcome)
        monkeypatch.setattr(cli, "get_settings", lambda: test_settings)
        monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)
        monkeypatch.setattr(cli, "build_cache_store", lambda settings: make_store())
        monkeypatch.setattr(cli, "build_orchestrator", lambda settings, store: stub)
        return stub

    return install


def _result(provenance: Provenance = Provenance.LIVE) -> FetchResult:
    return FetchResult(
        records=[
            FundRecord(code="AAA", title="A [Hisse] Fonu", daily_return=1.5, yearly_return=40.0),
            FundRecord(code="BBB", title="B Fonu", daily_return=-0.2, yearly_return=60.0),
        ],
        provenance=provenance,
        tier="trusted_proxy",
    )


def test_categories_lists_every_token() -> None:
    result = runner.invoke(cli.app, ["categories"])

    assert result.exit_code == 0
    for category in FundCategory:
        assert category.value in result.stdout


def test_info_shows_tier_chain(monkeypatch, test_settings) -> None:
    monkeypatch.setattr(cli, "get_settings", lambda: test_settings)

    result = runner.invoke(cli.app, ["info"])

    assert result.exit_code == 0
    assert "trusted_proxy -> cors_relay -> cache_snapshot" in result.stdout
    assert "sqlite" in result.stdout


def test_fetch_renders_dashboard(wire) -> None:
    stub = wire(_result())

    result = runner.invoke(cli.app, ["fetch", "--category", "equity", "--sort", "yearly_return"])

    assert result.exit_code == 0, result.stdout
    assert stub.requested == [FundCategory.EQUITY]
    assert "Live data from TEFAS" in result.stdout
    assert "AAA" in result.stdout and "BBB" in result.stdout


def test_fetch_json_payload(wire) -> None:
    wire(_result(Provenance.CACHED))

    result = runner.invoke(cli.app, ["fetch", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["source"] == "cached"
    assert [item["code"] for item in payload["data"]] == ["AAA", "BBB"]
    assert "dailyReturn" in payload["data"][0]


def test_fetch_unknown_category_is_usage_error(wire) -> None:
    wire(_result())

    result = runner.invoke(cli.app, ["fetch", "--category", "crypto"])

    assert result.exit_code == 2


def test_fetch_unknown_sort_field_is_usage_error(wire) -> None:
    wire(_result())

    result = runner.invoke(cli.app, ["fetch", "--sort", "title"])

    assert result.exit_code == 2


def test_fetch_reports_exhausted_chain(wire) -> None:
    wire(DataUnavailable([TierFailure("trusted_proxy", "transport", "refused")]))

    result = runner.invoke(cli.app, ["fetch"])

    assert result.exit_code == 1
    assert "Connection error" in result.stdout


def test_fetch_empty_filter_is_not_a_failure(wire) -> None:
    wire(DataUnavailable([TierFailure("cache_snapshot", "empty", "no rows")]))

    result = runner.invoke(cli.app, ["fetch", "--category", "gold"])

    assert result.exit_code == 0
    assert "list is empty" in result.stdout
