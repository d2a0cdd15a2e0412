"""
Cache Store seeding script for fundboard.

Loads a saved TEFAS comparison answer (either the bare upstream list or a
proxy `{data, source}` payload) into the configured Cache Store, or generates
a deterministic synthetic snapshot for offline demos.
"""

from __future__ import annotations

import json
import random
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from fundboard.config import get_settings
from fundboard.domain.errors import FundboardError
from fundboard.infrastructure.cache_store import CacheStore, build_cache_store
from fundboard.normalizer import UPSTREAM_FIELDS, normalize_upstream, to_store_row

app = typer.Typer(help="Seed the fund Cache Store from a saved snapshot or synthetic data.")

_TITLE_WORDS = ("Hisse", "Altın", "Borçlanma", "Değişken", "Teknoloji", "Temettü", "Katılım")


def _generate_items(funds: int, seed: int) -> List[Dict[str, Any]]:
    rng = random.Random(seed)
    items: List[Dict[str, Any]] = []
    for i in range(funds):
        yearly = round(rng.uniform(-10, 120), 2)
        items.append(
            {
                UPSTREAM_FIELDS["code"]: f"S{i:02d}",
                UPSTREAM_FIELDS["title"]: f"Örnek {rng.choice(_TITLE_WORDS)} Fonu {i}",
                UPSTREAM_FIELDS["price"]: round(rng.uniform(0.5, 50), 6),
                UPSTREAM_FIELDS["daily_return"]: round(rng.uniform(-3, 3), 2),
                UPSTREAM_FIELDS["weekly_return"]: round(rng.uniform(-6, 6), 2),
                UPSTREAM_FIELDS["monthly_return"]: round(rng.uniform(-10, 15), 2),
                UPSTREAM_FIELDS["three_month_return"]: round(rng.uniform(-15, 30), 2),
                UPSTREAM_FIELDS["six_month_return"]: round(rng.uniform(-20, 60), 2),
                UPSTREAM_FIELDS["ytd_return"]: round(yearly * 0.8, 2),
                UPSTREAM_FIELDS["yearly_return"]: yearly,
                UPSTREAM_FIELDS["three_year_return"]: round(yearly * 3.1, 2),
                UPSTREAM_FIELDS["fund_size"]: round(rng.uniform(1e6, 5e9), 2),
                UPSTREAM_FIELDS["investor_count"]: rng.randint(10, 250_000),
            }
        )
    return items


def _load_items(path: Path) -> List[Dict[str, Any]]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise typer.BadParameter(f"{path} is not valid JSON: {exc}", param_hint="--snapshot") from exc
    items = payload.get("data") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise typer.BadParameter(f"{path} holds neither a list nor a {{data: [...]}} payload.")
    return items


def _seed_store(store: CacheStore, items: List[Dict[str, Any]]) -> int:
    records = normalize_upstream(items)
    return store.upsert([to_store_row(record) for record in records], key_column="code")


@app.command()
def main(
    snapshot: Optional[Path] = typer.Option(
        None,
        "--snapshot",
        "-f",
        exists=True,
        dir_okay=False,
        help="Saved upstream JSON answer to load (synthetic data when omitted).",
    ),
    funds: int = typer.Option(
        40,
        "--funds",
        "-n",
        min=1,
        help="Number of synthetic funds to generate.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed for synthetic data.",
    ),
) -> None:
    """
    Upsert a fund snapshot into the configured Cache Store.
    """
    start = time.perf_counter()
    items = _load_items(snapshot) if snapshot else _generate_items(funds, seed)
    store = build_cache_store(get_settings())
    typer.echo(f"Seeding {len(items):,} funds into the {store.name} store...")
    try:
        written = _seed_store(store, items)
    except FundboardError as exc:
        typer.echo(f"Seeding failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Upserted {written:,} funds in {time.perf_counter() - start:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
