from __future__ import annotations

import json
import sys

import typer

from fundboard.config import get_settings
from fundboard.dashboard import DEFAULT_SORT_FIELD, SORT_FIELDS, sort_records
from fundboard.domain.errors import DataUnavailable, StorageError, UnknownCategoryError
from fundboard.domain.models import FundCategory
from fundboard.infrastructure.cache_store import build_cache_store
from fundboard.orchestrator import available_tiers, build_orchestrator
from fundboard.reporter import (
    print_funds,
    print_provenance,
    print_summary,
    print_top_performers,
    print_unavailable,
)
from fundboard.utils.logging import configure_logging

app = typer.Typer(help="TEFAS fund performance dashboard CLI.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    store = (
        f"postgres {settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name}"
        if settings.cache_backend == "postgres"
        else f"sqlite {settings.sqlite_path}"
    )
    typer.echo(
        f"proxy={settings.proxy_url} | relay={settings.relay_prefix} | "
        f"timeout={settings.tier_timeout_seconds:g}s window={settings.window_days}d | "
        f"cache={store} | tiers={' -> '.join(available_tiers())}"
    )


@app.command()
def categories() -> None:
    """
    List accepted category tokens.
    """
    for category in FundCategory:
        typer.echo(f"{category.value:<8} {category.label}")


@app.command()
def fetch(
    category: str = typer.Option(
        "all", "--category", "-c", help="Fund category (all, equity, gold, bond, mixed)."
    ),
    sort: str = typer.Option(
        DEFAULT_SORT_FIELD, "--sort", "-s", help=f"Sort field: {', '.join(SORT_FIELDS)}."
    ),
    ascending: bool = typer.Option(False, "--asc/--desc", help="Sort direction."),
    limit: int = typer.Option(25, "--limit", "-n", min=0, help="Rows to display (0 = all)."),
    as_json: bool = typer.Option(False, "--json", help="Print the {data, source} payload."),
) -> None:
    """
    Acquire fund data through the fallback chain and render the dashboard.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    if sort not in SORT_FIELDS:
        raise typer.BadParameter(f"Unknown sort field '{sort}'.", param_hint="--sort")

    store = build_cache_store(settings)
    orchestrator = build_orchestrator(settings=settings, store=store)
    try:
        resolved = orchestrator.resolve_category(category)
        result = orchestrator.acquire(resolved)
    except UnknownCategoryError as exc:
        raise typer.BadParameter(str(exc), param_hint="--category") from exc
    except DataUnavailable as exc:
        if as_json:
            typer.echo(json.dumps({"error": str(exc), "failures": [f.describe() for f in exc.failures]}))
        else:
            print_unavailable(exc)
        raise typer.Exit(code=0 if exc.only_empty else 1) from exc

    if as_json:
        typer.echo(json.dumps(result.to_payload(), indent=2, ensure_ascii=False))
        return

    last_updated = None
    if result.provenance.is_stale and hasattr(store, "last_updated"):
        try:
            last_updated = store.last_updated()
        except StorageError:
            last_updated = None

    direction = "asc" if ascending else "desc"
    ordered = sort_records(result.records, field=sort, direction=direction)
    print_provenance(result, last_updated=last_updated)
    print_summary(result.records)
    print_top_performers(result.records)
    print_funds(
        ordered[:limit] if limit else ordered,
        category=resolved,
        sort_caption=f"Sorted by {sort} ({direction})",
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address."),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port."),
) -> None:
    """
    Run the trusted proxy endpoint (POST /api/funds).
    """
    import uvicorn

    from fundboard.proxy_app import create_app

    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
