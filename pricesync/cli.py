"""pricesync CLI.

Commands:
- sync: Fetch items and pricing from the remote API and reconcile a catalog file
- plan: Offline run over JSON fixtures (no network)
- hash: Print the hash index of a normalized source feed
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import NoReturn

import httpx
import typer
from rich.console import Console
from rich.table import Table

from pricesync.canonical.hasher import build_hash_index
from pricesync.canonical.normalizer import ProductNormalizer
from pricesync.config import CatalogConfig, PricingConfig, get_config
from pricesync.core.logging import configure_logging
from pricesync.integration.target_catalog import JsonFileTargetCatalog, TargetCatalogError
from pricesync.models import RawItem, RawPricingDocument
from pricesync.pipeline.config_loader import build_default_sources, load_source_config
from pricesync.pipeline.orchestrator import SyncOrchestrator
from pricesync.pipeline.page_source import ItemPricingPageSource, ItemsPageSource
from pricesync.pipeline.paginator import ConcurrentPaginator, TransportFailure
from pricesync.pipeline.types import SyncResult, SyncStatus
from pricesync.startup_validation import StartupValidationError, validate_startup

app = typer.Typer(
    name="pricesync",
    help="pricesync - Catalog and price synchronization",
    no_args_is_help=True,
)

console = Console()


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]✗ {message}[/bold red]")
    raise typer.Exit(1)


def _read_items(path: Path) -> list[RawItem]:
    # Fixture files hold the same JSON arrays the remote endpoints return
    return ItemsPageSource("", "", 1).decode_page(path.read_bytes())


def _read_pricing(path: Path, pricing: PricingConfig) -> list[RawPricingDocument]:
    source = ItemPricingPageSource(
        "",
        "",
        1,
        regular_price_type_id=pricing.regular_price_type_id,
        sale_price_type_id=pricing.sale_price_type_id,
    )
    return source.decode_page(path.read_bytes())


def _print_result(result: SyncResult) -> None:
    table = Table(title="Sync Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    status_style = "green" if result.status == SyncStatus.SUCCESS else "yellow"
    table.add_row("Status", f"[{status_style}]{result.status.value}[/{status_style}]")
    table.add_row("Source products", str(result.source_total))
    table.add_row("Catalog products", str(result.target_total))
    table.add_row("Updates", str(result.update_count))
    table.add_row("Inserts", str(result.insert_count))
    table.add_row("Applied", "yes" if result.applied else "no")
    table.add_row("Duration", f"{result.duration_seconds:.2f}s")
    console.print(table)

    if result.truncated_sources:
        console.print(
            "[yellow]Truncated by timeout: "
            f"{', '.join(result.truncated_sources)} (partial data)[/yellow]"
        )

    for update in result.change_set.updates:
        console.print(f"  [blue]~[/blue] {update.business_key}")
    for product in result.change_set.inserts:
        console.print(f"  [green]+[/green] {product.business_key}")


@app.command()
def sync(
    target: Path = typer.Option(
        Path("data/catalog.json"), "--target", "-t", help="Target catalog JSON file"
    ),
    sources_file: Path | None = typer.Option(
        None, "--sources", "-s", help="Source definitions YAML (default: config/sync_sources.yaml)"
    ),
    apply: bool = typer.Option(False, "--apply", help="Write changes to the target catalog"),
    as_json: bool = typer.Option(False, "--json", help="Print the summary as JSON"),
):
    """Fetch from the remote API and reconcile the target catalog.

    Runs as a dry run unless --apply is given.
    """
    try:
        config = get_config()
    except KeyError as e:
        _fail(f"Configuration error: {e.args[0]}")

    configure_logging(config.log_level, config.json_logs, stream=sys.stderr if as_json else None)

    try:
        validate_startup(config)
    except StartupValidationError as e:
        _fail(f"Startup validation failed: {e}")

    sources_path = sources_file or config.sources_config_path
    try:
        if sources_path.exists():
            sources = load_source_config(sources_path, config)
        elif sources_file is not None:
            raise FileNotFoundError(f"Source config not found: {sources_path}")
        else:
            sources = build_default_sources(config)
    except (FileNotFoundError, ValueError) as e:
        _fail(str(e))

    if not as_json:
        console.print("[bold]Starting catalog sync[/bold]")
        console.print(f"Target: {target}")
        console.print(
            f"Sale category: {config.catalog.sale_category_name} ({config.catalog.sale_category_slug})"
        )
        if not apply:
            console.print("[yellow]DRY RUN MODE - No changes will be made[/yellow]\n")

    try:
        catalog = JsonFileTargetCatalog(
            target,
            new_product_status=config.catalog.new_product_status,
            sale_category=config.catalog.sale_category_slug,
        )
    except ValueError as e:
        _fail(str(e))

    normalizer = ProductNormalizer(
        price_decimals=config.pricing.price_decimals,
        sale_floor=config.pricing.sale_floor,
    )

    async def _sync() -> SyncResult:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(config.source.request_timeout),
            verify=config.source.verify_ssl,
        ) as client:
            orchestrator = SyncOrchestrator(
                catalog,
                sources=sources,
                paginator=ConcurrentPaginator(client=client),
                normalizer=normalizer,
                batch_size=config.source.batch_size,
            )
            return await orchestrator.run(apply=apply)

    try:
        result = asyncio.run(_sync())
    except (TransportFailure, TargetCatalogError) as e:
        _fail(str(e))

    if apply and result.apply_result is not None:
        catalog.save()

    if as_json:
        typer.echo(json.dumps(result.to_summary(), indent=2))
    else:
        _print_result(result)


@app.command()
def plan(
    items: Path = typer.Option(..., "--items", help="Items JSON file"),
    pricing: Path = typer.Option(..., "--pricing", help="Pricing documents JSON file"),
    target: Path = typer.Option(..., "--target", help="Target catalog JSON file"),
    apply: bool = typer.Option(False, "--apply", help="Apply the plan to the in-memory catalog"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write the resulting catalog here (with --apply)"
    ),
):
    """Offline run from JSON fixtures; prints a JSON summary."""
    configure_logging(stream=sys.stderr)
    pricing_config = PricingConfig.from_env()
    catalog_config = CatalogConfig.from_env()

    for path in (items, pricing):
        if not path.exists():
            _fail(f"File not found: {path}")

    try:
        raw_items = _read_items(items)
        documents = _read_pricing(pricing, pricing_config)
        catalog = JsonFileTargetCatalog(
            target,
            new_product_status=catalog_config.new_product_status,
            sale_category=catalog_config.sale_category_slug,
        )
    except ValueError as e:
        _fail(str(e))

    orchestrator = SyncOrchestrator(
        catalog,
        normalizer=ProductNormalizer(
            price_decimals=pricing_config.price_decimals,
            sale_floor=pricing_config.sale_floor,
        ),
    )

    try:
        result = asyncio.run(orchestrator.reconcile(raw_items, documents, apply=apply))
    except TargetCatalogError as e:
        _fail(str(e))

    if apply and output is not None:
        catalog.save(output)

    summary = {
        "source_count": result.source_total,
        "target_count": result.target_total,
        **result.change_set.to_summary(),
        "applied": result.applied,
    }
    typer.echo(json.dumps(summary, indent=2))


@app.command(name="hash")
def hash_cmd(
    items: Path = typer.Option(..., "--items", help="Items JSON file"),
    pricing: Path = typer.Option(..., "--pricing", help="Pricing documents JSON file"),
):
    """Print the hash index (digest -> business key) of a normalized feed."""
    configure_logging(stream=sys.stderr)
    pricing_config = PricingConfig.from_env()

    for path in (items, pricing):
        if not path.exists():
            _fail(f"File not found: {path}")

    normalizer = ProductNormalizer(
        price_decimals=pricing_config.price_decimals,
        sale_floor=pricing_config.sale_floor,
    )
    products = normalizer.normalize(_read_items(items), _read_pricing(pricing, pricing_config))
    typer.echo(json.dumps(build_hash_index(products), indent=2))


if __name__ == "__main__":
    app()
