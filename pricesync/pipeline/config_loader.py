"""Configuration loader for the two remote page sources.

Loads source definitions from YAML and instantiates the matching page
source. The set of source types is closed: ``items`` and ``item_pricing``.

Example config/sync_sources.yaml:

    sources:
      - name: items
        type: items
        path: /Items
        page_size: 500
      - name: pricing
        type: item_pricing
        page_size: 100
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from pricesync.config import AppConfig
from pricesync.pipeline.page_source import ItemPricingPageSource, ItemsPageSource

logger = logging.getLogger(__name__)


@dataclass
class SourcePair:
    """The two page sources a sync run needs."""

    items: ItemsPageSource
    pricing: ItemPricingPageSource


def build_default_sources(config: AppConfig) -> SourcePair:
    """Build both page sources from environment configuration alone."""
    return SourcePair(
        items=_create_source({"type": "items"}, config),
        pricing=_create_source({"type": "item_pricing"}, config),
    )


def load_source_config(config_path: Path, config: AppConfig) -> SourcePair:
    """Load source definitions from YAML and instantiate page sources.

    Args:
        config_path: Path to YAML configuration file
        config: Application config supplying base URL, token and defaults

    Returns:
        SourcePair with the items and pricing sources

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid or a source type is missing
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Source config not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data or "sources" not in data:
        raise ValueError("Invalid source config: missing 'sources' section")

    built: dict[str, object] = {}

    for source_config in data["sources"]:
        if not source_config.get("enabled", True):
            logger.info(f"Skipping disabled source: {source_config.get('name')}")
            continue

        source = _create_source(source_config, config)
        source_type = source_config["type"]
        if source_type in built:
            raise ValueError(f"Duplicate source type in config: {source_type}")
        built[source_type] = source
        logger.info(f"Loaded source: {source_config.get('name', source_type)} ({source!r})")

    missing = {"items", "item_pricing"} - built.keys()
    if missing:
        raise ValueError(f"Source config is missing required types: {sorted(missing)}")

    return SourcePair(items=built["items"], pricing=built["item_pricing"])


def _create_source(source_config: dict, config: AppConfig):
    """Create page source instance from config.

    Raises:
        ValueError: If source type is unknown
    """
    source_type = source_config.get("type")
    base_url = source_config.get("base_url", config.source.base_url)
    auth_token = source_config.get("auth_token", config.source.auth_token)

    if not source_type:
        raise ValueError(f"Source {source_config.get('name')} missing 'type' field")

    if source_type == "items":
        source = ItemsPageSource(
            base_url,
            auth_token,
            int(source_config.get("page_size", config.source.items_page_size)),
        )

    elif source_type == "item_pricing":
        source = ItemPricingPageSource(
            base_url,
            auth_token,
            int(source_config.get("page_size", config.source.pricing_page_size)),
            regular_price_type_id=source_config.get(
                "regular_price_type_id", config.pricing.regular_price_type_id
            ),
            sale_price_type_id=source_config.get(
                "sale_price_type_id", config.pricing.sale_price_type_id
            ),
        )

    else:
        raise ValueError(f"Unknown source type: {source_type}")

    if source_config.get("path"):
        source.path = "/" + str(source_config["path"]).strip("/")

    return source
