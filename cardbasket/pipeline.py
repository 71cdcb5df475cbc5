from dataclasses import dataclass, field
from typing import List, Optional

from .catalog import PokemonTcgCatalog, build_item_list
from .config import logger
from .models import Item, Offer
from .offers import EbayOfferProvider, fetch_all_offers
from .optimization import OptimizationOutcome, run_optimization
from .policy import OptimizationConfig


@dataclass
class PipelineResult:
    items: List[Item] = field(default_factory=list)
    offers: List[Offer] = field(default_factory=list)
    outcome: Optional[OptimizationOutcome] = None


def build_providers(config, credentials):
    catalog_cfg = config["catalog"]
    catalog = PokemonTcgCatalog(
        credentials["POKEMON_TCG_API_KEY"],
        endpoint=catalog_cfg["endpoint"],
        timeout=catalog_cfg["timeout"],
    )
    offer_provider = EbayOfferProvider.from_config(config["marketplace"], credentials["EBAY_BEARER_TOKEN"])
    return catalog, offer_provider


def run_pipeline(config, catalog, offer_provider, engine=None, optimization_config=None):
    """
    cards → listings → optimal basket. Stops early only when no card was
    resolved; cards without listings go through the unsatisfiable-item policy.
    """
    if optimization_config is None:
        optimization_config = OptimizationConfig.from_dict(config.get("optimization"))

    items = build_item_list(catalog, config["catalog"].get("sets") or [])
    logger.info(f"Resolved {len(items)} card(s).")
    if not items:
        logger.info("No cards resolved. Exiting.")
        return PipelineResult()

    logger.info("Fetching single-card listings from eBay...")
    offers = fetch_all_offers(items, offer_provider, config["marketplace"].get("max_workers", 8))
    logger.info(f"Fetched {len(offers)} listings.")
    if not offers:
        logger.warning("No listings fetched for any card.")

    outcome = run_optimization(items, offers, optimization_config, engine)
    return PipelineResult(items, offers, outcome)
