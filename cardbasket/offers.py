from concurrent.futures import ThreadPoolExecutor

import requests

from .cache import QueryCache
from .config import logger
from .errors import ProviderError
from .models import Offer
from .utils import build_session, parse_amount

DEFAULT_EXCLUDE_TERMS = ("lot", "bundle", "japanese", "korean", "chinese")
UNKNOWN_SELLER = "UnknownSeller"


def build_search_query(item, exclude_terms=DEFAULT_EXCLUDE_TERMS):
    exclusions = " ".join(f"-{term}" for term in exclude_terms)
    return f"{item.name} {item.number} {item.collection} {exclusions}".strip()


def parse_item_summary(summary, item):
    """Map one eBay ``itemSummaries`` entry onto an Offer for ``item``."""
    shipping_options = summary.get("shippingOptions") or [{}]
    shipping_cost = (shipping_options[0] or {}).get("shippingCost") or {}
    return Offer(
        offer_id=str(summary.get("itemId") or summary.get("epid") or summary.get("title")),
        item_key=item.key,
        item_name=item.name,
        vendor=(summary.get("seller") or {}).get("username") or UNKNOWN_SELLER,
        price=max(parse_amount((summary.get("price") or {}).get("value")), 0.0),
        shipping=max(parse_amount(shipping_cost.get("value")), 0.0),
        url=summary.get("itemWebUrl") or "",
    )


class EbayOfferProvider:
    """
    Fixed-price listings for an item from the eBay Browse API.

    Raw search results are cached per search signature in the injected
    ``QueryCache``; failed searches are logged and give no offers.
    """

    def __init__(self, token, cache=None, endpoint="https://api.ebay.com/buy/browse/v1/item_summary/search",
                 marketplace_id="EBAY_GB", country="GB", limit=200, timeout=30,
                 exclude_terms=DEFAULT_EXCLUDE_TERMS, session=None, retries=3):
        self.token = token
        self.cache = cache if cache is not None else QueryCache()
        self.endpoint = endpoint
        self.marketplace_id = marketplace_id
        self.country = country
        self.limit = limit
        self.timeout = timeout
        self.exclude_terms = tuple(exclude_terms)
        self.session = session or build_session(retries=retries)

    @classmethod
    def from_config(cls, section, token, cache=None, session=None):
        return cls(
            token,
            cache=cache if cache is not None else QueryCache(ttl=section.get("cache_ttl")),
            endpoint=section["endpoint"],
            marketplace_id=section["marketplace_id"],
            country=section["country"],
            limit=section["max_listings"],
            timeout=section["timeout"],
            exclude_terms=section["exclude_terms"],
            session=session,
            retries=section.get("retries", 3),
        )

    def signature(self, item):
        return (build_search_query(item, self.exclude_terms), self.limit, self.country, self.marketplace_id)

    def _search(self, query):
        params = {
            "q": query,
            "limit": self.limit,
            "filter": f"buyingOptions:{{FIXED_PRICE}},itemLocationCountry:{self.country}",
        }
        headers = {
            "Authorization": f"Bearer {self.token}",
            "X-EBAY-C-MARKETPLACE-ID": self.marketplace_id,
            "Content-Type": "application/json",
        }
        try:
            response = self.session.get(self.endpoint, params=params, headers=headers, timeout=self.timeout)
            if not response.ok:
                raise ProviderError(f"Error {response.status_code} from eBay: {response.text}")
            data = response.json()
        except requests.RequestException as e:
            raise ProviderError(str(e)) from e
        except ValueError as e:
            raise ProviderError(f"eBay returned invalid JSON: {e}") from e
        return list((data or {}).get("itemSummaries") or [])

    def fetch_offers(self, item):
        key = self.signature(item)
        try:
            summaries = self.cache.get_or_load(key, lambda: self._search(key[0]))
        except ProviderError as e:
            logger.error(f'Error fetching listings for "{item.name}": {e}')
            return []

        offers = []
        for summary in summaries:
            try:
                offers.append(parse_item_summary(summary, item))
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed listing for {item.label}: {e}")
        return offers


def fetch_all_offers(items, provider, max_workers=8):
    """Fetch every item's offers concurrently; returns a flat list in item order."""
    items = list(items)
    if not items:
        return []
    logger.info(f"Fetching listings for {len(items)} cards in parallel...")
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(items)))) as pool:
        per_item = list(pool.map(provider.fetch_offers, items))
    return [offer for offers in per_item for offer in offers]
