import re

import requests

from .config import logger
from .errors import ProviderError
from .models import Item
from .utils import build_session

LEADING_INT = re.compile(r"^\s*[+-]?\d+")


def format_card_number(raw_number, set_total=None):
    """
    '4' in a 191-card set → '004/191'. Numbers without a leading integer
    ('TG05', 'SWSH001' …) or sets without a known total pass through.
    """
    raw = str(raw_number)
    match = LEADING_INT.match(raw)
    if match is None or not set_total:
        return raw
    return f"{int(match.group()):03d}/{set_total}"


def build_number_query(set_id, card_numbers):
    numbers = " OR ".join(f"number:{num}" for num in card_numbers)
    return f"set.id:{set_id} ({numbers})"


class PokemonTcgCatalog:
    """Resolves set ids and card numbers into Items via the Pokémon TCG API."""

    def __init__(self, api_key, endpoint="https://api.pokemontcg.io/v2/cards",
                 timeout=30, session=None, retries=3):
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or build_session(retries=retries)

    def _request(self, set_id, card_numbers):
        params = {"q": build_number_query(set_id, card_numbers), "pageSize": 250}
        headers = {"X-Api-Key": self.api_key, "Content-Type": "application/json"}
        try:
            resp = self.session.get(self.endpoint, params=params, headers=headers, timeout=self.timeout)
            if not resp.ok:
                raise ProviderError(f"Pokemon TCG API error: {resp.status_code} => {resp.text}")
            return resp.json()
        except requests.RequestException as e:
            raise ProviderError(str(e)) from e
        except ValueError as e:
            raise ProviderError(f"Pokemon TCG API returned invalid JSON: {e}") from e

    def get_items(self, set_id, card_numbers):
        logger.info(f"Fetching multiple cards from set {set_id}")
        try:
            data = self._request(set_id, card_numbers)
        except ProviderError as e:
            logger.error(f"Error fetching card data for set {set_id}: {e}")
            return []

        cards = (data or {}).get("data") or []
        if not cards:
            logger.warning(f"No results for setId={set_id}")
            return []

        items = []
        for card in cards:
            card_set = card.get("set") or {}
            total = card_set.get("printedTotal")
            if total is None:
                total = card_set.get("total")
            items.append(Item(
                name=card.get("name", ""),
                collection=card_set.get("name", ""),
                number=format_card_number(card.get("number", ""), total),
                collection_id=card_set.get("id", set_id),
            ))
        return items


def build_item_list(catalog, sets_to_fetch):
    """Fetch every configured set in turn and concatenate the cards."""
    results = []
    for entry in sets_to_fetch:
        set_id = entry["set_id"]
        logger.info(f"Fetching set: {set_id}" + (f" ({entry['label']})" if entry.get("label") else ""))
        results.extend(catalog.get_items(set_id, entry.get("card_numbers", [])))
    return results
