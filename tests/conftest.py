# tests/conftest.py

import logging

import pytest

from cardbasket.engine import EngineResult, OptimizationEngine, SolveStatus
from cardbasket.models import Item, Offer


@pytest.fixture
def setup_logging():
    """
    Fixture to set up logging for tests.
    """
    logger = logging.getLogger('test_logger')
    logger.setLevel(logging.DEBUG)

    # Create console handler with a higher log level
    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG)

    # Create formatter and add it to the handlers
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
    ch.setFormatter(formatter)

    # Add the handlers to the logger
    if not logger.handlers:
        logger.addHandler(ch)

    return logger


def make_item(name, number="001/100", collection="Test Set", collection_id="tst"):
    return Item(name=name, collection=collection, number=number, collection_id=collection_id)


def make_offer(item, offer_id, vendor, price, shipping=0.0):
    return Offer(
        offer_id=offer_id,
        item_key=item.key,
        item_name=item.name,
        vendor=vendor,
        price=price,
        shipping=shipping,
        url=f"https://www.ebay.co.uk/itm/{offer_id}",
    )


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def offer_factory():
    return make_offer


class ScriptedEngine(OptimizationEngine):
    """Returns a fixed result, or builds one from the program via ``script``."""

    def __init__(self, result=None, script=None):
        self.result = result
        self.script = script
        self.calls = 0

    def solve(self, program):
        self.calls += 1
        if self.script is not None:
            return self.script(program)
        return self.result


@pytest.fixture
def scripted_engine():
    return ScriptedEngine


def assignment_for(program, chosen_offers, active_vendors):
    """All-zero assignment except the given offers/vendors."""
    chosen = {program.select_var(o).name for o in chosen_offers}
    active = {program.active_var(v).name for v in active_vendors}
    return {
        var.name: 1.0 if var.name in chosen | active else 0.0
        for var in program.variables.values()
    }


def optimal_result(program, chosen_offers, active_vendors, objective):
    return EngineResult(
        SolveStatus.OPTIMAL,
        assignment=assignment_for(program, chosen_offers, active_vendors),
        objective_value=objective,
    )


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text="", json_error=None):
        self.payload = payload
        self.status_code = status_code
        self.text = text
        self.json_error = json_error

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self.json_error is not None:
            raise self.json_error
        return self.payload


class FakeSession:
    """Stands in for requests.Session; records every GET."""

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


@pytest.fixture
def fake_session():
    return FakeSession
