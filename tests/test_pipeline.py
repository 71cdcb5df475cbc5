# tests/test_pipeline.py

import copy

import pytest

from cardbasket import cli
from cardbasket.config import DEFAULT_CONFIG
from cardbasket.engine import EngineResult, SolveStatus
from cardbasket.errors import ConfigurationError, UnsatisfiableItemError
from cardbasket.pipeline import run_pipeline

from conftest import ScriptedEngine, make_item, make_offer

PIKACHU = make_item("Pikachu ex", "057/191", collection="Surging Sparks", collection_id="sv8")
EEVEE = make_item("Eevee", "048/191", collection="Surging Sparks", collection_id="sv8")


class StubCatalog:
    def __init__(self, items):
        self.items = items
        self.requests = []

    def get_items(self, set_id, card_numbers):
        self.requests.append((set_id, tuple(card_numbers)))
        return list(self.items)


class StubOfferProvider:
    def __init__(self, offers):
        self.offers = offers

    def fetch_offers(self, item):
        return [o for o in self.offers if o.item_key == item.key]


@pytest.fixture
def config():
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg["catalog"]["sets"] = [{"set_id": "sv8", "card_numbers": ["57", "48"]}]
    return cfg


OFFERS = [
    make_offer(PIKACHU, "p-a", "alice", 10.0, 5.0),
    make_offer(PIKACHU, "p-b", "bob", 11.0, 1.0),
    make_offer(EEVEE, "e-b", "bob", 2.0, 1.0),
]


def test_pipeline_fetches_and_optimises(config):
    catalog = StubCatalog([PIKACHU, EEVEE])

    result = run_pipeline(config, catalog, StubOfferProvider(OFFERS))

    assert catalog.requests == [("sv8", ("57", "48"))]
    assert len(result.offers) == 3
    solution = result.outcome.solution
    assert sorted(o.offer_id for o in solution.chosen_offers) == ["e-b", "p-b"]
    assert solution.total_cost == pytest.approx(14.0)


def test_pipeline_stops_without_cards(config):
    engine = ScriptedEngine()
    result = run_pipeline(config, StubCatalog([]), StubOfferProvider(OFFERS), engine=engine)

    assert result.outcome is None
    assert engine.calls == 0


def test_cards_without_any_listing_are_reported(config):
    engine = ScriptedEngine()
    result = run_pipeline(config, StubCatalog([PIKACHU, EEVEE]), StubOfferProvider([]), engine=engine)

    assert result.items == [PIKACHU, EEVEE]
    assert engine.calls == 0
    outcome = result.outcome
    assert outcome.solved
    assert outcome.unsatisfiable_items == (PIKACHU, EEVEE)
    assert outcome.solution.chosen_offers == ()
    assert outcome.solution.total_cost == 0.0


def test_cards_without_any_listing_abort_when_configured(config):
    config["optimization"]["unsatisfiable_policy"] = "abort"
    engine = ScriptedEngine()

    with pytest.raises(UnsatisfiableItemError) as excinfo:
        run_pipeline(config, StubCatalog([PIKACHU, EEVEE]), StubOfferProvider([]), engine=engine)
    assert excinfo.value.items == (PIKACHU, EEVEE)
    assert engine.calls == 0


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "catalog:\n  sets:\n    - set_id: sv8\n      card_numbers: ['57', '48']\n"
        "logging:\n  level: INFO\n  file: null\n",
        encoding="utf-8",
    )
    monkeypatch.setattr(cli, "load_credentials", lambda: {"EBAY_BEARER_TOKEN": "t", "POKEMON_TCG_API_KEY": "k"})
    monkeypatch.setattr(
        cli, "build_providers", lambda config, credentials: (StubCatalog([PIKACHU, EEVEE]), StubOfferProvider(OFFERS))
    )
    return config_path


def test_cli_exports_basket(cli_env, tmp_path, capsys):
    out_dir = tmp_path / "out"

    code = cli.main(["--config", str(cli_env), "--output-dir", str(out_dir), "--format", "xlsx"])

    assert code == 0
    assert "Pikachu ex (057/191)" in capsys.readouterr().out
    exported = list(out_dir.glob("chosen_listings_*.xlsx"))
    assert len(exported) == 1


def test_cli_no_export_writes_nothing(cli_env, tmp_path):
    out_dir = tmp_path / "out"

    assert cli.main(["--config", str(cli_env), "--output-dir", str(out_dir), "--no-export"]) == 0
    assert not out_dir.exists()


def test_cli_abort_policy_exits_nonzero(cli_env, monkeypatch):
    charizard = make_item("Charizard", "006/191", collection_id="sv8")
    monkeypatch.setattr(
        cli, "build_providers",
        lambda config, credentials: (StubCatalog([PIKACHU, charizard]), StubOfferProvider(OFFERS)),
    )

    assert cli.main(["--config", str(cli_env), "--unsatisfiable-policy", "abort", "--no-export"]) == 1


def test_cli_missing_credentials_is_a_config_error(cli_env, monkeypatch):
    def no_credentials():
        raise ConfigurationError("Missing required environment variables: EBAY_BEARER_TOKEN")

    monkeypatch.setattr(cli, "load_credentials", no_credentials)

    assert cli.main(["--config", str(cli_env)]) == 2


def test_cli_solver_failure_exits_nonzero(cli_env, monkeypatch):
    def failing_pipeline(config, catalog, offer_provider, optimization_config=None):
        return run_pipeline(
            config, catalog, offer_provider,
            engine=ScriptedEngine(EngineResult(SolveStatus.ERROR, message="crashed")),
            optimization_config=optimization_config,
        )

    monkeypatch.setattr(cli, "run_pipeline", failing_pipeline)

    assert cli.main(["--config", str(cli_env), "--no-export"]) == 1


def test_overrides_reach_config():
    args = cli.parse_args(["--shipping-policy", "per_offer", "--format", "xlsx", "--log-level", "debug"])
    config = cli.apply_overrides(copy.deepcopy(DEFAULT_CONFIG), args)

    assert config["optimization"]["shipping_policy"] == "per_offer"
    assert config["output"]["filename"] == "chosen_listings.xlsx"
    assert config["logging"]["level"] == "DEBUG"
