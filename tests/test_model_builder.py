# tests/test_model_builder.py

import pulp
import pytest

from cardbasket.errors import UnsatisfiableItemError
from cardbasket.model_builder import build_program, group_offers_by_item
from cardbasket.models import OfferVariable, VendorVariable
from cardbasket.policy import OptimizationConfig, ShippingPolicy, UnsatisfiablePolicy, per_offer_policy

from conftest import make_item, make_offer


@pytest.fixture
def basket():
    pikachu = make_item("Pikachu", "004/191")
    eevee = make_item("Eevee", "048/191")
    offers = [
        make_offer(pikachu, "p-a", "alice", 10.0, 5.0),
        make_offer(pikachu, "p-b", "bob", 8.0, 1.0),
        make_offer(eevee, "e-a", "alice", 12.0, 3.0),
    ]
    return [pikachu, eevee], offers


def _coefficients(expr):
    return {var.name: coef for var, coef in expr.items()}


def _constraints(program):
    return {c.name: c for c in program.problem.constraints()}


def test_one_variable_per_offer_and_per_vendor(basket):
    items, offers = basket
    program = build_program(items, offers)

    select_keys = [k for k in program.variables if isinstance(k, OfferVariable)]
    vendor_keys = [k for k in program.variables if isinstance(k, VendorVariable)]
    assert len(select_keys) == 3
    assert sorted(k.vendor for k in vendor_keys) == ["alice", "bob"]
    assert all(v.cat == pulp.LpInteger and v.lowBound == 0 and v.upBound == 1
               for v in program.variables.values())


def test_handles_are_opaque_and_reversible(basket):
    items, offers = basket
    program = build_program(items, offers)

    for key, var in program.variables.items():
        assert program.key_for(var.name) == key
        assert "alice" not in var.name and "p-a" not in var.name


def test_coverage_constraints_require_exactly_one_offer(basket):
    items, offers = basket
    program = build_program(items, offers)
    cons = _constraints(program)

    cover = [c for name, c in cons.items() if name.startswith("cover_")]
    assert len(cover) == 2
    for c in cover:
        assert c.sense == pulp.LpConstraintEQ
        assert c.constant == -1
        assert set(c.values()) == {1}

    pikachu_cover = _coefficients(cons["cover_0"])
    assert set(pikachu_cover) == {program.select_var(offers[0]).name, program.select_var(offers[1]).name}


def test_activation_constraint_per_offer(basket):
    items, offers = basket
    program = build_program(items, offers)

    activation = {name: c for name, c in _constraints(program).items() if name.startswith("activate_")}
    assert len(activation) == len(offers)
    first = _coefficients(activation["activate_0"])
    assert first == {program.select_var(offers[0]).name: 1, program.active_var("alice").name: -1}
    assert activation["activate_0"].sense == pulp.LpConstraintLE


def test_usage_constraint_per_vendor(basket):
    items, offers = basket
    program = build_program(items, offers)
    usage = [c for name, c in _constraints(program).items() if name.startswith("usage_")]
    assert len(usage) == 2


def test_vendor_max_objective_charges_dearest_shipping_once(basket):
    items, offers = basket
    program = build_program(items, offers)

    assert program.vendor_charges == {"alice": 5.0, "bob": 1.0}
    objective = _coefficients(program.problem.objective)
    assert objective[program.select_var(offers[0]).name] == 10.0
    assert objective[program.select_var(offers[2]).name] == 12.0
    assert objective[program.active_var("alice").name] == 5.0
    assert objective[program.active_var("bob").name] == 1.0


def test_per_offer_objective_puts_shipping_on_listings(basket):
    items, offers = basket
    program = build_program(items, offers, per_offer_policy())

    objective = _coefficients(program.problem.objective)
    assert objective[program.select_var(offers[0]).name] == 15.0
    assert objective.get(program.active_var("alice").name, 0) == 0


def test_ignore_policy_prices_only(basket):
    items, offers = basket
    program = build_program(items, offers, OptimizationConfig(shipping_policy=ShippingPolicy.IGNORE))

    objective = _coefficients(program.problem.objective)
    assert objective[program.select_var(offers[1]).name] == 8.0
    assert objective.get(program.active_var("bob").name, 0) == 0


def test_item_without_offers_is_excluded_and_reported(basket):
    items, offers = basket
    charizard = make_item("Charizard", "199/191")
    program = build_program(items + [charizard], offers)

    assert program.unsatisfiable_items == (charizard,)
    assert charizard not in program.covered_items
    assert len([n for n in _constraints(program) if n.startswith("cover_")]) == 2


def test_abort_policy_rejects_run(basket):
    items, offers = basket
    charizard = make_item("Charizard", "199/191")
    config = OptimizationConfig(unsatisfiable_policy=UnsatisfiablePolicy.ABORT)

    with pytest.raises(UnsatisfiableItemError) as excinfo:
        build_program(items + [charizard], offers, config)
    assert excinfo.value.items == (charizard,)


def test_builder_is_deterministic(basket):
    items, offers = basket
    first = build_program(items, offers)
    second = build_program(items, offers)

    assert list(first.handles) == list(second.handles)
    assert first.handles == second.handles
    assert _coefficients(first.problem.objective) == _coefficients(second.problem.objective)
    assert {n: _coefficients(c) for n, c in _constraints(first).items()} == \
        {n: _coefficients(c) for n, c in _constraints(second).items()}


def test_duplicate_and_stray_offers_are_dropped(basket):
    items, offers = basket
    stranger = make_item("Mew", "151/165", collection_id="sv3pt5")
    extra = [
        make_offer(items[0], "p-a", "alice", 10.0, 5.0),
        make_offer(stranger, "m-1", "carol", 1.0),
    ]
    grouped = group_offers_by_item(items, offers + extra)
    assert [o.offer_id for o in grouped[items[0].key]] == ["p-a", "p-b"]
    assert "carol" not in build_program(items, offers + extra).vendor_charges


def test_same_listing_id_for_two_cards_gets_two_variables():
    a = make_item("Pikachu", "004/191")
    b = make_item("Pikachu ex", "057/191")
    offers = [make_offer(a, "shared", "alice", 2.0), make_offer(b, "shared", "alice", 3.0)]
    program = build_program([a, b], offers)
    assert program.select_var(offers[0]).name != program.select_var(offers[1]).name


def test_stats(basket):
    items, offers = basket
    stats = build_program(items, offers).stats()
    assert stats["offers"] == 3
    assert stats["vendors"] == 2
    # 2 cover + 3 activate + 2 usage
    assert stats["constraints"] == 7


@pytest.mark.parametrize("price, shipping", [(float("inf"), 0.0), (1.0, float("nan")), (-1.0, 0.0), (1.0, -0.5)])
def test_offer_rejects_amounts_the_solver_cannot_price(price, shipping):
    with pytest.raises(ValueError):
        make_offer(make_item("Pikachu"), "x", "alice", price, shipping)
