"""Shared BDD fixtures and step definitions for the store."""

import pytest
from pytest_bdd import given, parsers, then, when
from store.errors import StoreError
from store.stock.item import load_item
from store.stock.ledger import ledger


@pytest.fixture()
def items():
    """Items registered by the scenario, keyed by name."""
    return {}


@pytest.fixture()
def outcome():
    """Result or error of the last action a scenario took."""
    return {"result": None, "error": None}


@pytest.fixture()
def attempt(outcome):
    def _attempt(action, *args, **kwargs):
        try:
            outcome["result"] = action(*args, **kwargs)
            outcome["error"] = None
        except StoreError as exc:
            outcome["result"] = None
            outcome["error"] = exc
        return outcome

    return _attempt


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an item "{name}" with {quantity:d} in stock and a low-stock threshold of {threshold:d}'))
def _(items, make_item, alert_channel, name, quantity, threshold):
    items[name] = make_item(name=name, quantity=quantity, low_stock_threshold=threshold)


@given(parsers.cfparse('an item "{name}" priced {price:f} with {quantity:d} in stock'))
def _(items, make_item, name, price, quantity):
    items[name] = make_item(name=name, quantity=quantity, price=price, low_stock_threshold=0)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('{quantity:d} of "{name}" are decremented for "{reason}"'))
def _(items, attempt, quantity, name, reason):
    attempt(ledger.decrement, items[name].id, quantity, reason, performed_by="staff-1")


@when(parsers.cfparse('{quantity:d} of "{name}" are incremented for "{reason}"'))
def _(items, attempt, quantity, name, reason):
    attempt(ledger.increment, items[name].id, quantity, reason, performed_by="staff-1")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{name}" has {quantity:d} in stock'))
def _(items, name, quantity):
    assert load_item(items[name].id).quantity == quantity


@then(parsers.cfparse('the action fails with "{code}"'))
def _(outcome, code):
    assert outcome["error"] is not None, "Expected the action to fail"
    assert outcome["error"].code == code
