"""Shared BDD fixtures and step definitions for the Checkout domain."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import parsers, then


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


@then(parsers.cfparse('the checkout action fails with a validation error on "{field}"'))
def checkout_action_fails(error, field):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)
    assert field in error["exc"].messages
