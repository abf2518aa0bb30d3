"""Shared BDD fixtures for the ticketing domain."""

import pytest


@pytest.fixture()
def products():
    """Product name to product id."""
    return {}


@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}
