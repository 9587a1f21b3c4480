"""
conftest.py - Shared pytest fixtures for presale tests

Provides common fixtures used across unit, conformance and functional tests:
- The reference configuration (see tests/fake_view.py for its constants)
- Presales before, during and after the sale window
- FakeView for pure compute functions
"""

import pytest

from tests.fake_view import (
    FakeView, make_config, make_presale, PRESALE_START, PRESALE_END,
)


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def presale(config):
    """Instantiated presale, sale not yet started."""
    return make_presale(config)


@pytest.fixture
def open_presale(presale):
    """Presale at the first instant of the sale window."""
    presale.advance_time(PRESALE_START)
    return presale


@pytest.fixture
def closed_presale(presale):
    """Presale at the first instant after the sale window."""
    presale.advance_time(PRESALE_END)
    return presale


@pytest.fixture
def open_view(config):
    """FakeView inside the sale window with no purchases."""
    return FakeView(config=config, time=PRESALE_START)
