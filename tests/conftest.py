import pytest

from helpers import FakeDataStore, product_store


@pytest.fixture
def store() -> FakeDataStore:
    """Two-row product source with an identically shaped target."""
    return product_store(2)
