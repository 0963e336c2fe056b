import pytest

from pyadata.runtime import registry
from pyadata.schema.classifier import Tier
from pyadata.schema.interning import Interning


@pytest.fixture(autouse=True)
def clean_registry():
    """Every test starts with an empty shared namespace."""
    registry.clear()
    yield
    registry.clear()


@pytest.fixture(params=list(Tier), ids=lambda tier: tier.value)
def tier(request) -> Tier:
    return request.param


@pytest.fixture(params=list(Interning), ids=lambda interning: interning.value)
def interning(request) -> Interning:
    return request.param
