import pytest

from tests.helpers import PARIS


@pytest.fixture
def paris():
    return PARIS
