import pytest

from helpers import FailingSource, StaticSource, make_records


@pytest.fixture
def static_source():
    return StaticSource(make_records("fulfilled", "fulfilled", "price-too-low"))


@pytest.fixture
def failing_source():
    return FailingSource()
