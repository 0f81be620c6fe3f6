import pytest

from .fixtures import *


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    # tests that bind real sockets are kept last so a port clash fails after the fast suite
    items.sort(key=lambda item: item.get_closest_marker("network") is not None)
