import os
from pathlib import Path

import pytest

_LAYER_MARKERS = ("domain", "application", "integration", "bdd")


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="PROTEAN_ENV overlay to run the suite under",
    )
    parser.addoption(
        "--log-json",
        action="store_true",
        default=False,
        help="Render structlog output as JSON lines",
    )


def pytest_sessionstart(session):
    """Select the config overlay before any domain module is imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env
    if session.config.option.log_json:
        os.environ["LOGISTICS_LOG_FORMAT"] = "json"


def pytest_collection_modifyitems(config, items):
    """Mark each test with the layer its directory belongs to."""
    for item in items:
        parts = Path(str(item.fspath)).parts
        for layer in _LAYER_MARKERS:
            if layer in parts:
                item.add_marker(getattr(pytest.mark, layer))
                break
        if "integration" in parts and not item.get_closest_marker("fast"):
            item.add_marker(pytest.mark.slow)
