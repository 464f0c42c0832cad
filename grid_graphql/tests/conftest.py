# Copyright 2018-present Kensho Technologies, LLC.
import pytest


def pytest_addoption(parser):
    """Add command line options to py.test to allow for slow tests to be skipped."""
    parser.addoption("--skip-slow", action="store_true", default=False, help="Skip slow tests.")


def pytest_configure(config):
    """Initialize the pytest configuration. Executed prior to any tests."""
    config.addinivalue_line(
        # Define the "slow" pytest mark, to avoid PytestUnknownMarkWarning being generated.
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"' or --skip-slow)",
    )


def pytest_collection_modifyitems(config, items):
    """Modify py.test behavior based on command line options."""
    if not config.getoption("--skip-slow"):
        return

    # skip tests market with the @pytest.mark.slow decorator
    skip_slow = pytest.mark.skip(reason="--skip-slow command line argument supplied")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
