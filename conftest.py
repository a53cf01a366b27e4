"""
Pytest configuration for the sketchbuild test suite.

Tests that drive a real toolchain are marked ``integration`` and excluded
unless --full is given.
"""

import pytest


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (slow)",
    )


def pytest_configure(config):
    """Configure pytest based on command-line options."""
    config.addinivalue_line("markers", "integration: drives a real avr-gcc toolchain")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--full"):
        return
    skip_integration = pytest.mark.skip(reason="needs --full")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
