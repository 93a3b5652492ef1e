"""
Pytest configuration for DataDAO deployment tests.

This file provides shared configuration and fixtures for all test modules.
Fake operations and record builders live in test_helpers.
"""

import tempfile
from pathlib import Path

import pytest

from deployment import RecordStore, Workflow
from observability import reset
from test_helpers import make_registry

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """
    Configure custom pytest markers.

    This function is called by pytest at the start of the test session
    to register custom markers used in the test suite.
    """
    markers = [
        ("slow", "marks tests as slow (deselect with '-m \"not slow\"')"),
        ("integration", "marks tests that run several components together"),
        ("scenario", "marks end-to-end deployment scenario tests"),
    ]
    for marker, description in markers:
        config.addinivalue_line("markers", f"{marker}: {description}")


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_singletons():
    """Clear cached loggers between tests."""
    reset()
    yield
    reset()


@pytest.fixture
def project_dir():
    """Temporary DataDAO project directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(project_dir):
    """Record store for deployment.json in the project directory."""
    return RecordStore(project_dir / "deployment.json")


@pytest.fixture
def registry():
    """Registry of recording operations for every stage."""
    return make_registry()


@pytest.fixture
def workflow(store, registry):
    """Workflow bound to the temporary project."""
    return Workflow(store, operations=registry)
