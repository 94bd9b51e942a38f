"""
Pytest configuration and fixtures for azurmanga tests.
"""

import sys
from pathlib import Path

import aiohttp
import pytest

# Add src and tests directories to path so imports work
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path.parent / "src"))
sys.path.insert(0, str(tests_path))

from wiki_fixtures import FakeSession, wiki_pages  # noqa: E402


@pytest.fixture()
def connection_error() -> Exception:
    return aiohttp.ClientConnectionError("connection refused")


@pytest.fixture()
def three_manga_session() -> FakeSession:
    return FakeSession(wiki_pages([101, 102, 103]))
