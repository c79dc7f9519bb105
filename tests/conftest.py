"""
Shared pytest fixtures.

Provides fresh fakes per test. Router tests build their own app with
create_app() and override dependencies on it.
"""

import pytest

from tests.fakes import FakeLLMClient, create_seed_catalog


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    """A FakeLLMClient with no replies queued."""
    return FakeLLMClient()


@pytest.fixture
def seed_catalog():
    """A fresh catalog loaded from the seed YAML."""
    return create_seed_catalog()
