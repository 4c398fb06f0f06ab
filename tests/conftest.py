"""Fixtures wiring the research routes to deterministic stubs (see tests/stubs.py)."""

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_completion_client, get_search_client
from app.core.errors import SearchError
from app.main import app
from tests.stubs import ScriptedCompletion, StubSearch, france_search_response, france_turns


@pytest.fixture
def completion() -> ScriptedCompletion:
    return ScriptedCompletion(france_turns())


@pytest.fixture
def search() -> StubSearch:
    return StubSearch(response=france_search_response())


@pytest.fixture
def client() -> TestClient:
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def stubbed_client(client: TestClient, completion: ScriptedCompletion, search: StubSearch) -> TestClient:
    """Client whose research routes use the completion/search fixtures instead of real services."""
    app.dependency_overrides[get_completion_client] = lambda: completion
    app.dependency_overrides[get_search_client] = lambda: search
    return client


@pytest.fixture
def failing_search() -> StubSearch:
    return StubSearch(error=SearchError("Search API returned 503", status_code=503))
