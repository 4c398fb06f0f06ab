"""
Unit tests for the webSearch tool declaration and execution.
"""

import asyncio

from app.agent.tools import AGENT_TOOLS, WEB_SEARCH_TOOL_NAME, WebSearchInput, execute_tool, web_search
from tests.stubs import StubSearch, france_search_response


def test_declaration_requires_objective_only() -> None:
    (tool,) = AGENT_TOOLS
    assert tool["type"] == "function"
    assert tool["function"]["name"] == WEB_SEARCH_TOOL_NAME == "webSearch"
    params = tool["function"]["parameters"]
    assert params["required"] == ["objective"]
    assert set(params["properties"]) == {"objective", "search_queries", "max_results"}


def test_input_defaults() -> None:
    params = WebSearchInput.model_validate({"objective": "capital of France"})
    assert params.search_queries is None
    assert params.max_results == 5


def test_web_search_formats_results() -> None:
    search = StubSearch(response=france_search_response())
    output = asyncio.run(web_search({"objective": "capital of France"}, search, max_chars_per_result=800))
    assert output == {
        "search_id": "search_123",
        "results": [{"position": 1, "title": "France", "url": "https://example.com", "content": "Paris is the capital."}],
        "total_results": 1,
    }
    assert search.calls[0]["max_chars_per_result"] == 800


def test_web_search_rejects_bad_max_results() -> None:
    search = StubSearch()
    output = asyncio.run(web_search({"objective": "x", "max_results": 0}, search))
    assert output["error"] == "Failed to search the web"
    assert "max_results" in output["details"]
    assert search.calls == []


def test_execute_tool_dispatches_by_name() -> None:
    search = StubSearch(response=france_search_response())
    output = asyncio.run(execute_tool("webSearch", {"objective": "capital of France"}, search))
    assert output["total_results"] == 1
    assert asyncio.run(execute_tool("nope", {}, search)) == {"error": "Unknown tool: nope"}
