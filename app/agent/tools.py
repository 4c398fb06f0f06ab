"""
Agent tools: definition and execution of the webSearch tool.

The tool declaration follows the OpenAI function-calling format. Arguments are
validated with WebSearchInput; validation and search failures are returned to
the model as the tool result rather than raised.
"""

import logging
from typing import Any, Protocol

from pydantic import BaseModel, Field, ValidationError

from app.core.config import BUFFERED_MAX_CHARS_PER_RESULT, DEFAULT_MAX_RESULTS
from app.core.errors import SearchError
from app.services.search_service import SearchResponse

logger = logging.getLogger(__name__)

WEB_SEARCH_TOOL_NAME = "webSearch"


class SearchClient(Protocol):
    async def search(
        self,
        objective: str,
        search_queries: list[str] | None = None,
        max_results: int = DEFAULT_MAX_RESULTS,
        max_chars_per_result: int = BUFFERED_MAX_CHARS_PER_RESULT,
    ) -> SearchResponse: ...


class WebSearchInput(BaseModel):
    objective: str = Field(..., min_length=1, description="Natural-language description of what you are looking for")
    search_queries: list[str] | None = Field(None, description="Optional specific search queries to guide the search")
    max_results: int = Field(DEFAULT_MAX_RESULTS, ge=1, description="Maximum number of search results to return")


AGENT_TOOLS = [
    {
        "type": "function",
        "function": {
            "name": WEB_SEARCH_TOOL_NAME,
            "description": "Search the web for current information on any topic. Use this tool to find relevant, up-to-date information before answering questions.",
            "parameters": {
                "type": "object",
                "properties": {
                    "objective": {
                        "type": "string",
                        "description": "Natural-language description of what you are looking for",
                    },
                    "search_queries": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Optional specific search queries to guide the search",
                    },
                    "max_results": {
                        "type": "integer",
                        "description": "Maximum number of search results to return",
                        "default": DEFAULT_MAX_RESULTS,
                    },
                },
                "required": ["objective"],
            },
        },
    },
]


def _tool_error(details: str) -> dict[str, Any]:
    return {"error": "Failed to search the web", "details": details}


async def web_search(
    arguments: dict[str, Any],
    search: SearchClient,
    max_chars_per_result: int = BUFFERED_MAX_CHARS_PER_RESULT,
) -> dict[str, Any]:
    """Validate arguments, run the search, and format hits for the model."""
    try:
        params = WebSearchInput.model_validate(arguments or {})
    except ValidationError as e:
        logger.warning("[tools:web_search] invalid arguments %r: %s", arguments, e)
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        return _tool_error(f"Invalid arguments: {problems}")
    try:
        response = await search.search(
            objective=params.objective,
            search_queries=params.search_queries,
            max_results=params.max_results,
            max_chars_per_result=max_chars_per_result,
        )
    except SearchError as e:
        logger.warning("[tools:web_search] search failed: %s", e.message)
        return _tool_error(e.message)
    return {
        "search_id": response.search_id,
        "results": [hit.to_dict() for hit in response.results],
        "total_results": len(response.results),
    }


async def execute_tool(
    name: str,
    arguments: dict[str, Any],
    search: SearchClient,
    max_chars_per_result: int = BUFFERED_MAX_CHARS_PER_RESULT,
) -> dict[str, Any]:
    """
    Execute a tool by name with the given arguments. Returns a JSON-serializable result for the LLM.
    """
    logger.info("[tools] execute_tool name=%r arguments=%r", name, arguments)
    if name == WEB_SEARCH_TOOL_NAME:
        return await web_search(arguments, search, max_chars_per_result)
    return {"error": f"Unknown tool: {name}"}
