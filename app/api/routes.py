"""
API route aggregator: register endpoints; no logic, only delegate to handlers.
"""

from pathlib import Path

from fastapi import APIRouter, Depends, Response
from fastapi.responses import FileResponse, PlainTextResponse

from app.agent.llm import CerebrasChat
from app.api.deps import get_completion_client, get_search_client
from app.api.handlers import handle_research, handle_research_stream
from app.schemas.research import ResearchRequest
from app.services.search_service import ParallelSearch

router = APIRouter()

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"


# --- System ---

@router.get("/", tags=["system"], include_in_schema=False)
def root() -> FileResponse:
    return FileResponse(STATIC_DIR / "index.html", media_type="text/html")


@router.options("/{path:path}", tags=["system"], summary="CORS preflight")
def preflight(path: str) -> Response:
    return Response(status_code=204)


# --- Research ---

@router.post(
    "/api/research",
    response_class=PlainTextResponse,
    tags=["research"],
    summary="Research a question (buffered)",
    description="Run the web-search agent to completion and return the final answer as plain text. 400 on empty query, 500 on missing credentials or agent failure.",
)
async def post_research(
    body: ResearchRequest | None = None,
    completion: CerebrasChat = Depends(get_completion_client),
    search: ParallelSearch = Depends(get_search_client),
) -> PlainTextResponse:
    return await handle_research(body, completion, search)


@router.post(
    "/api/research/stream",
    tags=["research"],
    summary="Research a question (SSE stream)",
    description="Stream agent progress via Server-Sent Events: tool-call, tool-result, text-delta, error, done; terminated by data: [DONE].",
)
async def post_research_stream(
    body: ResearchRequest | None = None,
    completion: CerebrasChat = Depends(get_completion_client),
    search: ParallelSearch = Depends(get_search_client),
):
    return await handle_research_stream(body, completion, search)
