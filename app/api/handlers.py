"""
API handlers: run the research agent and map results/errors to HTTP.

Responsibility: Bridge HTTP types and the agent. Buffered mode returns only the
final answer; streaming mode forwards events as SSE lines. Lives in the API layer
so the agent stays free of FastAPI/HTTP types and of the SSE wire format.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import HTTPException
from fastapi.responses import PlainTextResponse, StreamingResponse

from app.agent.events import ErrorEvent, ResearchEvent
from app.agent.research import CompletionClient, iterate_research, run_research
from app.agent.tools import SearchClient
from app.core.config import BUFFERED_MAX_CHARS_PER_RESULT, SSE_QUEUE_SIZE, STREAM_MAX_CHARS_PER_RESULT
from app.schemas.research import ResearchRequest

logger = logging.getLogger(__name__)

SSE_DONE = "data: [DONE]\n\n"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _require_query(body: ResearchRequest | None) -> str:
    query = (body.query if body else "") or ""
    if not query.strip():
        raise HTTPException(status_code=400, detail="Query is required")
    return query


def format_sse(event: ResearchEvent) -> str:
    return f"data: {event.model_dump_json()}\n\n"


async def handle_research(
    body: ResearchRequest | None,
    completion: CompletionClient,
    search: SearchClient,
) -> PlainTextResponse:
    """Run the agent to completion; 200 with the answer text, or 500 'Research failed: ...'."""
    try:
        query = _require_query(body)
        logger.info("[api:research] IN  query=%r custom_system=%s", query, bool(body.system_prompt))
        try:
            answer = await run_research(
                query,
                completion,
                search,
                system_prompt=body.system_prompt,
                max_chars_per_result=BUFFERED_MAX_CHARS_PER_RESULT,
            )
        except Exception as e:
            logger.exception("[api:research] research failed")
            raise HTTPException(status_code=500, detail=f"Research failed: {e}") from e
    finally:
        await completion.close()
    logger.info("[api:research] OUT answer_len=%d", len(answer))
    return PlainTextResponse(answer, media_type="text/plain; charset=utf-8")


async def sse_stream(
    events: AsyncIterator[ResearchEvent],
    completion: CompletionClient,
    queue_size: int = SSE_QUEUE_SIZE,
) -> AsyncIterator[str]:
    """
    Drain events in a background task and yield one SSE line per event.
    The queue is bounded, so a slow client holds the producer back.
    A fault becomes a single error event; the [DONE] sentinel always comes last.
    The completion client is closed once, and the task is awaited before the stream ends.
    """
    queue: asyncio.Queue[ResearchEvent | None] = asyncio.Queue(maxsize=queue_size)

    async def pump() -> None:
        try:
            async with contextlib.aclosing(events):
                async for event in events:
                    await queue.put(event)
        except Exception as e:
            logger.exception("[api:sse] research stream failed")
            await queue.put(ErrorEvent(error=str(e) or e.__class__.__name__))
        finally:
            await completion.close()
        await queue.put(None)

    task = asyncio.create_task(pump())
    sent = 0
    try:
        while True:
            event = await queue.get()
            if event is None:
                break
            sent += 1
            yield format_sse(event)
        yield SSE_DONE
        logger.info("[api:sse] END events=%d", sent)
    finally:
        if not task.done():
            logger.info("[api:sse] client went away after %d events; cancelling", sent)
            task.cancel()
        await asyncio.wait({task})


async def handle_research_stream(
    body: ResearchRequest | None,
    completion: CompletionClient,
    search: SearchClient,
) -> StreamingResponse:
    """
    Validate the query, then stream. Every fault after validation is delivered
    in-stream as an error event, so the response itself is always 200.
    """
    try:
        query = _require_query(body)
    except HTTPException:
        await completion.close()
        raise
    logger.info("[api:research_stream] IN  query=%r custom_system=%s", query, bool(body.system_prompt))
    events = iterate_research(
        query,
        completion,
        search,
        system_prompt=body.system_prompt,
        stream=True,
        max_chars_per_result=STREAM_MAX_CHARS_PER_RESULT,
    )
    return StreamingResponse(
        sse_stream(events, completion),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
