"""
Research agent: tool-calling loop between the completion service and web search.

Each round submits the conversation (an immutable tuple of chat messages) with the
webSearch tool declared. Tool calls are executed and appended as a new conversation;
a text-only turn ends the loop. The round count never exceeds max_steps: on the
last allowed round tools are withheld so the model has to answer.
"""

import json
import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol

from app.agent.events import DoneEvent, ResearchEvent, TextDeltaEvent, ToolCallEvent, ToolResultEvent
from app.agent.llm import ModelTurn
from app.agent.tools import AGENT_TOOLS, SearchClient, execute_tool
from app.core.config import BUFFERED_MAX_CHARS_PER_RESULT, MAX_STEPS

logger = logging.getLogger(__name__)

Conversation = tuple[dict[str, Any], ...]

DEFAULT_SYSTEM_PROMPT = """You are a professional research agent specializing in web research and analysis. Your role is to:

1. Use the web search tool to find relevant, up-to-date information
2. Analyze multiple sources to provide comprehensive answers
3. Present information clearly with proper context
4. Cite sources when making claims
5. Acknowledge limitations in available information

Always search first before providing answers, and use multiple search queries when needed to get comprehensive information."""


class CompletionClient(Protocol):
    async def complete(
        self, messages: Sequence[dict[str, Any]], tools: list[dict[str, Any]], tool_choice: str = "auto"
    ) -> ModelTurn: ...

    def stream(
        self, messages: Sequence[dict[str, Any]], tools: list[dict[str, Any]], tool_choice: str = "auto"
    ) -> AsyncIterator[str | ModelTurn]: ...

    async def close(self) -> None: ...


def build_conversation(query: str, system_prompt: str | None = None) -> Conversation:
    """Initial conversation: system instruction (or the research persona) and the user query."""
    q = (query or "").strip()
    if not q:
        raise ValueError("Query is required")
    system = (system_prompt or "").strip() or DEFAULT_SYSTEM_PROMPT
    return ({"role": "system", "content": system}, {"role": "user", "content": q})


def _assistant_message(turn: ModelTurn) -> dict[str, Any]:
    return {
        "role": "assistant",
        "content": turn.content or "",
        "tool_calls": [
            {"id": tc.id, "type": "function", "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)}}
            for tc in turn.tool_calls
        ],
    }


async def _next_turn(
    completion: CompletionClient,
    conversation: Conversation,
    tool_choice: str,
    stream: bool,
) -> AsyncIterator[str | ModelTurn]:
    if stream:
        async for item in completion.stream(conversation, AGENT_TOOLS, tool_choice=tool_choice):
            yield item
    else:
        yield await completion.complete(conversation, AGENT_TOOLS, tool_choice=tool_choice)


async def iterate_research(
    query: str,
    completion: CompletionClient,
    search: SearchClient,
    *,
    system_prompt: str | None = None,
    stream: bool = False,
    max_steps: int = MAX_STEPS,
    max_chars_per_result: int = BUFFERED_MAX_CHARS_PER_RESULT,
) -> AsyncIterator[ResearchEvent]:
    """
    Run the tool-calling loop and yield events in generation order:
    text-delta (tokens when stream=True, one per round otherwise), tool-call and
    tool-result per executed call, and done last with the final text.
    Completion faults propagate to the caller; search faults become tool results.
    """
    if max_steps < 1:
        raise ValueError("max_steps must be at least 1")
    conversation = build_conversation(query, system_prompt)
    logger.info("[research] START query=%r stream=%s max_steps=%d", conversation[-1]["content"], stream, max_steps)

    text = ""
    steps = 0
    while steps < max_steps:
        last_round = steps == max_steps - 1
        turn = ModelTurn(content="")
        async for item in _next_turn(completion, conversation, "none" if last_round else "auto", stream):
            if isinstance(item, ModelTurn):
                turn = item
            elif item:
                yield TextDeltaEvent(text=item)
        steps += 1
        if not stream and turn.content:
            yield TextDeltaEvent(text=turn.content)
        text = turn.content
        logger.info("[research] step=%d tool_calls=%d content_len=%d", steps, len(turn.tool_calls), len(text))
        if not turn.tool_calls:
            break
        if last_round:
            logger.info("[research] step budget reached (%d); ignoring tool calls", max_steps)
            break

        conversation = conversation + (_assistant_message(turn),)
        for call in turn.tool_calls:
            yield ToolCallEvent(tool_call_id=call.id, tool_name=call.name, input=call.arguments)
            output = await execute_tool(call.name, call.arguments, search, max_chars_per_result)
            yield ToolResultEvent(tool_call_id=call.id, tool_name=call.name, output=output)
            conversation = conversation + ({"role": "tool", "tool_call_id": call.id, "content": json.dumps(output)},)

    logger.info("[research] END steps=%d answer_len=%d", steps, len(text))
    yield DoneEvent(text=text, steps=steps)


async def run_research(
    query: str,
    completion: CompletionClient,
    search: SearchClient,
    *,
    system_prompt: str | None = None,
    max_steps: int = MAX_STEPS,
    max_chars_per_result: int = BUFFERED_MAX_CHARS_PER_RESULT,
) -> str:
    """Run the loop to completion and return only the final answer text."""
    answer = ""
    async for event in iterate_research(
        query,
        completion,
        search,
        system_prompt=system_prompt,
        max_steps=max_steps,
        max_chars_per_result=max_chars_per_result,
    ):
        if isinstance(event, DoneEvent):
            answer = event.text
    return answer
