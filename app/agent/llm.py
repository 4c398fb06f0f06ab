"""
Agent LLM: Cerebras chat completions through the OpenAI-compatible API.

One client per request. complete() returns a whole turn; stream() yields text
deltas as they arrive and finally the assembled ModelTurn. Transport-level
retries are left to the SDK (max_retries); nothing else retries here.
"""

import json
import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any

from openai import AsyncOpenAI

from app.core.config import (
    CEREBRAS_BASE_URL,
    LLM_API_TIMEOUT,
    LLM_MAX_RETRIES,
    LLM_TEMPERATURE,
    RESEARCH_MODEL,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True)
class ModelTurn:
    """One completion round: final text, or tool calls (content may accompany them)."""

    content: str
    tool_calls: tuple[ToolCall, ...] = ()


def _parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        args = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("[llm] tool call arguments are not valid JSON: %r", raw[:200])
        return {}
    return args if isinstance(args, dict) else {}


class CerebrasChat:
    def __init__(
        self,
        api_key: str,
        model: str = RESEARCH_MODEL,
        base_url: str = CEREBRAS_BASE_URL,
        temperature: float = LLM_TEMPERATURE,
        client: AsyncOpenAI | None = None,
    ):
        if not api_key and client is None:
            raise ValueError("CEREBRAS_API_KEY is required for Cerebras chat.")
        self.model = model
        self.temperature = temperature
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            max_retries=LLM_MAX_RETRIES,
            timeout=LLM_API_TIMEOUT,
        )

    async def close(self) -> None:
        await self._client.close()

    async def complete(
        self,
        messages: Sequence[dict[str, Any]],
        tools: list[dict[str, Any]],
        tool_choice: str = "auto",
    ) -> ModelTurn:
        logger.info("[llm:complete] IN  messages=%d tool_choice=%s", len(messages), tool_choice)
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=list(messages),
            tools=tools,
            tool_choice=tool_choice,
            temperature=self.temperature,
        )
        msg = response.choices[0].message if response.choices else None
        if not msg:
            return ModelTurn(content="")
        content = (getattr(msg, "content", None) or "").strip()
        tool_calls = []
        for tc in getattr(msg, "tool_calls", None) or []:
            fn = getattr(tc, "function", None)
            if not fn:
                continue
            tool_calls.append(
                ToolCall(
                    id=getattr(tc, "id", None) or "",
                    name=getattr(fn, "name", None) or "",
                    arguments=_parse_arguments(getattr(fn, "arguments", None)),
                )
            )
        if tool_calls:
            logger.info("[llm:complete] OUT tool_calls=%s", [t.name for t in tool_calls])
        else:
            logger.info("[llm:complete] OUT content_len=%d", len(content))
        return ModelTurn(content=content, tool_calls=tuple(tool_calls))

    async def stream(
        self,
        messages: Sequence[dict[str, Any]],
        tools: list[dict[str, Any]],
        tool_choice: str = "auto",
    ) -> AsyncIterator[str | ModelTurn]:
        """
        Stream one completion round. Yields:
        - str for each content token, as it arrives;
        - ModelTurn last, with the full content and any accumulated tool calls.
        """
        logger.info("[llm:stream] IN  messages=%d tool_choice=%s", len(messages), tool_choice)
        stream = await self._client.chat.completions.create(
            model=self.model,
            messages=list(messages),
            tools=tools,
            tool_choice=tool_choice,
            temperature=self.temperature,
            stream=True,
        )
        content_parts: list[str] = []
        tool_calls_accum: dict[int, dict[str, Any]] = {}
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                d = chunk.choices[0].delta
                if getattr(d, "content", None):
                    content_parts.append(d.content)
                    yield d.content
                for tc in getattr(d, "tool_calls", None) or []:
                    idx = getattr(tc, "index", 0) or 0
                    acc = tool_calls_accum.setdefault(idx, {"id": "", "name": "", "arguments": ""})
                    if getattr(tc, "id", None):
                        acc["id"] = tc.id
                    fn = getattr(tc, "function", None)
                    if fn is not None:
                        if getattr(fn, "name", None):
                            acc["name"] = fn.name
                        if getattr(fn, "arguments", None):
                            acc["arguments"] += fn.arguments
        finally:
            await stream.close()
        tool_calls = tuple(
            ToolCall(id=t["id"], name=t["name"], arguments=_parse_arguments(t["arguments"]))
            for t in (tool_calls_accum[i] for i in sorted(tool_calls_accum))
        )
        full_content = "".join(content_parts).strip()
        if tool_calls:
            logger.info("[llm:stream] OUT tool_calls=%s", [t.name for t in tool_calls])
        else:
            logger.info("[llm:stream] OUT content_done len=%d", len(full_content))
        yield ModelTurn(content=full_content, tool_calls=tool_calls)
