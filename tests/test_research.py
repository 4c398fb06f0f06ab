"""
Unit tests for the research loop: conversation building, tool rounds, step budget, fault policy.
"""

import asyncio
import json

import pytest

from app.agent.events import DoneEvent, ToolCallEvent, ToolResultEvent
from app.agent.llm import ModelTurn, ToolCall
from app.agent.research import DEFAULT_SYSTEM_PROMPT, build_conversation, iterate_research, run_research
from app.core.config import MAX_STEPS
from tests.stubs import (
    FRANCE_ANSWER,
    ScriptedCompletion,
    StubSearch,
    always_searching_turns,
    france_search_response,
    france_turns,
)

QUERY = "What is the capital of France?"


def collect(**kwargs) -> list:
    async def run():
        return [event async for event in iterate_research(**kwargs)]

    return asyncio.run(run())


class TestBuildConversation:
    def test_default_persona(self) -> None:
        conversation = build_conversation(QUERY)
        assert conversation == (
            {"role": "system", "content": DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": QUERY},
        )

    def test_blank_system_prompt_falls_back_to_persona(self) -> None:
        assert build_conversation(QUERY, "  ")[0]["content"] == DEFAULT_SYSTEM_PROMPT

    def test_custom_system_prompt(self) -> None:
        assert build_conversation(QUERY, "Be brief.")[0] == {"role": "system", "content": "Be brief."}

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_empty_query_raises(self, query) -> None:
        with pytest.raises(ValueError, match="Query is required"):
            build_conversation(query)


class TestRunResearch:
    def test_search_then_answer(self) -> None:
        completion = ScriptedCompletion(france_turns())
        search = StubSearch(response=france_search_response())
        answer = asyncio.run(run_research(QUERY, completion, search))
        assert answer == FRANCE_ANSWER
        assert len(completion.calls) == 2
        assert [c.tool_choice for c in completion.calls] == ["auto", "auto"]

        # round 1 saw only system + user; round 2 saw the tool round appended
        first, second = completion.calls[0].messages, completion.calls[1].messages
        assert len(first) == 2
        assert second[:2] == first
        assistant, tool = second[2], second[3]
        assert assistant["role"] == "assistant"
        assert assistant["tool_calls"][0]["function"] == {
            "name": "webSearch",
            "arguments": json.dumps({"objective": "capital of France"}),
        }
        assert tool["role"] == "tool"
        assert tool["tool_call_id"] == "call_1"
        assert json.loads(tool["content"]) == {
            "search_id": "search_123",
            "results": [
                {"position": 1, "title": "France", "url": "https://example.com", "content": "Paris is the capital."}
            ],
            "total_results": 1,
        }

    def test_direct_answer_without_tools(self) -> None:
        completion = ScriptedCompletion([ModelTurn(content="Paris.")])
        search = StubSearch()
        assert asyncio.run(run_research(QUERY, completion, search)) == "Paris."
        assert search.calls == []

    def test_empty_query_makes_no_calls(self) -> None:
        completion = ScriptedCompletion(france_turns())
        search = StubSearch()
        with pytest.raises(ValueError):
            asyncio.run(run_research("", completion, search))
        assert completion.calls == []
        assert search.calls == []

    def test_completion_fault_propagates(self) -> None:
        completion = ScriptedCompletion(france_turns(), fail_on_call=1, error=RuntimeError("rate limited"))
        with pytest.raises(RuntimeError, match="rate limited"):
            asyncio.run(run_research(QUERY, completion, StubSearch(response=france_search_response())))

    def test_same_inputs_same_answer(self) -> None:
        answers = {
            asyncio.run(run_research(QUERY, ScriptedCompletion(france_turns()), StubSearch(response=france_search_response())))
            for _ in range(3)
        }
        assert answers == {FRANCE_ANSWER}


class TestStepBudget:
    def test_always_searching_model_stops_after_max_steps(self) -> None:
        completion = ScriptedCompletion(always_searching_turns())
        search = StubSearch(response=france_search_response())
        events = collect(query=QUERY, completion=completion, search=search)
        assert len(completion.calls) == MAX_STEPS == 10
        assert len(search.calls) == MAX_STEPS - 1
        assert events[-1] == DoneEvent(text="Searching more.", steps=10)

    def test_last_round_withholds_tools(self) -> None:
        completion = ScriptedCompletion(always_searching_turns())
        collect(query=QUERY, completion=completion, search=StubSearch(), max_steps=3)
        assert [c.tool_choice for c in completion.calls] == ["auto", "auto", "none"]

    @pytest.mark.parametrize("max_steps", [1, 2, 5])
    def test_round_count_never_exceeds_budget(self, max_steps: int) -> None:
        completion = ScriptedCompletion(always_searching_turns())
        events = collect(query=QUERY, completion=completion, search=StubSearch(), max_steps=max_steps)
        assert len(completion.calls) == max_steps
        assert events[-1].steps == max_steps

    def test_invalid_budget(self) -> None:
        with pytest.raises(ValueError):
            collect(query=QUERY, completion=ScriptedCompletion(france_turns()), search=StubSearch(), max_steps=0)


class TestToolFaults:
    def test_search_error_is_returned_to_model(self, failing_search) -> None:
        completion = ScriptedCompletion(france_turns())
        events = collect(query=QUERY, completion=completion, search=failing_search)
        result = next(e for e in events if isinstance(e, ToolResultEvent))
        assert result.output == {"error": "Failed to search the web", "details": "Search API returned 503"}
        assert events[-1] == DoneEvent(text=FRANCE_ANSWER, steps=2)
        assert json.loads(completion.calls[1].messages[-1]["content"])["error"] == "Failed to search the web"

    def test_missing_objective_is_returned_to_model(self) -> None:
        bad = ModelTurn(content="", tool_calls=(ToolCall(id="c1", name="webSearch", arguments={"max_results": 3}),))
        completion = ScriptedCompletion([bad, ModelTurn(content="Sorry.")])
        search = StubSearch()
        events = collect(query=QUERY, completion=completion, search=search)
        result = next(e for e in events if isinstance(e, ToolResultEvent))
        assert result.output["error"] == "Failed to search the web"
        assert "objective" in result.output["details"]
        assert search.calls == []

    def test_unknown_tool(self) -> None:
        odd = ModelTurn(content="", tool_calls=(ToolCall(id="c1", name="fetchPage", arguments={}),))
        completion = ScriptedCompletion([odd, ModelTurn(content="Done.")])
        events = collect(query=QUERY, completion=completion, search=StubSearch())
        result = next(e for e in events if isinstance(e, ToolResultEvent))
        assert result.output == {"error": "Unknown tool: fetchPage"}


class TestEvents:
    def test_buffered_mode_event_order(self) -> None:
        events = collect(
            query=QUERY,
            completion=ScriptedCompletion(france_turns()),
            search=StubSearch(response=france_search_response()),
        )
        assert [e.type for e in events] == ["tool-call", "tool-result", "text-delta", "done"]
        assert events[0] == ToolCallEvent(tool_call_id="call_1", tool_name="webSearch", input={"objective": "capital of France"})
        assert events[2].text == FRANCE_ANSWER

    def test_streaming_mode_emits_tokens(self) -> None:
        events = collect(
            query=QUERY,
            completion=ScriptedCompletion(france_turns()),
            search=StubSearch(response=france_search_response()),
            stream=True,
        )
        deltas = [e.text for e in events if e.type == "text-delta"]
        assert len(deltas) == len(FRANCE_ANSWER.split(" "))
        assert "".join(deltas) == FRANCE_ANSWER

    def test_multiple_tool_calls_in_one_round(self) -> None:
        calls = (
            ToolCall(id="a", name="webSearch", arguments={"objective": "one"}),
            ToolCall(id="b", name="webSearch", arguments={"objective": "two", "search_queries": ["x"], "max_results": 2}),
        )
        completion = ScriptedCompletion([ModelTurn(content="", tool_calls=calls), ModelTurn(content="Both.")])
        search = StubSearch(response=france_search_response())
        events = collect(query=QUERY, completion=completion, search=search)
        assert [e.type for e in events] == ["tool-call", "tool-result", "tool-call", "tool-result", "text-delta", "done"]
        assert [c["objective"] for c in search.calls] == ["one", "two"]
        assert search.calls[1]["search_queries"] == ["x"]
        assert search.calls[1]["max_results"] == 2
        assert [m["role"] for m in completion.calls[1].messages[2:]] == ["assistant", "tool", "tool"]
