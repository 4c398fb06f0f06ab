"""Research progress events. Serialized to SSE only at the API boundary."""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class ToolCallEvent(BaseModel):
    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str
    tool_name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultEvent(BaseModel):
    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str
    tool_name: str
    output: dict[str, Any] = Field(default_factory=dict)


class TextDeltaEvent(BaseModel):
    type: Literal["text-delta"] = "text-delta"
    text: str


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str


class DoneEvent(BaseModel):
    type: Literal["done"] = "done"
    text: str
    steps: int


ResearchEvent = Annotated[
    Union[ToolCallEvent, ToolResultEvent, TextDeltaEvent, ErrorEvent, DoneEvent],
    Field(discriminator="type"),
]

research_event_adapter: TypeAdapter[ResearchEvent] = TypeAdapter(ResearchEvent)
