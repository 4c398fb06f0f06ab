"""Schemas for the research endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class ResearchRequest(BaseModel):
    """Request body for POST /api/research and POST /api/research/stream."""

    model_config = ConfigDict(populate_by_name=True)

    query: str | None = Field(None, description="Natural-language research question. Required; empty is rejected with 400.")
    system_prompt: str | None = Field(
        None,
        alias="systemPrompt",
        description="Optional system instruction replacing the default research persona.",
    )
