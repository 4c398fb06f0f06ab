"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
Credentials are not validated here; missing keys are reported per request.
"""

import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

# Cerebras (completion service, OpenAI-compatible chat completions)
CEREBRAS_API_KEY: str = os.getenv("CEREBRAS_API_KEY", "").strip()
CEREBRAS_BASE_URL: str = (
    os.getenv("CEREBRAS_BASE_URL", "https://api.cerebras.ai/v1").strip()
    or "https://api.cerebras.ai/v1"
)
RESEARCH_MODEL: str = os.getenv("RESEARCH_MODEL", "llama-3.3-70b").strip() or "llama-3.3-70b"
LLM_TEMPERATURE: float = 0.1
LLM_MAX_RETRIES: int = 2

# Parallel (web search service)
PARALLEL_API_KEY: str = os.getenv("PARALLEL_API_KEY", "").strip()
PARALLEL_SEARCH_URL: str = (
    os.getenv("PARALLEL_SEARCH_URL", "https://api.parallel.ai/v1beta/search").strip()
    or "https://api.parallel.ai/v1beta/search"
)
SEARCH_PROCESSOR: str = "base"
DEFAULT_MAX_RESULTS: int = 5

# Excerpt budget per search result: the streaming endpoint keeps tool results smaller
BUFFERED_MAX_CHARS_PER_RESULT: int = 2000
STREAM_MAX_CHARS_PER_RESULT: int = 800

# Orchestration: hard ceiling on completion rounds per request
MAX_STEPS: int = 10

# API timeouts (seconds)
LLM_API_TIMEOUT: float = 60.0
SEARCH_API_TIMEOUT: float = 30.0

# SSE: events buffered between the research task and a slow client
SSE_QUEUE_SIZE: int = 32
