"""
Per-request wiring of the completion and search clients.

Both credentials are checked (Cerebras first, then Parallel) before any client
is built, so a misconfigured request never opens a connection pool. Tests swap
these out through app.dependency_overrides.
"""

from app.agent.llm import CerebrasChat
from app.core.config import CEREBRAS_API_KEY, PARALLEL_API_KEY
from app.core.errors import ConfigurationError
from app.services.search_service import ParallelSearch


def check_credentials() -> None:
    if not CEREBRAS_API_KEY:
        raise ConfigurationError("CEREBRAS_API_KEY")
    if not PARALLEL_API_KEY:
        raise ConfigurationError("PARALLEL_API_KEY")


def get_completion_client() -> CerebrasChat:
    check_credentials()
    return CerebrasChat(api_key=CEREBRAS_API_KEY)


def get_search_client() -> ParallelSearch:
    check_credentials()
    return ParallelSearch(api_key=PARALLEL_API_KEY)
