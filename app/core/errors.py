"""
Application errors for clean API error handling.

Use ConfigurationError when a required credential is missing so the API can
return 500 naming it. SearchError is raised by the search service and folded
into the tool result by the agent, so the model can adapt instead of failing.
"""


class ConfigurationError(Exception):
    """Raised when a required environment variable (API key) is not set."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.message = f"{name} environment variable is required"
        super().__init__(self.message)


class SearchError(Exception):
    """Raised when the web search API is unreachable or returns an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)
