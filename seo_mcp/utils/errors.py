"""Exception hierarchy and tool-error formatting."""

import logging

logger = logging.getLogger(__name__)


class SeoMcpError(Exception):
    """Base error carrying a stable machine-readable ``code``."""

    def __init__(self, message: str, code: str = "SEO_MCP_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code


class ApiKeyMissingError(SeoMcpError):
    def __init__(self, api_name: str, setup_instructions: str):
        super().__init__(
            f"{api_name} API key not configured. {setup_instructions}",
            "API_KEY_MISSING",
        )


class UrlFetchError(SeoMcpError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}", "URL_FETCH_ERROR")
        self.url = url


class SitemapError(SeoMcpError):
    def __init__(self, message: str):
        super().__init__(message, "SITEMAP_ERROR")


def format_tool_error(exc: BaseException) -> str:
    """Return the user-facing message for an error raised inside a tool.

    Known errors pass their message through unchanged; anything else is
    logged with its traceback and prefixed with ``Error:``.
    """
    if isinstance(exc, SeoMcpError):
        return exc.message
    logger.error("Unexpected error: %s", exc, exc_info=exc)
    return f"Error: {exc}"
