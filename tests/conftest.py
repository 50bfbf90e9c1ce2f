"""Shared pytest fixtures for the SEO MCP test suite."""

import sys
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Ensure project root is on sys.path so 'seo_mcp' is importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from seo_mcp.utils.http_client import HttpResponse  # noqa: E402


def _response(body: str = "", status: int = 200, url: str = "https://example.com/",
              headers: Optional[dict] = None) -> HttpResponse:
    return HttpResponse(status=status, headers=headers or {}, body=body, url=url,
                        redirect_chain=[], response_time=120)


SAMPLE_PAGE_HTML = """<!DOCTYPE html>
<html>
<head>
  <title>Running Shoes Guide: How to Pick the Right Pair Today</title>
  <meta name="description" content="Everything you need to know about choosing running shoes: cushioning, drop, fit and durability, plus how to test a pair in store before you buy it.">
  <link rel="canonical" href="https://example.com/">
  <meta property="og:title" content="Running Shoes Guide">
  <meta property="og:description" content="Choose the right running shoes.">
  <meta property="og:image" content="https://example.com/og.png">
  <meta property="og:url" content="https://example.com/">
  <meta property="og:type" content="article">
</head>
<body>
  <nav><a href="/">Home</a><a href="/blog">Blog</a></nav>
  <main>
    <h1>Running Shoes Guide</h1>
    <p>Choosing running shoes is easier than it looks.</p>
    <h2>Cushioning</h2>
    <p>More cushioning helps on long runs.</p>
    <h3>Midsole foams</h3>
    <h2>Fit</h2>
    <img src="/img/trail-shoe.webp" alt="Trail shoe" width="640" height="480" loading="lazy">
    <a href="/guides/fit">Shoe fitting guide</a>
    <a href="https://partner.example.org/shop" rel="nofollow">click here</a>
  </main>
  <footer><a href="mailto:hi@example.com">Mail</a></footer>
</body>
</html>
"""


BARE_PAGE_HTML = """<html><head></head><body>
<h2>Intro</h2>
<h4>Details</h4>
<img src="/photo.jpg">
</body></html>
"""


@pytest.fixture()
def make_response():
    """Factory for canned HttpResponse objects."""
    return _response


@pytest.fixture()
def sample_html():
    return SAMPLE_PAGE_HTML


@pytest.fixture()
def bare_html():
    return BARE_PAGE_HTML


@pytest.fixture()
def mock_fetcher():
    """Return a mock HttpFetcher whose GET returns the sample page."""
    fetcher = MagicMock()
    fetcher.get = AsyncMock(return_value=_response(SAMPLE_PAGE_HTML))
    fetcher.head = AsyncMock(return_value=_response(status=200))
    fetcher.head_many = AsyncMock(side_effect=lambda urls, **kw: [_response(status=200) for _ in urls])
    return fetcher


@pytest.fixture()
def clean_env(monkeypatch):
    """Remove every environment variable that overrides settings."""
    for name in ("PAGESPEED_API_KEY", "GSC_CREDENTIALS_PATH", "DATAFORSEO_LOGIN",
                 "DATAFORSEO_PASSWORD", "MCP_TRANSPORT", "HOST", "PORT", "MCP_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
