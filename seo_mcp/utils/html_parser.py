"""BeautifulSoup extraction helpers for head metadata and body text."""

import copy
import json
import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, Comment

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim the ends."""
    return _WS_RE.sub(" ", text).strip()


def _meta_content(soup: BeautifulSoup, **attrs) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = (tag.get("content") or "").strip()
    return content or None


def extract_title(soup: BeautifulSoup) -> Optional[str]:
    tag = soup.find("title")
    if tag is None:
        return None
    return tag.get_text().strip() or None


def extract_meta_description(soup: BeautifulSoup) -> Optional[str]:
    return _meta_content(soup, name="description")


def extract_meta_robots(soup: BeautifulSoup) -> Optional[str]:
    return _meta_content(soup, name="robots")


def extract_canonical(soup: BeautifulSoup) -> Optional[str]:
    link = soup.find("link", rel="canonical")
    if link is None:
        return None
    return (link.get("href") or "").strip() or None


def extract_open_graph(soup: BeautifulSoup) -> dict[str, Optional[str]]:
    return {
        key: _meta_content(soup, property="og:" + key)
        for key in ("title", "description", "image", "url", "type")
    }


def count_words(text: str) -> int:
    return len(collapse_whitespace(re.sub(r"<[^>]*>", " ", text)).split())


def get_body_text(soup: BeautifulSoup) -> str:
    """Visible body text with chrome (nav, header, footer, aside) removed.

    Works on a copy so the caller's tree is left intact.
    """
    clone = copy.copy(soup)
    for tag in clone(["script", "style", "noscript", "nav", "footer", "header", "aside"]):
        tag.decompose()
    for comment in clone.find_all(string=lambda t: isinstance(t, Comment)):
        comment.extract()
    body = clone.find("body") or clone
    return collapse_whitespace(body.get_text(separator=" "))


def extract_json_ld(soup: BeautifulSoup) -> list[dict]:
    """Parsed JSON-LD blocks; top-level arrays are flattened.

    Blocks that are not valid JSON are skipped.
    """
    blocks: list[dict] = []
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or "")
        except (json.JSONDecodeError, TypeError):
            logger.debug("Skipping invalid JSON-LD block")
            continue
        items = data if isinstance(data, list) else [data]
        blocks.extend(item for item in items if isinstance(item, dict))
    return blocks
