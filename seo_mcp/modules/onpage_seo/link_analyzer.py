"""Link audit: internal/external split, anchor text quality, link placement."""

import logging
import re
from typing import Any, Optional

from bs4 import Tag

from seo_mcp.constants import DEFAULT_RULES, SeoRules
from seo_mcp.utils.html_parser import collapse_whitespace, parse_html
from seo_mcp.utils.http_client import HttpFetcher
from seo_mcp.utils.validators import extract_domain, is_internal_link, resolve_url

logger = logging.getLogger(__name__)

_URL_PATTERN = re.compile(r"^https?://", re.I)
_NON_NAVIGABLE = ("#", "javascript:", "mailto:", "tel:", "data:")
_MAX_BROKEN_CHECKS = 50
_MAX_ANCESTOR_DEPTH = 10


def is_navigable_link(href: str) -> bool:
    return bool(href) and not href.startswith(_NON_NAVIGABLE)


def classify_anchor_text(anchor: str, rules: SeoRules = DEFAULT_RULES) -> str:
    """One of ``descriptive``, ``generic``, ``url`` or ``empty``."""
    text = anchor.strip()
    if not text:
        return "empty"
    if _URL_PATTERN.match(text):
        return "url"
    if text.lower() in rules.links.generic_anchors:
        return "generic"
    return "descriptive"


def determine_link_position(element: Tag) -> str:
    """Page region holding the link, judged from its nearest ancestors."""
    for depth, parent in enumerate(element.parents):
        if depth >= _MAX_ANCESTOR_DEPTH or parent.name == "[document]":
            break
        name = (parent.name or "").lower()
        role = (parent.get("role") or "").lower()
        classes = " ".join(parent.get("class") or []).lower()

        if name == "nav" or role == "navigation" or "nav" in classes:
            return "nav"
        if name == "footer" or role == "contentinfo" or "footer" in classes:
            return "footer"
        if name == "aside" or role == "complementary" or "sidebar" in classes:
            return "sidebar"
        if name == "main" or role == "main" or "content" in classes or "article" in classes:
            return "content"
    return "other"


def collect_links(
    html: str,
    page_url: str,
    max_links: int = 500,
    rules: SeoRules = DEFAULT_RULES,
) -> dict[str, Any]:
    internal: list[dict[str, Any]] = []
    external: list[dict[str, Any]] = []
    anchor_counts = {"descriptive": 0, "generic": 0, "url": 0, "empty": 0}

    for a in parse_html(html).find_all("a", href=True):
        if len(internal) + len(external) >= max_links:
            break
        href = a["href"].strip()
        if not is_navigable_link(href):
            continue

        resolved = resolve_url(href, page_url)
        anchor = collapse_whitespace(a.get_text())
        rel = " ".join(a.get("rel") or [])
        anchor_counts[classify_anchor_text(anchor, rules)] += 1

        info: dict[str, Any] = {
            "url": resolved,
            "anchor": anchor,
            "nofollow": "nofollow" in rel,
            "position": determine_link_position(a),
        }
        if rel:
            info["rel"] = rel

        if is_internal_link(resolved, page_url):
            internal.append(info)
        else:
            external.append(info)

    return {"internal": internal, "external": external, "anchorTextAnalysis": anchor_counts}


async def find_broken_links(
    links: list[dict[str, Any]], fetcher: HttpFetcher
) -> list[dict[str, Any]]:
    """HEAD up to 50 unique link targets; status 0 or >= 400 is broken."""
    unique: dict[str, dict[str, Any]] = {}
    for link in links:
        unique.setdefault(link["url"], link)
    to_check = list(unique.values())[:_MAX_BROKEN_CHECKS]

    responses = await fetcher.head_many([link["url"] for link in to_check])
    broken: list[dict[str, Any]] = []
    for link, response in zip(to_check, responses):
        status = response.status if response else 0
        link["statusCode"] = status
        if status == 0 or status >= 400:
            broken.append(dict(link))

    logger.info("Checked %d links, found %d broken", len(to_check), len(broken))
    return broken


async def analyze_links(
    url: str,
    check_broken_links: bool = False,
    max_links: int = 500,
    fetcher: Optional[HttpFetcher] = None,
    rules: SeoRules = DEFAULT_RULES,
) -> dict[str, Any]:
    logger.info("Analyzing links: %s", url)
    fetcher = fetcher or HttpFetcher()
    response = await fetcher.get(url)
    collected = collect_links(response.body, url, max_links, rules)
    internal, external = collected["internal"], collected["external"]

    broken: list[dict[str, Any]] = []
    if check_broken_links:
        broken = await find_broken_links(internal + external, fetcher)

    internal_domains = {extract_domain(link["url"]) for link in internal} - {""}
    external_domains = {extract_domain(link["url"]) for link in external} - {""}

    logger.info("Link analysis complete: %d internal, %d external", len(internal), len(external))
    return {
        "internal": internal,
        "external": external,
        "broken": broken,
        "anchorTextAnalysis": collected["anchorTextAnalysis"],
        "summary": {
            "internalCount": len(internal),
            "externalCount": len(external),
            "nofollowCount": sum(1 for link in internal + external if link["nofollow"]),
            "brokenCount": len(broken),
            "uniqueInternalDomains": len(internal_domains),
            "uniqueExternalDomains": len(external_domains),
        },
    }
