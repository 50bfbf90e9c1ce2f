"""Title and meta-description suggestions for a page and target keyword.

Suggestions are template based: the current text is kept when it already
sits in the ideal length window (and, for titles, contains the keyword);
otherwise a keyword-led replacement is built. Without a keyword the
description falls back to the first substantial sentence of the body.
"""

import logging
import re
from typing import Any, Optional, Sequence

from seo_mcp.constants import DEFAULT_RULES, SeoRules
from seo_mcp.utils.helpers import truncate_text
from seo_mcp.utils.html_parser import (
    extract_meta_description,
    extract_open_graph,
    extract_title,
    get_body_text,
    parse_html,
)
from seo_mcp.utils.http_client import HttpFetcher

logger = logging.getLogger(__name__)

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_TITLE_SUFFIX_RE = re.compile(r"\s+[|\-].*$")
_BODY_TEXT_LIMIT = 2000
_OG_DESCRIPTION_LENGTH = 120


def _capitalize_words(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in text.split(" "))


def find_meta_issues(
    title: Optional[str],
    description: Optional[str],
    open_graph: dict[str, Optional[str]],
    target_keyword: Optional[str] = None,
    rules: SeoRules = DEFAULT_RULES,
) -> list[str]:
    issues: list[str] = []
    title_rule = rules.title
    if not title:
        issues.append("Title tag is missing")
    elif len(title) > title_rule.max_length:
        issues.append(f"Title is too long ({len(title)} chars, max {title_rule.max_length})")
    elif len(title) < title_rule.min_length:
        issues.append(f"Title is too short ({len(title)} chars, min {title_rule.min_length})")
    if target_keyword and title and target_keyword.lower() not in title.lower():
        issues.append(f'Title does not contain target keyword "{target_keyword}"')

    meta_rule = rules.meta_description
    if not description:
        issues.append("Meta description is missing")
    elif len(description) > meta_rule.max_length:
        issues.append(f"Meta description is too long ({len(description)} chars)")
    elif len(description) < meta_rule.min_length:
        issues.append(f"Meta description is too short ({len(description)} chars)")

    for key in ("title", "description", "image", "url"):
        if not open_graph.get(key):
            issues.append("Missing og:" + key)
    return issues


def suggest_title(
    current: Optional[str],
    target_keyword: Optional[str],
    secondary_keywords: Sequence[str] = (),
    rules: SeoRules = DEFAULT_RULES,
) -> str:
    rule = rules.title
    if (
        current
        and target_keyword
        and rule.ideal_min_length <= len(current) <= rule.ideal_max_length
        and target_keyword.lower() in current.lower()
    ):
        return current

    if not target_keyword:
        return current or "Untitled Page"

    keyword = _capitalize_words(target_keyword)
    secondary = " - " + _capitalize_words(secondary_keywords[0]) if secondary_keywords else ""
    title = f"{keyword}{secondary} | Guide"
    if len(title) <= rule.max_length:
        return title
    return f"{keyword} | Complete Guide"


def suggest_description(
    current: Optional[str],
    target_keyword: Optional[str],
    secondary_keywords: Sequence[str] = (),
    body_text: str = "",
    rules: SeoRules = DEFAULT_RULES,
) -> str:
    rule = rules.meta_description
    if current and rule.ideal_min_length <= len(current) <= rule.ideal_max_length:
        return current

    if target_keyword:
        including = ""
        if secondary_keywords:
            including = ", including " + " and ".join(secondary_keywords[:2])
        text = (
            f"Discover everything about {target_keyword.lower()}{including}. "
            "Expert guide with actionable tips and proven strategies. Learn more now."
        )
        return truncate_text(text, rule.max_length)

    sentences = [s.strip() for s in _SENTENCE_SPLIT_RE.split(body_text) if len(s.strip()) > 30]
    if sentences:
        return truncate_text(sentences[0] + ".", rule.max_length)
    return current or ""


def generate_meta_suggestions_html(
    url: str,
    html: str,
    target_keyword: Optional[str] = None,
    secondary_keywords: Optional[Sequence[str]] = None,
    rules: SeoRules = DEFAULT_RULES,
) -> dict[str, Any]:
    secondary = list(secondary_keywords or [])
    soup = parse_html(html)
    title = extract_title(soup)
    description = extract_meta_description(soup)
    open_graph = extract_open_graph(soup)
    body_text = get_body_text(soup)[:_BODY_TEXT_LIMIT]

    issues = find_meta_issues(title, description, open_graph, target_keyword, rules)
    new_title = suggest_title(title, target_keyword, secondary, rules)
    new_description = suggest_description(description, target_keyword, secondary, body_text, rules)
    keyword_position = new_title.lower().find(target_keyword.lower()) if target_keyword else -1

    return {
        "url": url,
        "current": {
            "title": title,
            "description": description,
            "ogTitle": open_graph["title"],
            "ogDescription": open_graph["description"],
            "ogImage": open_graph["image"],
        },
        "issues": issues,
        "suggestions": {
            "title": {
                "text": new_title,
                "length": len(new_title),
                "keywordPosition": keyword_position,
                "improvement": (
                    "Added target keyword, optimized length"
                    if any("Title" in issue for issue in issues)
                    else "Minor optimization"
                ),
            },
            "metaDescription": {
                "text": new_description,
                "length": len(new_description),
                "improvement": (
                    "Created compelling description with CTA"
                    if any("Meta description" in issue for issue in issues)
                    else "Minor optimization"
                ),
            },
            "ogTitle": {
                "text": _TITLE_SUFFIX_RE.sub("", new_title),
                "improvement": "Clean title without brand suffix for social sharing",
            },
            "ogDescription": {
                "text": truncate_text(new_description, _OG_DESCRIPTION_LENGTH),
                "improvement": "Concise social-friendly description",
            },
        },
    }


async def generate_meta_suggestions(
    url: str,
    target_keyword: Optional[str] = None,
    secondary_keywords: Optional[Sequence[str]] = None,
    fetcher: Optional[HttpFetcher] = None,
    rules: SeoRules = DEFAULT_RULES,
) -> dict[str, Any]:
    """Fetch *url* and suggest an optimised title, description and OG text."""
    logger.info("Generating meta suggestions: %s (keyword=%s)", url, target_keyword)
    fetcher = fetcher or HttpFetcher()
    response = await fetcher.get(url)
    return generate_meta_suggestions_html(
        response.url, response.body, target_keyword, secondary_keywords, rules
    )
