"""Heading hierarchy analysis: outline reconstruction and issue detection.

Headings are read from a parsed document in source order into a flat
list of :class:`HeadingObservation`.  From that list we rebuild the
nested outline, count tags per level, flag structural problems and,
when a target keyword is given, report where the keyword appears.
"""

import logging
from typing import Optional, Sequence

from bs4 import BeautifulSoup

from seo_mcp.constants import DEFAULT_RULES, SeoRules
from seo_mcp.models.headings import (
    HeadingAnalysis,
    HeadingLevel,
    HeadingNode,
    HeadingObservation,
    KeywordPresence,
    SeoIssue,
    Severity,
)
from seo_mcp.utils.html_parser import collapse_whitespace, parse_html
from seo_mcp.utils.http_client import HttpFetcher

logger = logging.getLogger(__name__)

_HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def extract_heading_observations(soup: BeautifulSoup) -> list[HeadingObservation]:
    """Scan h1-h6 elements in document order, numbering them from 1."""
    observations: list[HeadingObservation] = []
    for order, element in enumerate(soup.find_all(_HEADING_TAGS), start=1):
        observations.append(
            HeadingObservation(
                tag=element.name.lower(),
                text=collapse_whitespace(element.get_text()),
                order=order,
            )
        )
    return observations


# ---------------------------------------------------------------------------
# Outline
# ---------------------------------------------------------------------------

def build_heading_tree(observations: Sequence[HeadingObservation]) -> list[HeadingNode]:
    """Rebuild the nested outline from a flat, source-ordered heading list.

    A heading closes every open heading of equal or deeper level, so two
    consecutive H2s are siblings rather than parent and child.  A heading
    with no open ancestor becomes a new root; no synthetic parent is
    inserted when a document starts below H1.
    """
    forest: list[HeadingNode] = []
    stack: list[tuple[HeadingNode, HeadingLevel]] = []

    for obs in observations:
        node = HeadingNode.from_observation(obs)
        while stack and stack[-1][1] >= obs.level:
            stack.pop()
        if stack:
            stack[-1][0].children.append(node)
        else:
            forest.append(node)
        stack.append((node, obs.level))

    return forest


def count_by_level(observations: Sequence[HeadingObservation]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for obs in observations:
        counts[obs.tag] = counts.get(obs.tag, 0) + 1
    return counts


def check_keyword_presence(
    observations: Sequence[HeadingObservation], keyword: str
) -> KeywordPresence:
    """Case-insensitive substring search for *keyword* across all headings."""
    needle = keyword.lower()
    in_h1 = False
    in_h2: list[str] = []
    count = 0

    for obs in observations:
        if needle in obs.text.lower():
            count += 1
            if obs.level is HeadingLevel.H1:
                in_h1 = True
            elif obs.level is HeadingLevel.H2:
                in_h2.append(obs.text)

    return KeywordPresence(in_h1=in_h1, in_h2=tuple(in_h2), count=count)


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------

def identify_issues(
    observations: Sequence[HeadingObservation],
    counts: dict[str, int],
    max_h1_count: int = DEFAULT_RULES.headings.max_h1_count,
) -> list[SeoIssue]:
    """Flag structural heading defects in a fixed, deterministic order.

    Order: H1 count, empty headings (in source order), skipped levels
    (ascending), first heading not H1.
    """
    issues: list[SeoIssue] = []

    h1_count = counts.get("h1", 0)
    if h1_count == 0:
        issues.append(SeoIssue(
            "missing_h1", Severity.CRITICAL, "Page is missing an H1 heading",
        ))
    elif h1_count > max_h1_count:
        issues.append(SeoIssue(
            "multiple_h1",
            Severity.HIGH,
            f"Page has {h1_count} H1 headings (recommended: {max_h1_count})",
        ))

    for obs in observations:
        if not obs.text.strip():
            issues.append(SeoIssue(
                "empty_heading",
                Severity.MEDIUM,
                f"Empty {obs.level.label} heading at position {obs.order}",
            ))

    used_levels = sorted({obs.level for obs in observations})
    for upper, lower in zip(used_levels, used_levels[1:]):
        if lower - upper > 1:
            first_skipped = HeadingLevel(upper + 1)
            last_skipped = HeadingLevel(lower - 1)
            if first_skipped == last_skipped:
                skipped = first_skipped.label
            else:
                skipped = f"{first_skipped.label}-{last_skipped.label}"
            issues.append(SeoIssue(
                "skipped_level",
                Severity.MEDIUM,
                f"Heading level skipped: {skipped} "
                f"(found {upper.label} followed by {lower.label})",
            ))

    if observations and observations[0].level is not HeadingLevel.H1:
        issues.append(SeoIssue(
            "no_h1_first",
            Severity.MEDIUM,
            f"First heading is {observations[0].level.label}, expected H1",
        ))

    return issues


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def analyze_heading_observations(
    observations: Sequence[HeadingObservation],
    target_keyword: Optional[str] = None,
    rules: SeoRules = DEFAULT_RULES,
) -> HeadingAnalysis:
    """Run the full heading analysis over an already-extracted flat list."""
    flat = list(observations)
    counts = count_by_level(flat)
    tree = build_heading_tree(flat)
    issues = identify_issues(flat, counts, rules.headings.max_h1_count)

    presence = None
    if target_keyword:
        presence = check_keyword_presence(flat, target_keyword)
        if not presence.in_h1:
            issues.append(SeoIssue(
                "keyword_missing_h1",
                Severity.HIGH,
                f'Target keyword "{target_keyword}" not found in H1',
            ))

    return HeadingAnalysis(
        heading_tree=tree,
        flat_list=flat,
        counts=counts,
        issues=issues,
        keyword_presence=presence,
    )


def analyze_headings_html(
    html: str,
    target_keyword: Optional[str] = None,
    rules: SeoRules = DEFAULT_RULES,
) -> HeadingAnalysis:
    return analyze_heading_observations(
        extract_heading_observations(parse_html(html)), target_keyword, rules
    )


async def analyze_headings(
    url: str,
    target_keyword: Optional[str] = None,
    fetcher: Optional[HttpFetcher] = None,
    rules: SeoRules = DEFAULT_RULES,
) -> HeadingAnalysis:
    """Fetch *url* and analyse its heading hierarchy."""
    logger.info("Analyzing headings: %s", url)
    fetcher = fetcher or HttpFetcher()
    response = await fetcher.get(url)

    analysis = analyze_headings_html(response.body, target_keyword, rules)
    logger.info(
        "Heading analysis complete: %d headings found, %d issues",
        len(analysis.flat_list), len(analysis.issues),
    )
    return analysis
