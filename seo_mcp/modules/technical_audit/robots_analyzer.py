"""robots.txt fetching, parsing, path testing and issue detection."""

import logging
import re
from typing import Any, Optional
from urllib.parse import urljoin

from seo_mcp.models.headings import SeoIssue, Severity
from seo_mcp.utils.errors import UrlFetchError
from seo_mcp.utils.helpers import round_half_up
from seo_mcp.utils.http_client import HttpFetcher
from seo_mcp.utils.validators import ensure_protocol

logger = logging.getLogger(__name__)

_BLOCKING_PATTERNS = ("/", "/*", "/wp-admin", "/api")
_MAX_SIZE_BYTES = 500 * 1024


def parse_robots_txt(content: str) -> dict[str, Any]:
    """Split *content* into user-agent groups plus global sitemap lines.

    Each ``User-agent`` line opens a new group; ``Allow``/``Disallow``
    before the first group are ignored.
    """
    rules: list[dict[str, Any]] = []
    sitemaps: list[str] = []
    current: Optional[dict[str, Any]] = None

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or ":" not in line:
            continue

        directive, value = line.split(":", 1)
        directive = directive.strip().lower()
        value = value.strip()

        if directive == "user-agent":
            if current:
                rules.append(current)
            current = {"userAgent": value, "allow": [], "disallow": []}
        elif directive == "allow" and current:
            current["allow"].append(value)
        elif directive == "disallow" and current:
            current["disallow"].append(value)
        elif directive == "crawl-delay" and current:
            try:
                current["crawlDelay"] = float(value)
            except ValueError:
                logger.debug("Ignoring invalid Crawl-delay: %s", value)
        elif directive == "sitemap":
            sitemaps.append(value)

    if current:
        rules.append(current)

    return {"rules": rules, "sitemaps": sitemaps}


def path_matches(path: str, pattern: str) -> bool:
    if pattern.endswith("$"):
        return path == pattern[:-1]
    if "*" in pattern:
        regex = "^" + ".*".join(re.escape(part) for part in pattern.split("*"))
        return re.match(regex, path) is not None
    return path.startswith(pattern)


def check_path(path: str, rules: list[dict[str, Any]], user_agent: str = "*") -> dict[str, Any]:
    """Decide whether *user_agent* may crawl *path*.

    The longest matching pattern wins; an ``Allow`` of equal length beats
    a ``Disallow``.  No matching rule means allowed.
    """
    agent = user_agent.lower()
    applicable = [r for r in rules if r["userAgent"] == "*" or r["userAgent"].lower() == agent]

    best: Optional[tuple[bool, str, int]] = None
    for rule in applicable:
        for pattern in rule["disallow"]:
            if pattern and path_matches(path, pattern):
                if best is None or len(pattern) > best[2]:
                    best = (False, f"Disallow: {pattern}", len(pattern))
        for pattern in rule["allow"]:
            if path_matches(path, pattern):
                if best is None or len(pattern) >= best[2]:
                    best = (True, f"Allow: {pattern}", len(pattern))

    return {
        "path": path,
        "userAgent": user_agent,
        "allowed": best[0] if best else True,
        "matchingRule": best[1] if best else None,
    }


def identify_robots_issues(
    rules: list[dict[str, Any]], sitemaps: list[str], content: str
) -> list[SeoIssue]:
    issues: list[SeoIssue] = []

    if not sitemaps:
        issues.append(SeoIssue(
            "missing_sitemap_reference", Severity.MEDIUM,
            "No Sitemap directive found in robots.txt",
        ))

    for rule in rules:
        if rule["userAgent"] != "*":
            continue
        for pattern in rule["disallow"]:
            if pattern == "/":
                issues.append(SeoIssue(
                    "blocks_all_crawling", Severity.CRITICAL,
                    "Disallow: / blocks all crawlers with wildcard user-agent",
                ))
            elif pattern == "/*":
                issues.append(SeoIssue(
                    "blocks_all_crawling", Severity.CRITICAL,
                    "Disallow: /* blocks all paths for wildcard user-agent",
                ))

    for rule in rules:
        if rule["userAgent"] == "*":
            continue
        for pattern in rule["disallow"]:
            if pattern in _BLOCKING_PATTERNS:
                issues.append(SeoIssue(
                    "blocks_specific_bot", Severity.HIGH,
                    f'{rule["userAgent"]} is blocked from "{pattern}"',
                ))

    if not rules and content.strip():
        issues.append(SeoIssue(
            "no_rules_defined", Severity.LOW,
            "robots.txt exists but contains no User-agent directives",
        ))

    size = len(content.encode("utf-8"))
    if size > _MAX_SIZE_BYTES:
        issues.append(SeoIssue(
            "file_too_large", Severity.MEDIUM,
            f"robots.txt is {round_half_up(size / 1024)}KB (recommended < 500KB)",
        ))

    return issues


async def analyze_robots_txt(
    domain: str,
    test_path: Optional[str] = None,
    user_agent: str = "*",
    fetcher: Optional[HttpFetcher] = None,
) -> dict[str, Any]:
    """Fetch ``/robots.txt`` for *domain* and report rules, sitemaps and issues.

    A missing or unreachable file is reported as an issue, not raised.
    """
    robots_url = urljoin(ensure_protocol(domain), "/robots.txt")
    logger.info("Analyzing robots.txt: %s", robots_url)
    fetcher = fetcher or HttpFetcher()

    exists = False
    content = ""
    parsed: dict[str, Any] = {"rules": [], "sitemaps": []}
    try:
        response = await fetcher.get(robots_url)
        if response.status == 200 and response.body.strip():
            exists = True
            content = response.body
            parsed = parse_robots_txt(content)
    except UrlFetchError as exc:
        logger.warning("Failed to fetch robots.txt: %s", exc)

    if exists:
        issues = identify_robots_issues(parsed["rules"], parsed["sitemaps"], content)
    else:
        issues = [SeoIssue(
            "missing_robots_txt", Severity.MEDIUM,
            f"No robots.txt file found at {robots_url}",
        )]

    result: dict[str, Any] = {
        "exists": exists,
        "content": content,
        "rules": parsed["rules"],
        "sitemaps": parsed["sitemaps"],
        "issues": [issue.to_dict() for issue in issues],
    }
    if test_path and exists:
        result["testResult"] = check_path(test_path, parsed["rules"], user_agent)

    logger.info(
        "robots.txt analysis complete: %d rules, %d sitemaps",
        len(parsed["rules"]), len(parsed["sitemaps"]),
    )
    return result
