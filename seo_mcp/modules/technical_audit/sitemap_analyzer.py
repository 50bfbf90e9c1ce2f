"""XML sitemap analysis: URL inventory, lastmod freshness, sampled URL checks."""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import urljoin

from seo_mcp.constants import DEFAULT_RULES, SeoRules
from seo_mcp.models.headings import SeoIssue, Severity
from seo_mcp.utils.errors import SitemapError
from seo_mcp.utils.helpers import round_half_up
from seo_mcp.utils.http_client import HttpFetcher
from seo_mcp.utils.validators import ensure_protocol, is_valid_url

logger = logging.getLogger(__name__)

DEFAULT_MAX_URLS = 1000
_SAMPLE_SIZE = 20


def _local(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


def resolve_sitemap_url(url: str) -> str:
    """A bare domain maps to its ``/sitemap.xml``."""
    if not url.startswith(("http://", "https://")) or "/" not in url.split("://", 1)[1]:
        return urljoin(ensure_protocol(url), "/sitemap.xml")
    return url


def is_sitemap_xml(body: str) -> bool:
    head = body.lstrip()
    return (
        head.startswith("<?xml") or head.startswith("<urlset") or head.startswith("<sitemapindex")
    ) and ("urlset" in body or "sitemapindex" in body)


def parse_sitemap_xml(body: str) -> dict[str, Any]:
    """Parse a ``urlset`` or ``sitemapindex`` document.

    Returns a dict with ``type`` and ``entries``; each entry carries
    ``loc`` plus whichever of ``lastmod``/``changefreq``/``priority`` exist.

    Raises:
        SitemapError: if the XML cannot be parsed.
    """
    try:
        root = ET.fromstring(body.strip())
    except ET.ParseError as exc:
        raise SitemapError(f"Invalid sitemap XML: {exc}") from exc

    kind = "sitemapindex" if _local(root.tag) == "sitemapindex" else "urlset"
    entry_tag = "sitemap" if kind == "sitemapindex" else "url"

    entries: list[dict[str, str]] = []
    for element in root:
        if _local(element.tag) != entry_tag:
            continue
        entry: dict[str, str] = {}
        for child in element:
            name = _local(child.tag)
            if name in ("loc", "lastmod", "changefreq", "priority") and child.text:
                entry[name] = child.text.strip()
        if entry.get("loc"):
            entries.append(entry)

    return {"type": kind, "entries": entries}


def _parse_lastmod(value: str) -> Optional[datetime]:
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def lastmod_distribution(
    lastmods: list[Optional[str]], now: Optional[datetime] = None
) -> dict[str, int]:
    """Bucket lastmod dates by age; unparseable dates count as missing."""
    now = now or datetime.now(timezone.utc)
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)
    year_ago = now - timedelta(days=365)

    distribution = {"thisWeek": 0, "thisMonth": 0, "thisYear": 0, "older": 0, "missing": 0}
    for value in lastmods:
        date = _parse_lastmod(value) if value else None
        if date is None:
            distribution["missing"] += 1
        elif date >= week_ago:
            distribution["thisWeek"] += 1
        elif date >= month_ago:
            distribution["thisMonth"] += 1
        elif date >= year_ago:
            distribution["thisYear"] += 1
        else:
            distribution["older"] += 1
    return distribution


def identify_sitemap_issues(
    kind: str,
    url_count: int,
    distribution: dict[str, int],
    urls: list[str],
    rules: SeoRules = DEFAULT_RULES,
    size_bytes: int = 0,
) -> list[SeoIssue]:
    issues: list[SeoIssue] = []
    max_urls = rules.sitemap.max_urls_per_file
    max_mb = rules.sitemap.max_file_size_mb

    if kind == "urlset" and url_count > max_urls:
        issues.append(SeoIssue(
            "too_many_urls", Severity.HIGH,
            f"Sitemap contains {url_count} URLs (maximum {max_urls} per file)",
        ))

    if size_bytes > max_mb * 1024 * 1024:
        issues.append(SeoIssue(
            "file_too_large", Severity.HIGH,
            f"Sitemap is {size_bytes / (1024 * 1024):.1f}MB uncompressed (maximum {max_mb}MB)",
        ))

    if url_count == 0:
        issues.append(SeoIssue("empty_sitemap", Severity.HIGH, "Sitemap contains no URLs"))

    if url_count > 0 and distribution["missing"] > 0:
        missing_pct = round_half_up(distribution["missing"] / url_count * 100)
        if missing_pct > 50:
            issues.append(SeoIssue(
                "missing_lastmod", Severity.MEDIUM,
                f"{missing_pct}% of URLs are missing lastmod dates",
            ))

    if url_count > 0 and distribution["older"] > url_count * 0.5:
        issues.append(SeoIssue(
            "stale_urls", Severity.MEDIUM,
            f"{round_half_up(distribution['older'] / url_count * 100)}% of URLs have lastmod "
            "dates older than 1 year",
        ))

    if (
        url_count > 0
        and distribution["thisWeek"] == 0
        and distribution["thisMonth"] == 0
        and distribution["missing"] < url_count
    ):
        issues.append(SeoIssue(
            "no_recent_updates", Severity.LOW, "No URLs have been updated in the last month",
        ))

    invalid = [u for u in urls if not is_valid_url(u)]
    if invalid:
        issues.append(SeoIssue(
            "invalid_urls", Severity.HIGH, f"{len(invalid)} invalid URL(s) found in sitemap",
        ))

    return issues


def sample_urls(urls: list[str], sample_size: int = _SAMPLE_SIZE) -> list[str]:
    """Evenly stepped sample of at most *sample_size* URLs."""
    if not urls:
        return []
    step = max(1, len(urls) // sample_size)
    return urls[::step][:sample_size]


async def analyze_sitemap(
    url: str,
    max_urls: int = DEFAULT_MAX_URLS,
    check_urls: bool = False,
    fetcher: Optional[HttpFetcher] = None,
    rules: SeoRules = DEFAULT_RULES,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Fetch and audit a sitemap.

    Raises:
        SitemapError: on a non-200 response or a body that is not sitemap XML.
    """
    sitemap_url = resolve_sitemap_url(url)
    logger.info("Analyzing sitemap: %s", sitemap_url)
    fetcher = fetcher or HttpFetcher()

    response = await fetcher.get(sitemap_url)
    if response.status != 200:
        raise SitemapError(f"Failed to fetch sitemap: HTTP {response.status}")
    if not is_sitemap_xml(response.body):
        raise SitemapError("Response is not valid sitemap XML")

    parsed = parse_sitemap_xml(response.body)
    entries = parsed["entries"]
    url_count = len(entries)
    limited = entries[:max_urls]
    urls = [e["loc"] for e in limited]

    distribution = lastmod_distribution([e.get("lastmod") for e in limited], now)
    size_bytes = len(response.body.encode("utf-8"))
    issues = identify_sitemap_issues(
        parsed["type"], url_count, distribution, urls, rules, size_bytes=size_bytes
    )

    result: dict[str, Any] = {
        "url": sitemap_url,
        "type": parsed["type"],
        "urlCount": url_count,
        "urls": urls,
        "lastmodDistribution": distribution,
    }

    if check_urls and urls:
        sample = sample_urls(urls)
        responses = await fetcher.head_many(sample)
        url_check = [
            {"url": u, "statusCode": r.status if r else 0} for u, r in zip(sample, responses)
        ]
        broken = sum(1 for c in url_check if c["statusCode"] == 0 or c["statusCode"] >= 400)
        if broken:
            issues.append(SeoIssue(
                "broken_urls_in_sitemap", Severity.HIGH,
                f"{broken} of {len(url_check)} sampled URLs returned errors",
            ))
        result["urlCheck"] = url_check

    result["issues"] = [issue.to_dict() for issue in issues]
    logger.info("Sitemap analysis complete: %d URLs, type=%s", url_count, parsed["type"])
    return result
