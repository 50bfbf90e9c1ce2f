"""robots.txt generation from presets and user rules."""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

PRESETS: dict[str, dict[str, Any]] = {
    "permissive": {
        "allow": ["/"],
        "disallow": ["/admin/"],
        "explanation": "Permissive preset: allows all crawling except admin paths",
    },
    "standard": {
        "allow": ["/"],
        "disallow": [
            "/admin/", "/api/", "/staging/", "/tmp/", "/cgi-bin/",
            "/*?sort=", "/*?filter=", "/*?page=",
        ],
        "explanation": "Standard preset: blocks admin, API, staging, and sort/filter parameters",
    },
    "restrictive": {
        "allow": [],
        "disallow": ["/", "/wp-admin/", "/admin/", "/api/"],
        "explanation": "Restrictive preset: blocks everything except explicitly allowed paths",
    },
}


def _merge_unique(*groups: list[str]) -> list[str]:
    return list(dict.fromkeys(path for group in groups for path in group))


def generate_robots_txt(
    preset: str = "standard",
    sitemap_urls: Optional[list[str]] = None,
    disallow_paths: Optional[list[str]] = None,
    allow_paths: Optional[list[str]] = None,
    crawl_delay: Optional[float] = None,
    custom_rules: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    """Build robots.txt content.

    Args:
        preset: ``permissive``, ``standard`` or ``restrictive``.
        sitemap_urls: Absolute sitemap URLs appended as ``Sitemap:`` lines.
        disallow_paths: Extra paths merged into the wildcard group.
        allow_paths: Extra allowed paths merged into the wildcard group.
        crawl_delay: Optional ``Crawl-delay`` in seconds.
        custom_rules: Extra groups, each ``{"userAgent", "allow", "disallow"}``.

    Returns:
        Dict with ``content``, ``explanation``, ``warnings`` and ``suggestions``.
    """
    if preset not in PRESETS:
        raise ValueError(f"Unknown preset: {preset}. Choose from {', '.join(PRESETS)}")

    config = PRESETS[preset]
    sitemap_urls = sitemap_urls or []
    explanation: list[str] = [config["explanation"]]
    warnings: list[str] = []
    suggestions: list[str] = []

    allow = _merge_unique(config["allow"], allow_paths or [])
    disallow = _merge_unique(config["disallow"], disallow_paths or [])

    lines = ["User-agent: *"]
    for path in allow:
        lines.append(f"Allow: {path}")
        explanation.append(f"Allows crawling of {path}")
    for path in disallow:
        lines.append(f"Disallow: {path}")
        explanation.append(f"Blocks crawling of {path}")

    if crawl_delay is not None:
        delay = int(crawl_delay) if float(crawl_delay).is_integer() else crawl_delay
        lines.append(f"Crawl-delay: {delay}")
        explanation.append(f"Crawl delay of {delay} seconds (note: Google ignores Crawl-delay)")
        warnings.append("Google ignores Crawl-delay. Consider removing it if targeting Google.")

    for rule in custom_rules or []:
        lines.append("")
        lines.append(f"User-agent: {rule['userAgent']}")
        lines.extend(f"Allow: {path}" for path in rule.get("allow") or [])
        lines.extend(f"Disallow: {path}" for path in rule.get("disallow") or [])
        explanation.append(f"Custom rules for {rule['userAgent']}")

    if sitemap_urls:
        lines.append("")
        lines.extend(f"Sitemap: {url}" for url in sitemap_urls)
        explanation.append(f"References {len(sitemap_urls)} sitemap(s) for discovery")
    else:
        suggestions.append("Consider adding a Sitemap directive pointing to your XML sitemap")

    if "/" in disallow:
        warnings.append("Disallow: / blocks ALL crawling. Ensure this is intentional.")

    logger.debug("Generated robots.txt with preset %s (%d lines)", preset, len(lines))
    return {
        "content": "\n".join(lines) + "\n",
        "explanation": explanation,
        "warnings": warnings,
        "suggestions": suggestions,
    }
