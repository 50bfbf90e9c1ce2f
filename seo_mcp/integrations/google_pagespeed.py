"""Google PageSpeed Insights integration for Core Web Vitals and performance."""

import logging
from typing import Any, Optional

import httpx

from seo_mcp.constants import DEFAULT_RULES, MetricThreshold, SeoRules
from seo_mcp.utils.errors import SeoMcpError
from seo_mcp.utils.helpers import round_half_up
from seo_mcp.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

PAGESPEED_API_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"

# Google's published quotas per 100 seconds
RATE_LIMIT_NO_KEY = 25
RATE_LIMIT_WITH_KEY = 400
RATE_LIMIT_PERIOD = 100

_MOBILE_AUDITS = {
    "viewport": "viewport",
    "fontSizes": "font-size",
    "tapTargets": "tap-targets",
    "contentWidth": "content-width",
}


def rate_metric(value: float, threshold: MetricThreshold) -> str:
    if value <= threshold.good:
        return "good"
    if value <= threshold.needs_improvement:
        return "needs-improvement"
    return "poor"


class PageSpeedInsights:
    """Client for the Google PageSpeed Insights API.

    Usage::

        psi = PageSpeedInsights(api_key="your-key")
        vitals = await psi.check_core_web_vitals("https://example.com")
        mobile = await psi.check_mobile_friendly("https://example.com")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: int = 60,
        rules: SeoRules = DEFAULT_RULES,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self._api_key = api_key or ""
        self._timeout = timeout
        self._rules = rules
        self._rate_limiter = rate_limiter or RateLimiter(
            RATE_LIMIT_WITH_KEY if self._api_key else RATE_LIMIT_NO_KEY,
            RATE_LIMIT_PERIOD,
            name="pagespeed",
        )

        if not self._api_key:
            logger.warning(
                "No PAGESPEED_API_KEY set. Using free tier with strict rate limits. "
                "Get a free key at https://developers.google.com/speed/docs/insights/v5/get-started"
            )

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    async def _run_pagespeed(
        self, url: str, strategy: str, categories: list[str]
    ) -> dict[str, Any]:
        params: list[tuple[str, str]] = [("url", url), ("strategy", strategy)]
        params.extend(("category", cat) for cat in categories)
        if self._api_key:
            params.append(("key", self._api_key))

        await self._rate_limiter.acquire()
        logger.debug("PageSpeed API request: %s (%s)", url, strategy)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(PAGESPEED_API_URL, params=params)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("PageSpeed API error for %s: %s", url, exc)
            raise SeoMcpError(
                f"PageSpeed API returned HTTP {exc.response.status_code} for {url}",
                "PAGESPEED_ERROR",
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("PageSpeed request failed for %s: %s", url, exc)
            raise SeoMcpError(f"PageSpeed request failed for {url}: {exc}", "PAGESPEED_ERROR") from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def check_core_web_vitals(
        self,
        url: str,
        strategy: str = "mobile",
        categories: Optional[list[str]] = None,
    ) -> dict[str, Any]:
        """Run PageSpeed on *url* and summarise lab metrics, scores and audits.

        Args:
            url: Page to test.
            strategy: ``mobile`` or ``desktop``.
            categories: Lighthouse categories; defaults to performance and seo.

        Returns:
            Dict with ``coreWebVitals``, ``lighthouseScores``, ``fieldData``,
            ``opportunities``, ``diagnostics`` and ``resources``.
        """
        categories = categories or ["performance", "seo"]
        data = await self._run_pagespeed(url, strategy, categories)
        lighthouse = data.get("lighthouseResult") or {}
        audits = lighthouse.get("audits") or {}

        result = {
            "url": url,
            "strategy": strategy,
            "coreWebVitals": self._extract_core_web_vitals(audits),
            "lighthouseScores": self._extract_scores(lighthouse.get("categories") or {}),
            "fieldData": self._extract_field_data(data.get("loadingExperience") or {}),
            "opportunities": self._extract_opportunities(audits),
            "diagnostics": self._extract_diagnostics(audits),
            "resources": self._extract_resources(audits),
        }
        logger.info(
            "PageSpeed analysis for %s: perf=%d", url, result["lighthouseScores"]["performance"]
        )
        return result

    async def check_mobile_friendly(self, url: str) -> dict[str, Any]:
        """Mobile-friendliness derived from the mobile Lighthouse run.

        The page counts as mobile friendly when its Lighthouse SEO score is
        at least 80.
        """
        data = await self._run_pagespeed(url, "mobile", ["performance", "seo", "accessibility"])
        lighthouse = data.get("lighthouseResult") or {}
        audits = lighthouse.get("audits") or {}
        scores = self._extract_scores(lighthouse.get("categories") or {})

        checks: dict[str, Any] = {}
        issues: list[dict[str, str]] = []
        for name, audit_id in _MOBILE_AUDITS.items():
            audit = audits.get(audit_id)
            if audit is None:
                continue
            passed = audit.get("score") is None or audit["score"] >= 0.9
            checks[name] = {"passed": passed, "displayValue": audit.get("displayValue", "")}
            if not passed:
                issues.append({
                    "type": f"mobile_{audit_id.replace('-', '_')}",
                    "severity": "high" if audit_id == "viewport" else "medium",
                    "detail": audit.get("title", audit_id),
                })

        return {
            "url": url,
            "mobileFriendly": scores["seo"] >= 80,
            "checks": checks,
            "mobileLighthouseScore": scores["performance"],
            "lighthouseScores": scores,
            "issues": issues,
        }

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    def _extract_core_web_vitals(self, audits: dict) -> dict[str, dict[str, Any]]:
        perf = self._rules.performance

        def numeric(key: str) -> float:
            return (audits.get(key) or {}).get("numericValue") or 0

        lcp = numeric("largest-contentful-paint")
        inp = numeric("interaction-to-next-paint") or numeric("total-blocking-time")
        cls = numeric("cumulative-layout-shift")
        fcp = numeric("first-contentful-paint")
        ttfb = numeric("server-response-time")

        return {
            "LCP": {"value": round_half_up(lcp) / 1000, "unit": "s", "rating": rate_metric(lcp, perf.lcp)},
            "INP": {"value": round_half_up(inp), "unit": "ms", "rating": rate_metric(inp, perf.inp)},
            "CLS": {"value": round_half_up(cls * 1000) / 1000, "unit": "score", "rating": rate_metric(cls, perf.cls)},
            "FCP": {"value": round_half_up(fcp) / 1000, "unit": "s", "rating": rate_metric(fcp, perf.fcp)},
            "TTFB": {"value": round_half_up(ttfb), "unit": "ms", "rating": rate_metric(ttfb, perf.ttfb)},
        }

    @staticmethod
    def _extract_scores(categories: dict) -> dict[str, int]:
        def score(key: str) -> int:
            return round_half_up(((categories.get(key) or {}).get("score") or 0) * 100)

        return {
            "performance": score("performance"),
            "seo": score("seo"),
            "accessibility": score("accessibility"),
            "bestPractices": score("best-practices"),
        }

    @staticmethod
    def _extract_field_data(loading_experience: dict) -> Optional[dict[str, Any]]:
        metrics = loading_experience.get("metrics")
        if not metrics:
            return None

        field_data: dict[str, Any] = {"available": True}
        mapping = {
            "LCP": ("LARGEST_CONTENTFUL_PAINT_MS", "s", 1000),
            "INP": ("INTERACTION_TO_NEXT_PAINT", "ms", 1),
            "CLS": ("CUMULATIVE_LAYOUT_SHIFT_SCORE", "score", 100),
            "FCP": ("FIRST_CONTENTFUL_PAINT_MS", "s", 1000),
            "TTFB": ("EXPERIMENTAL_TIME_TO_FIRST_BYTE", "ms", 1),
        }
        for name, (key, unit, divisor) in mapping.items():
            metric = metrics.get(key)
            if not metric:
                continue
            field_data[name] = {
                "value": metric.get("percentile", 0) / divisor,
                "unit": unit,
                "rating": (metric.get("category") or "unknown").lower(),
            }
        return field_data

    @staticmethod
    def _extract_opportunities(audits: dict) -> list[dict[str, Any]]:
        opportunities = []
        for audit in audits.values():
            details = audit.get("details") or {}
            savings = details.get("overallSavingsMs") or 0
            if details.get("type") == "opportunity" and savings > 0:
                opportunities.append({
                    "title": audit.get("title", ""),
                    "savings": f"{savings / 1000:.1f}s",
                    "description": audit.get("description", ""),
                })
        return opportunities[:10]

    @staticmethod
    def _extract_diagnostics(audits: dict) -> list[dict[str, Any]]:
        diagnostics = []
        for audit in audits.values():
            details = audit.get("details") or {}
            score = audit.get("score")
            if details.get("type") == "table" and score is not None and score < 0.9:
                diagnostics.append({
                    "title": audit.get("title", ""),
                    "description": audit.get("description", ""),
                    "value": audit.get("displayValue", ""),
                })
        return diagnostics[:10]

    @staticmethod
    def _extract_resources(audits: dict) -> dict[str, Any]:
        items = ((audits.get("resource-summary") or {}).get("details") or {}).get("items") or []
        # the "total" row duplicates the per-type rows
        by_type = {
            item["resourceType"]: {
                "size": item.get("transferSize", 0),
                "count": item.get("requestCount", 0),
            }
            for item in items
            if item.get("resourceType") and item["resourceType"] != "total"
        }
        return {
            "totalSize": sum(entry["size"] for entry in by_type.values()),
            "requestCount": sum(entry["count"] for entry in by_type.values()),
            "byType": by_type,
        }
