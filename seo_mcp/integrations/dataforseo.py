"""DataForSEO integration for keyword, SERP, backlink and domain metrics."""

import logging
import re
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from seo_mcp.utils.errors import SeoMcpError
from seo_mcp.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DATAFORSEO_API_URL = "https://api.dataforseo.com/v3"
DATAFORSEO_SETUP_INSTRUCTIONS = (
    "Set DATAFORSEO_LOGIN and DATAFORSEO_PASSWORD environment variables. "
    "Sign up at https://dataforseo.com/"
)
_STATUS_OK = 20000

_INTENT_PATTERNS = [
    ("transactional", re.compile(r"\b(buy|price|cheap|discount|deal|coupon|shop|order|purchase)\b", re.I)),
    ("commercial", re.compile(r"\b(best|top|review|vs|compare|alternative)\b", re.I)),
    ("informational", re.compile(r"\b(how|what|why|when|where|who|tutorial|guide|learn)\b", re.I)),
    ("navigational", re.compile(r"\b(login|sign in|download|app|website|official)\b", re.I)),
]

_SERP_FEATURES = {
    "featured_snippet": "featured_snippet",
    "people_also_ask": "people_also_ask",
    "local_pack": "local_pack",
    "knowledge_graph": "knowledge_graph",
    "video": "video",
    "images": "images",
}

_BACKLINK_MODES = {"url": "as_is", "domain": "one_per_domain", "subdomain": "subdomains"}
_BACKLINK_ORDER = {
    "domain_authority": "domain_from_rank,desc",
    "first_seen": "first_seen,desc",
    "last_seen": "last_seen,desc",
}
_GENERIC_ANCHORS = ("click here", "read more", "learn more", "here", "link")


def estimate_intent(keyword: str, serp_features: list[str]) -> str:
    """Guess search intent from the keyword's wording, then the SERP layout."""
    for intent, pattern in _INTENT_PATTERNS:
        if pattern.search(keyword):
            return intent
    if "local_pack" in serp_features:
        return "local"
    return "informational"


def classify_anchor(anchor: str, target: str) -> str:
    """Bucket a backlink anchor as branded, url, generic or partialMatch."""
    text = anchor.strip().lower()
    brand = target.lower().removeprefix("www.").split(".")[0]
    if text.startswith("http") or text.startswith("www"):
        return "url"
    if brand and brand in text:
        return "branded"
    if not text or text in _GENERIC_ANCHORS:
        return "generic"
    return "partialMatch"


def _domain_of(url: str) -> str:
    return urlparse(url).hostname or url


class DataForSEO:
    """Client for the DataForSEO v3 REST API (basic auth).

    Usage::

        dfs = DataForSEO(login="me@example.com", password="secret")
        volumes = await dfs.research_keywords(["running shoes"])
        serp = await dfs.analyze_serp("running shoes")
    """

    def __init__(
        self,
        login: Optional[str] = None,
        password: Optional[str] = None,
        timeout: int = 60,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self._login = login or ""
        self._password = password or ""
        self._timeout = timeout
        self._rate_limiter = rate_limiter or RateLimiter(5, 1, name="dataforseo")

    @property
    def is_configured(self) -> bool:
        return bool(self._login and self._password)

    async def _post(self, endpoint: str, body: list[dict]) -> dict[str, Any]:
        await self._rate_limiter.acquire()
        logger.debug("DataForSEO request: %s", endpoint)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, auth=(self._login, self._password)
            ) as client:
                response = await client.post(DATAFORSEO_API_URL + endpoint, json=body)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("DataForSEO API error for %s: %s", endpoint, exc)
            raise SeoMcpError(
                f"DataForSEO API error: HTTP {exc.response.status_code}", "DATAFORSEO_ERROR"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("DataForSEO request failed for %s: %s", endpoint, exc)
            raise SeoMcpError(f"DataForSEO request failed: {exc}", "DATAFORSEO_ERROR") from exc

        if data.get("status_code") != _STATUS_OK:
            message = data.get("status_message") or "Unknown error"
            raise SeoMcpError(f"DataForSEO error: {message}", "DATAFORSEO_ERROR")
        return data

    @staticmethod
    def _first_result(data: dict[str, Any]) -> dict[str, Any]:
        tasks = data.get("tasks") or [{}]
        results = tasks[0].get("result") or [{}]
        return results[0] or {}

    @staticmethod
    def _task_items(data: dict[str, Any]) -> list[dict]:
        tasks = data.get("tasks") or [{}]
        return tasks[0].get("result") or []

    # ------------------------------------------------------------------
    # Keywords
    # ------------------------------------------------------------------

    @staticmethod
    def _keyword_row(item: dict[str, Any]) -> dict[str, Any]:
        keyword_info = item.get("keyword_info") or {}
        return {
            "keyword": item.get("keyword", ""),
            "searchVolume": item.get("search_volume") or 0,
            "keywordDifficulty": keyword_info.get("keyword_difficulty") or 0,
            "cpc": item.get("cpc") or 0,
            "competition": item.get("competition") or 0,
            "trend": [m.get("search_volume") or 0 for m in item.get("monthly_searches") or []],
            "serpFeatures": [],
        }

    async def research_keywords(
        self,
        keywords: list[str],
        location: str = "United States",
        language: str = "en",
        include_related: bool = False,
        limit: int = 10,
    ) -> dict[str, Any]:
        """Search volume, CPC and competition for *keywords*.

        With *include_related*, up to *limit* related keywords for the first
        keyword are added; failure of that second lookup is logged and the
        primary results are still returned.
        """
        data = await self._post(
            "/keywords_data/google_ads/search_volume/live",
            [{"keywords": keywords, "location_name": location, "language_code": language}],
        )
        result: dict[str, Any] = {
            "keywords": [self._keyword_row(item) for item in self._task_items(data)],
        }

        if include_related and keywords:
            try:
                related = await self._post(
                    "/keywords_data/google_ads/keywords_for_keywords/live",
                    [{
                        "keywords": [keywords[0]],
                        "location_name": location,
                        "language_code": language,
                        "limit": limit,
                    }],
                )
            except SeoMcpError as exc:
                logger.warning("Related keyword lookup failed for %r: %s", keywords[0], exc)
            else:
                result["relatedKeywords"] = [
                    self._keyword_row(item) for item in self._task_items(related)[:limit]
                ]

        logger.info("Keyword research complete: %d keywords", len(result["keywords"]))
        return result

    # ------------------------------------------------------------------
    # SERP
    # ------------------------------------------------------------------

    async def analyze_serp(
        self,
        keyword: str,
        location: str = "United States",
        device: str = "desktop",
        depth: int = 10,
    ) -> dict[str, Any]:
        data = await self._post(
            "/serp/google/organic/live/regular",
            [{"keyword": keyword, "location_name": location, "device": device, "depth": depth}],
        )
        items = self._first_result(data).get("items") or []

        results: list[dict[str, Any]] = []
        features: list[str] = []
        featured_snippet = None
        paa_questions: list[str] = []

        for item in items:
            item_type = item.get("type")
            if item_type == "organic":
                results.append({
                    "position": item.get("rank_absolute"),
                    "url": item.get("url", ""),
                    "title": item.get("title", ""),
                    "description": item.get("description", ""),
                    "domain": item.get("domain", ""),
                })
                continue

            feature = _SERP_FEATURES.get(item_type)
            if feature and feature not in features:
                features.append(feature)
            if item_type == "featured_snippet":
                featured_snippet = {
                    "title": item.get("title", ""),
                    "description": item.get("description", ""),
                    "url": item.get("url", ""),
                }
            elif item_type == "people_also_ask":
                paa_questions.extend(
                    sub.get("title", "") for sub in item.get("items") or [] if sub.get("title")
                )

        logger.info("SERP analysis for %r: %d organic results", keyword, len(results))
        return {
            "keyword": keyword,
            "results": results[:depth],
            "serpFeatures": features,
            "featuredSnippet": featured_snippet,
            "paaQuestions": paa_questions,
            "estimatedIntent": estimate_intent(keyword, features),
        }

    # ------------------------------------------------------------------
    # Backlinks
    # ------------------------------------------------------------------

    async def analyze_backlinks(
        self,
        target: str,
        target_type: str = "domain",
        limit: int = 50,
        sort_by: str = "domain_authority",
        include_anchors: bool = True,
    ) -> dict[str, Any]:
        """Backlink list, summary metrics and anchor distribution for *target*.

        Referring-domain and rank figures come from a second summary call;
        when that call fails they are reported as zero.
        """
        data = await self._post(
            "/backlinks/backlinks/live",
            [{
                "target": target,
                "mode": _BACKLINK_MODES.get(target_type, "as_is"),
                "limit": limit,
                "order_by": [_BACKLINK_ORDER.get(sort_by, _BACKLINK_ORDER["domain_authority"])],
            }],
        )
        first = self._first_result(data)
        items = first.get("items") or []

        summary: dict[str, Any] = {}
        try:
            summary_data = await self._post("/backlinks/summary/live", [{"target": target}])
            summary = self._first_result(summary_data)
        except SeoMcpError as exc:
            logger.warning("Backlink summary unavailable for %s: %s", target, exc)

        backlinks: list[dict[str, Any]] = []
        anchors = {"branded": 0, "partialMatch": 0, "generic": 0, "url": 0}
        tiers = {"high": 0, "medium": 0, "low": 0}
        follow = 0
        target_domain = _domain_of(target)

        for item in items:
            rank = item.get("domain_from_rank") or 0
            is_follow = bool(item.get("dofollow"))
            follow += is_follow
            anchor = item.get("anchor") or ""
            backlinks.append({
                "sourceUrl": item.get("url_from", ""),
                "sourceDomain": item.get("domain_from", ""),
                "targetUrl": item.get("url_to", ""),
                "anchorText": anchor,
                "domainAuthority": rank,
                "isFollow": is_follow,
                "firstSeen": item.get("first_seen", ""),
                "lastSeen": item.get("last_seen", ""),
            })
            if rank >= 60:
                tiers["high"] += 1
            elif rank >= 30:
                tiers["medium"] += 1
            else:
                tiers["low"] += 1
            if include_anchors:
                anchors[classify_anchor(anchor, target_domain)] += 1

        result: dict[str, Any] = {
            "target": target,
            "summary": {
                "totalBacklinks": first.get("total_count") or len(items),
                "referringDomains": summary.get("referring_domains") or 0,
                "domainAuthority": summary.get("rank") or 0,
                "followRatio": follow / len(items) if items else 0,
            },
            "backlinks": backlinks,
            "authorityDistribution": tiers,
        }
        if include_anchors:
            result["anchorDistribution"] = anchors
        logger.info("Backlink analysis for %s: %d backlinks", target, len(backlinks))
        return result

    async def analyze_domain_authority(self, domains: list[str]) -> dict[str, Any]:
        """Authority and link metrics per domain; a failed domain reports zeros."""
        rows: list[dict[str, Any]] = []
        for domain in domains:
            try:
                summary = self._first_result(
                    await self._post("/backlinks/summary/live", [{"target": domain}])
                )
            except SeoMcpError as exc:
                logger.warning("Domain metrics unavailable for %s: %s", domain, exc)
                summary = {}
            rows.append({
                "domain": domain,
                "domainAuthority": summary.get("rank") or 0,
                "backlinks": summary.get("backlinks") or 0,
                "referringDomains": summary.get("referring_domains") or 0,
                "organicKeywords": 0,
                "organicTraffic": 0,
                "spamScore": summary.get("backlinks_spam_score") or 0,
            })
        return {"domains": rows}
