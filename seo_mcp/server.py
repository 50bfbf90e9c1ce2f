"""MCP server exposing the SEO tools.

Every tool returns pretty-printed JSON text.  Failures never propagate
to the protocol layer: they are turned into ``{"error": ..., "isError":
true}`` payloads so the client always receives a readable result.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

from mcp.server.fastmcp import FastMCP

from seo_mcp.app import Settings
from seo_mcp.integrations.dataforseo import DATAFORSEO_SETUP_INSTRUCTIONS, DataForSEO
from seo_mcp.integrations.google_pagespeed import PageSpeedInsights
from seo_mcp.integrations.google_search_console import GSC_SETUP_INSTRUCTIONS, GoogleSearchConsole
from seo_mcp.modules.onpage_seo.headings import analyze_headings
from seo_mcp.modules.onpage_seo.image_analyzer import analyze_images
from seo_mcp.modules.onpage_seo.link_analyzer import analyze_links
from seo_mcp.modules.onpage_seo.meta_suggestions import generate_meta_suggestions
from seo_mcp.modules.onpage_seo.page_analyzer import PageAnalyzer
from seo_mcp.modules.onpage_seo.schema_extractor import extract_schema
from seo_mcp.modules.onpage_seo.schema_generator import generate_schema
from seo_mcp.modules.technical_audit.robots_analyzer import analyze_robots_txt
from seo_mcp.modules.technical_audit.robots_generator import generate_robots_txt
from seo_mcp.modules.technical_audit.sitemap_analyzer import analyze_sitemap
from seo_mcp.utils.cache import ResponseCache
from seo_mcp.utils.errors import ApiKeyMissingError, SeoMcpError, format_tool_error
from seo_mcp.utils.http_client import HttpFetcher
from seo_mcp.utils.validators import validate_url

logger = logging.getLogger(__name__)


def to_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


def error_payload(exc: BaseException) -> str:
    return to_json({"error": format_tool_error(exc), "isError": True})


def require_url(url: str, name: str = "url") -> str:
    if not url:
        raise SeoMcpError(f'The "{name}" parameter is required.', "INVALID_INPUT")
    valid, message = validate_url(url.strip())
    if not valid:
        raise SeoMcpError(f'Invalid "{name}": {message}', "INVALID_INPUT")
    return url.strip()


def require_value(value: Optional[str], name: str) -> str:
    if not value or not value.strip():
        raise SeoMcpError(f'The "{name}" parameter is required.', "INVALID_INPUT")
    return value.strip()


class SeoToolbox:
    """Collaborators shared by every tool, built once from :class:`Settings`.

    Tool methods return plain dicts; :meth:`run` adds caching and the
    error envelope.
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: Optional[HttpFetcher] = None,
        pagespeed: Optional[PageSpeedInsights] = None,
        gsc: Optional[GoogleSearchConsole] = None,
        dataforseo: Optional[DataForSEO] = None,
        cache: Optional[ResponseCache] = None,
    ):
        self.settings = settings
        self.fetcher = fetcher or HttpFetcher(
            timeout=settings.http.timeout,
            user_agent=settings.http.user_agent,
            max_redirects=settings.http.max_redirects,
        )
        self.cache = cache or ResponseCache(
            max_size=settings.cache.max_entries, ttl_seconds=settings.cache.ttl_seconds
        )
        self.page_analyzer = PageAnalyzer(self.fetcher, settings.rules, settings.weights)
        self._pagespeed = pagespeed
        self._gsc = gsc
        self._dataforseo = dataforseo

    @property
    def pagespeed(self) -> PageSpeedInsights:
        if self._pagespeed is None:
            self._pagespeed = PageSpeedInsights(
                api_key=self.settings.pagespeed_api_key, rules=self.settings.rules
            )
        return self._pagespeed

    @property
    def gsc(self) -> GoogleSearchConsole:
        if self._gsc is None:
            self._gsc = GoogleSearchConsole(self.settings.gsc_credentials_path)
        if not self._gsc.is_configured:
            raise ApiKeyMissingError("Google Search Console", GSC_SETUP_INSTRUCTIONS)
        return self._gsc

    @property
    def dataforseo(self) -> DataForSEO:
        if self._dataforseo is None:
            self._dataforseo = DataForSEO(
                self.settings.dataforseo_login, self.settings.dataforseo_password
            )
        if not self._dataforseo.is_configured:
            raise ApiKeyMissingError("DataForSEO", DATAFORSEO_SETUP_INSTRUCTIONS)
        return self._dataforseo

    async def run(
        self,
        tool: str,
        params: dict[str, Any],
        handler: Callable[[], Awaitable[Any]],
        cacheable: bool = True,
    ) -> str:
        """Execute *handler* and serialise its result, consulting the cache."""
        try:
            if cacheable:
                cached = self.cache.get(tool, params)
                if cached is not None:
                    return to_json(cached)
            result = await handler()
            if cacheable:
                self.cache.set(tool, params, result)
            return to_json(result)
        except Exception as exc:
            logger.warning("Tool %s failed: %s", tool, exc)
            return error_payload(exc)

    # ------------------------------------------------------------------
    # On-page
    # ------------------------------------------------------------------

    async def analyze_page(
        self,
        url: str,
        include_content: bool = False,
        follow_redirects: bool = True,
        user_agent: Optional[str] = None,
    ) -> dict[str, Any]:
        analysis = await self.page_analyzer.analyze_page(
            require_url(url),
            include_content=include_content,
            follow_redirects=follow_redirects,
            user_agent=user_agent,
        )
        return analysis.to_dict()

    async def analyze_headings(self, url: str, target_keyword: Optional[str] = None) -> dict[str, Any]:
        analysis = await analyze_headings(
            require_url(url), target_keyword or None, self.fetcher, self.settings.rules
        )
        return analysis.to_dict()

    async def analyze_images(
        self, url: str, check_file_size: bool = False, max_images: int = 100
    ) -> dict[str, Any]:
        return await analyze_images(
            require_url(url), check_file_size, max_images, self.fetcher, self.settings.rules
        )

    async def analyze_internal_links(
        self, url: str, check_broken_links: bool = False, max_links: int = 500
    ) -> dict[str, Any]:
        return await analyze_links(
            require_url(url), check_broken_links, max_links, self.fetcher, self.settings.rules
        )

    async def extract_schema(self, url: str, validate_google: bool = True) -> dict[str, Any]:
        return await extract_schema(require_url(url), validate_google, self.fetcher)

    async def generate_schema(
        self, schema_type: str, data: Optional[dict[str, Any]], validate: bool = True
    ) -> dict[str, Any]:
        schema_type = require_value(schema_type, "type")
        if not isinstance(data, dict):
            raise SeoMcpError(
                'The "data" parameter is required and must be an object.', "INVALID_INPUT"
            )
        return generate_schema(schema_type, data, validate)

    async def generate_meta_suggestions(
        self,
        url: str,
        target_keyword: Optional[str] = None,
        secondary_keywords: Optional[list[str]] = None,
    ) -> dict[str, Any]:
        return await generate_meta_suggestions(
            require_url(url),
            target_keyword or None,
            secondary_keywords,
            self.fetcher,
            self.settings.rules,
        )

    # ------------------------------------------------------------------
    # Technical
    # ------------------------------------------------------------------

    async def analyze_robots_txt(
        self, domain: str, test_path: Optional[str] = None, user_agent: str = "*"
    ) -> dict[str, Any]:
        return await analyze_robots_txt(
            require_value(domain, "domain"), test_path or None, user_agent or "*", self.fetcher
        )

    async def analyze_sitemap(
        self, url: str, max_urls: int = 1000, check_urls: bool = False
    ) -> dict[str, Any]:
        return await analyze_sitemap(
            require_value(url, "url"), max_urls, check_urls, self.fetcher, self.settings.rules
        )

    # ------------------------------------------------------------------
    # Performance
    # ------------------------------------------------------------------

    async def check_core_web_vitals(
        self, url: str, strategy: str = "mobile", categories: Optional[list[str]] = None
    ) -> dict[str, Any]:
        if strategy not in ("mobile", "desktop"):
            raise SeoMcpError('"strategy" must be "mobile" or "desktop".', "INVALID_INPUT")
        return await self.pagespeed.check_core_web_vitals(require_url(url), strategy, categories)

    async def check_mobile_friendly(self, url: str) -> dict[str, Any]:
        return await self.pagespeed.check_mobile_friendly(require_url(url))

    # ------------------------------------------------------------------
    # Keyword, SERP and backlink research (DataForSEO)
    # ------------------------------------------------------------------

    async def research_keywords(
        self,
        keywords: list[str],
        location: str = "United States",
        language: str = "en",
        include_related: bool = False,
        limit: int = 10,
    ) -> dict[str, Any]:
        keywords = [k.strip() for k in keywords or [] if k and k.strip()]
        if not keywords:
            raise SeoMcpError('The "keywords" parameter must list at least one keyword.', "INVALID_INPUT")
        if len(keywords) > 100:
            raise SeoMcpError("At most 100 keywords can be researched per call.", "INVALID_INPUT")
        return await self.dataforseo.research_keywords(
            keywords, location, language, include_related, limit
        )

    async def analyze_serp(
        self,
        keyword: str,
        location: str = "United States",
        device: str = "desktop",
        depth: int = 10,
    ) -> dict[str, Any]:
        keyword = require_value(keyword, "keyword")
        if device not in ("desktop", "mobile"):
            raise SeoMcpError('"device" must be "desktop" or "mobile".', "INVALID_INPUT")
        return await self.dataforseo.analyze_serp(keyword, location, device, depth)

    async def analyze_backlinks(
        self,
        target: str,
        target_type: str = "domain",
        limit: int = 50,
        sort_by: str = "domain_authority",
        include_anchors: bool = True,
    ) -> dict[str, Any]:
        target = require_value(target, "target")
        if target_type not in ("url", "domain", "subdomain"):
            raise SeoMcpError('"target_type" must be "url", "domain" or "subdomain".', "INVALID_INPUT")
        if sort_by not in ("domain_authority", "first_seen", "last_seen"):
            raise SeoMcpError(
                '"sort_by" must be "domain_authority", "first_seen" or "last_seen".', "INVALID_INPUT"
            )
        return await self.dataforseo.analyze_backlinks(
            target, target_type, limit, sort_by, include_anchors
        )

    async def analyze_domain_authority(self, domains: list[str]) -> dict[str, Any]:
        domains = [d.strip() for d in domains or [] if d and d.strip()]
        if not domains:
            raise SeoMcpError('The "domains" parameter must list at least one domain.', "INVALID_INPUT")
        if len(domains) > 50:
            raise SeoMcpError("At most 50 domains can be compared per call.", "INVALID_INPUT")
        return await self.dataforseo.analyze_domain_authority(domains)

    # ------------------------------------------------------------------
    # Search Console (blocking client, run in a worker thread)
    # ------------------------------------------------------------------

    async def gsc_performance(
        self,
        site_url: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        dimensions: Optional[list[str]] = None,
        filters: Optional[list[dict[str, str]]] = None,
        row_limit: int = 1000,
    ) -> dict[str, Any]:
        site_url = require_value(site_url, "site_url")
        return await asyncio.to_thread(
            self.gsc.query_performance,
            site_url, start_date, end_date, dimensions, filters, row_limit,
        )

    async def gsc_index_coverage(self, site_url: str, url: Optional[str] = None) -> dict[str, Any]:
        site_url = require_value(site_url, "site_url")
        if not url:
            # Search Console has no coverage summary endpoint
            return {
                "siteUrl": site_url,
                "message": "Pass a url to inspect its index status.",
            }
        return await asyncio.to_thread(self.gsc.inspect_url, site_url, require_url(url))

    async def gsc_sitemaps(self, site_url: str, sitemap_url: Optional[str] = None) -> dict[str, Any]:
        site_url = require_value(site_url, "site_url")
        if sitemap_url:
            submitted = await asyncio.to_thread(
                self.gsc.submit_sitemap, site_url, require_url(sitemap_url, "sitemap_url")
            )
            return {"sitemaps": [submitted]}
        return {"sitemaps": await asyncio.to_thread(self.gsc.list_sitemaps, site_url)}


def create_server(settings: Settings, toolbox: Optional[SeoToolbox] = None) -> FastMCP:
    """Build a FastMCP server with every SEO tool registered."""
    toolbox = toolbox or SeoToolbox(settings)
    mcp = FastMCP(
        settings.server.name,
        instructions="SEO analysis tools: on-page audits, structured data, meta suggestions, "
        "robots.txt, sitemaps, Core Web Vitals, keyword and backlink research "
        "and Google Search Console data.",
        host=settings.server.host,
        port=settings.server.port,
    )

    @mcp.tool()
    async def analyze_page(
        url: str,
        include_content: bool = False,
        follow_redirects: bool = True,
        user_agent: Optional[str] = None,
    ) -> str:
        """Analyze on-page SEO for a URL: title, meta description, canonical,
        robots directives, Open Graph, headings, images, links and a 0-100 score.
        """
        params = {"url": url, "include_content": include_content,
                  "follow_redirects": follow_redirects, "user_agent": user_agent}
        return await toolbox.run("analyze_page", params, lambda: toolbox.analyze_page(**params))

    @mcp.tool()
    async def analyze_headings(url: str, target_keyword: Optional[str] = None) -> str:
        """Analyze the heading hierarchy (H1-H6) of a URL: nested outline,
        per-level counts, structural issues and optional keyword placement.
        """
        params = {"url": url, "target_keyword": target_keyword}
        return await toolbox.run("analyze_headings", params, lambda: toolbox.analyze_headings(**params))

    @mcp.tool()
    async def analyze_images(url: str, check_file_size: bool = False, max_images: int = 100) -> str:
        """Audit images on a URL for alt text, modern formats, dimensions,
        lazy loading and (optionally) file size.
        """
        params = {"url": url, "check_file_size": check_file_size, "max_images": max_images}
        return await toolbox.run("analyze_images", params, lambda: toolbox.analyze_images(**params))

    @mcp.tool()
    async def analyze_internal_links(
        url: str, check_broken_links: bool = False, max_links: int = 500
    ) -> str:
        """Analyze links on a URL: internal vs external, anchor text quality,
        placement on the page and (optionally) broken targets.
        """
        params = {"url": url, "check_broken_links": check_broken_links, "max_links": max_links}
        return await toolbox.run(
            "analyze_internal_links", params, lambda: toolbox.analyze_internal_links(**params)
        )

    @mcp.tool(name="extract_schema")
    async def extract_schema_markup(url: str, validate_google: bool = True) -> str:
        """Extract JSON-LD and microdata from a URL and validate each item
        against Google's rich-result requirements.
        """
        params = {"url": url, "validate_google": validate_google}
        return await toolbox.run("extract_schema", params, lambda: toolbox.extract_schema(**params))

    @mcp.tool(name="generate_schema")
    async def generate_schema_markup(
        type: str, data: Optional[dict[str, Any]] = None, validate: bool = True
    ) -> str:
        """Generate a JSON-LD document and script tag for a schema.org type
        (Article, Product, FAQPage, LocalBusiness, ...) from property data.
        """
        return await toolbox.run(
            "generate_schema", {},
            lambda: toolbox.generate_schema(type, data, validate),
            cacheable=False,
        )

    @mcp.tool(name="generate_meta_suggestions")
    async def suggest_meta_tags(
        url: str,
        target_keyword: Optional[str] = None,
        secondary_keywords: Optional[list[str]] = None,
    ) -> str:
        """Suggest an optimized title, meta description and Open Graph text
        for a URL, optionally built around a target keyword.
        """
        params = {"url": url, "target_keyword": target_keyword,
                  "secondary_keywords": secondary_keywords}
        return await toolbox.run(
            "generate_meta_suggestions", params, lambda: toolbox.generate_meta_suggestions(**params)
        )

    @mcp.tool()
    async def analyze_robots_txt(
        domain: str, test_path: Optional[str] = None, user_agent: str = "*"
    ) -> str:
        """Fetch and analyze a domain's robots.txt; optionally test whether a
        path is crawlable for a user-agent.
        """
        params = {"domain": domain, "test_path": test_path, "user_agent": user_agent}
        return await toolbox.run("analyze_robots_txt", params, lambda: toolbox.analyze_robots_txt(**params))

    @mcp.tool()
    async def analyze_sitemap(url: str, max_urls: int = 1000, check_urls: bool = False) -> str:
        """Analyze an XML sitemap (or a domain's /sitemap.xml): URL count,
        lastmod freshness, issues and an optional sampled status check.
        """
        params = {"url": url, "max_urls": max_urls, "check_urls": check_urls}
        return await toolbox.run("analyze_sitemap", params, lambda: toolbox.analyze_sitemap(**params))

    @mcp.tool(name="generate_robots_txt")
    async def generate_robots_txt_content(
        preset: str = "standard",
        sitemap_urls: Optional[list[str]] = None,
        disallow_paths: Optional[list[str]] = None,
        allow_paths: Optional[list[str]] = None,
        crawl_delay: Optional[float] = None,
        custom_rules: Optional[list[dict[str, Any]]] = None,
    ) -> str:
        """Generate robots.txt content from a preset (permissive, standard,
        restrictive) plus custom paths, user-agent groups and sitemaps.
        """
        async def _generate() -> dict[str, Any]:
            return generate_robots_txt(
                preset, sitemap_urls, disallow_paths, allow_paths, crawl_delay, custom_rules
            )

        return await toolbox.run("generate_robots_txt", {}, _generate, cacheable=False)

    @mcp.tool()
    async def check_core_web_vitals(
        url: str, strategy: str = "mobile", categories: Optional[list[str]] = None
    ) -> str:
        """Run Google PageSpeed Insights: LCP, INP, CLS, FCP and TTFB with
        ratings, Lighthouse scores, field data and top opportunities.
        """
        params = {"url": url, "strategy": strategy, "categories": categories}
        return await toolbox.run(
            "check_core_web_vitals", params, lambda: toolbox.check_core_web_vitals(**params)
        )

    @mcp.tool()
    async def check_mobile_friendly(url: str) -> str:
        """Check mobile friendliness of a URL using the mobile Lighthouse run."""
        params = {"url": url}
        return await toolbox.run(
            "check_mobile_friendly", params, lambda: toolbox.check_mobile_friendly(**params)
        )

    @mcp.tool()
    async def research_keywords(
        keywords: list[str],
        location: str = "United States",
        language: str = "en",
        include_related: bool = False,
        limit: int = 10,
    ) -> str:
        """Look up search volume, keyword difficulty, CPC, competition and the
        12-month trend for keywords (DataForSEO).
        """
        params = {"keywords": keywords, "location": location, "language": language,
                  "include_related": include_related, "limit": limit}
        return await toolbox.run("research_keywords", params, lambda: toolbox.research_keywords(**params))

    @mcp.tool()
    async def analyze_serp(
        keyword: str, location: str = "United States", device: str = "desktop", depth: int = 10
    ) -> str:
        """Analyze Google results for a keyword: organic rankings, SERP
        features, featured snippet, People Also Ask and estimated intent.
        """
        params = {"keyword": keyword, "location": location, "device": device, "depth": depth}
        return await toolbox.run("analyze_serp", params, lambda: toolbox.analyze_serp(**params))

    @mcp.tool()
    async def analyze_backlinks(
        target: str,
        target_type: str = "domain",
        limit: int = 50,
        sort_by: str = "domain_authority",
        include_anchors: bool = True,
    ) -> str:
        """Analyze the backlink profile of a domain or URL: referring domains,
        follow ratio, authority tiers and anchor text distribution.
        """
        params = {"target": target, "target_type": target_type, "limit": limit,
                  "sort_by": sort_by, "include_anchors": include_anchors}
        return await toolbox.run("analyze_backlinks", params, lambda: toolbox.analyze_backlinks(**params))

    @mcp.tool()
    async def analyze_domain_authority(domains: list[str]) -> str:
        """Compare authority, backlink and referring-domain metrics across domains."""
        params = {"domains": domains}
        return await toolbox.run(
            "analyze_domain_authority", params, lambda: toolbox.analyze_domain_authority(**params)
        )

    @mcp.tool()
    async def gsc_performance(
        site_url: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        dimensions: Optional[list[str]] = None,
        filters: Optional[list[dict[str, str]]] = None,
        row_limit: int = 1000,
    ) -> str:
        """Query Google Search Console search performance (clicks,
        impressions, CTR, position) for a property.
        """
        params = {"site_url": site_url, "start_date": start_date, "end_date": end_date,
                  "dimensions": dimensions, "filters": filters, "row_limit": row_limit}
        return await toolbox.run("gsc_performance", params, lambda: toolbox.gsc_performance(**params))

    @mcp.tool()
    async def gsc_index_coverage(site_url: str, url: Optional[str] = None) -> str:
        """Inspect a URL's index status in Google Search Console."""
        params = {"site_url": site_url, "url": url}
        return await toolbox.run(
            "gsc_index_coverage", params, lambda: toolbox.gsc_index_coverage(**params)
        )

    @mcp.tool()
    async def gsc_sitemaps(site_url: str, sitemap_url: Optional[str] = None) -> str:
        """List a property's sitemaps in Google Search Console, or submit one
        when sitemap_url is given.
        """
        params = {"site_url": site_url, "sitemap_url": sitemap_url}
        return await toolbox.run(
            "gsc_sitemaps", params, lambda: toolbox.gsc_sitemaps(**params), cacheable=False
        )

    logger.info("Registered SEO tools on server %s", settings.server.name)
    return mcp


async def serve(settings: Settings) -> None:
    """Run the MCP server on the configured transport."""
    mcp = create_server(settings)
    if settings.server.transport == "sse":
        logger.info("Starting SSE transport on %s:%d", settings.server.host, settings.server.port)
        await mcp.run_sse_async()
    else:
        logger.info("Starting stdio transport")
        await mcp.run_stdio_async()
