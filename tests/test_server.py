"""Tests for the MCP tool layer: toolbox methods, caching, error envelope."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from seo_mcp.app import Settings
from seo_mcp.server import SeoToolbox, create_server, error_payload, require_url, require_value
from seo_mcp.utils.errors import SeoMcpError, UrlFetchError

TOOL_NAMES = {
    "analyze_page",
    "analyze_headings",
    "analyze_images",
    "analyze_internal_links",
    "extract_schema",
    "generate_schema",
    "generate_meta_suggestions",
    "analyze_robots_txt",
    "generate_robots_txt",
    "analyze_sitemap",
    "check_core_web_vitals",
    "check_mobile_friendly",
    "research_keywords",
    "analyze_serp",
    "analyze_backlinks",
    "analyze_domain_authority",
    "gsc_performance",
    "gsc_index_coverage",
    "gsc_sitemaps",
}


@pytest.fixture()
def toolbox(mock_fetcher):
    return SeoToolbox(
        Settings(), fetcher=mock_fetcher, pagespeed=MagicMock(), gsc=MagicMock(), dataforseo=MagicMock()
    )


# ===========================================================================
# 1. Input validation and error payloads
# ===========================================================================
class TestValidation:

    def test_require_url(self):
        assert require_url("  https://example.com/a ") == "https://example.com/a"

    @pytest.mark.parametrize("url,message", [
        ("", 'The "url" parameter is required.'),
        ("ftp://example.com", 'Invalid "url": Invalid scheme'),
        ("https://", 'Invalid "url": URL has no network location'),
    ])
    def test_require_url_rejects(self, url, message):
        with pytest.raises(SeoMcpError) as exc_info:
            require_url(url)
        assert exc_info.value.code == "INVALID_INPUT"
        assert exc_info.value.message.startswith(message)

    def test_require_value(self):
        assert require_value(" example.com ", "domain") == "example.com"
        with pytest.raises(SeoMcpError, match='"domain" parameter is required'):
            require_value("   ", "domain")

    def test_error_payload_known_error(self):
        payload = json.loads(error_payload(UrlFetchError("https://x.test", "request timed out")))
        assert payload == {"error": "Failed to fetch https://x.test: request timed out", "isError": True}

    def test_error_payload_unexpected_error(self):
        payload = json.loads(error_payload(KeyError("boom")))
        assert payload["error"].startswith("Error: ")
        assert payload["isError"] is True


# ===========================================================================
# 2. run(): caching and the error envelope
# ===========================================================================
class TestToolboxRun:

    @pytest.mark.asyncio
    async def test_result_is_cached(self, toolbox):
        handler = AsyncMock(return_value={"ok": 1})
        first = await toolbox.run("tool", {"url": "u"}, handler)
        second = await toolbox.run("tool", {"url": "u"}, handler)
        assert json.loads(first) == json.loads(second) == {"ok": 1}
        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_uncacheable_always_runs(self, toolbox):
        handler = AsyncMock(return_value={"ok": 1})
        await toolbox.run("tool", {}, handler, cacheable=False)
        await toolbox.run("tool", {}, handler, cacheable=False)
        assert handler.await_count == 2
        assert len(toolbox.cache) == 0

    @pytest.mark.asyncio
    async def test_errors_become_payloads_and_are_not_cached(self, toolbox):
        handler = AsyncMock(side_effect=[SeoMcpError("nope", "X"), {"ok": 1}])
        failed = json.loads(await toolbox.run("tool", {"url": "u"}, handler))
        assert failed == {"error": "nope", "isError": True}
        assert json.loads(await toolbox.run("tool", {"url": "u"}, handler)) == {"ok": 1}

    @pytest.mark.asyncio
    async def test_invalid_url_never_fetches(self, toolbox, mock_fetcher):
        text = await toolbox.run("analyze_headings", {"url": "not a url"},
                                 lambda: toolbox.analyze_headings("not a url"))
        assert json.loads(text)["isError"] is True
        mock_fetcher.get.assert_not_awaited()


# ===========================================================================
# 3. Tool methods
# ===========================================================================
class TestToolMethods:

    @pytest.mark.asyncio
    async def test_analyze_page(self, toolbox):
        result = await toolbox.analyze_page("https://example.com/")
        assert result["score"]["overall"] == 93
        assert result["headings"]["h1Count"] == 1

    @pytest.mark.asyncio
    async def test_analyze_headings_blank_keyword_is_ignored(self, toolbox):
        result = await toolbox.analyze_headings("https://example.com/", "")
        assert "keywordPresence" not in result
        assert result["counts"] == {"h1": 1, "h2": 2, "h3": 1}

    @pytest.mark.asyncio
    async def test_analyze_internal_links(self, toolbox):
        result = await toolbox.analyze_internal_links("https://example.com/")
        assert result["summary"]["internalCount"] == 3

    @pytest.mark.asyncio
    async def test_core_web_vitals_strategy_checked(self, toolbox):
        with pytest.raises(SeoMcpError, match="strategy"):
            await toolbox.check_core_web_vitals("https://example.com/", strategy="tablet")

    @pytest.mark.asyncio
    async def test_core_web_vitals_delegates(self, toolbox):
        toolbox.pagespeed.check_core_web_vitals = AsyncMock(return_value={"url": "https://example.com/"})
        await toolbox.check_core_web_vitals("https://example.com/", "desktop")
        toolbox.pagespeed.check_core_web_vitals.assert_awaited_once_with(
            "https://example.com/", "desktop", None
        )

    @pytest.mark.asyncio
    async def test_gsc_unconfigured(self, mock_fetcher):
        toolbox = SeoToolbox(Settings(), fetcher=mock_fetcher)
        text = await toolbox.run("gsc_sitemaps", {}, lambda: toolbox.gsc_sitemaps("https://example.com/"))
        payload = json.loads(text)
        assert payload["isError"] is True
        assert "Google Search Console API key not configured" in payload["error"]

    @pytest.mark.asyncio
    async def test_gsc_index_coverage_without_url(self, toolbox):
        result = await toolbox.gsc_index_coverage("sc-domain:example.com")
        assert result["siteUrl"] == "sc-domain:example.com"
        toolbox.gsc.inspect_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_gsc_sitemaps_submit_or_list(self, toolbox):
        toolbox.gsc.submit_sitemap.return_value = {"url": "https://example.com/s.xml", "submitted": True}
        toolbox.gsc.list_sitemaps.return_value = [{"url": "https://example.com/s.xml"}]

        submitted = await toolbox.gsc_sitemaps("https://example.com/", "https://example.com/s.xml")
        listed = await toolbox.gsc_sitemaps("https://example.com/")

        toolbox.gsc.submit_sitemap.assert_called_once_with(
            "https://example.com/", "https://example.com/s.xml"
        )
        assert submitted["sitemaps"][0]["submitted"] is True
        assert listed == {"sitemaps": [{"url": "https://example.com/s.xml"}]}

    @pytest.mark.asyncio
    async def test_extract_schema_and_meta_suggestions(self, toolbox):
        schema = await toolbox.extract_schema("https://example.com/")
        meta = await toolbox.generate_meta_suggestions("https://example.com/", "")
        assert schema["summary"]["totalSchemas"] == 0
        assert meta["suggestions"]["title"]["keywordPosition"] == -1

    @pytest.mark.asyncio
    async def test_generate_schema_requires_type_and_data(self, toolbox):
        with pytest.raises(SeoMcpError, match='"type" parameter is required'):
            await toolbox.generate_schema("", {"name": "x"})
        with pytest.raises(SeoMcpError, match='"data" parameter is required and must be an object'):
            await toolbox.generate_schema("Product", None)
        result = await toolbox.generate_schema("Product", {"name": "Shoe"})
        assert result["jsonLd"]["name"] == "Shoe"

    @pytest.mark.asyncio
    async def test_research_tools_validate_input(self, toolbox):
        with pytest.raises(SeoMcpError, match="at least one keyword"):
            await toolbox.research_keywords(["  "])
        with pytest.raises(SeoMcpError, match="At most 100 keywords"):
            await toolbox.research_keywords([f"k{i}" for i in range(101)])
        with pytest.raises(SeoMcpError, match="device"):
            await toolbox.analyze_serp("shoes", device="tablet")
        with pytest.raises(SeoMcpError, match="target_type"):
            await toolbox.analyze_backlinks("example.com", target_type="page")
        with pytest.raises(SeoMcpError, match="sort_by"):
            await toolbox.analyze_backlinks("example.com", sort_by="spam")
        with pytest.raises(SeoMcpError, match="At most 50 domains"):
            await toolbox.analyze_domain_authority([f"d{i}.test" for i in range(51)])

    @pytest.mark.asyncio
    async def test_research_tools_delegate(self, toolbox):
        toolbox.dataforseo.research_keywords = AsyncMock(return_value={"keywords": []})
        toolbox.dataforseo.analyze_domain_authority = AsyncMock(return_value={"domains": []})

        await toolbox.research_keywords([" running shoes ", ""], include_related=True)
        await toolbox.analyze_domain_authority(["example.com", " rival.test "])

        toolbox.dataforseo.research_keywords.assert_awaited_once_with(
            ["running shoes"], "United States", "en", True, 10
        )
        toolbox.dataforseo.analyze_domain_authority.assert_awaited_once_with(
            ["example.com", "rival.test"]
        )

    @pytest.mark.asyncio
    async def test_dataforseo_unconfigured(self, mock_fetcher):
        toolbox = SeoToolbox(Settings(), fetcher=mock_fetcher)
        text = await toolbox.run("analyze_serp", {}, lambda: toolbox.analyze_serp("shoes"))
        payload = json.loads(text)
        assert payload["isError"] is True
        assert payload["error"].startswith("DataForSEO API key not configured. Set DATAFORSEO_LOGIN")


# ===========================================================================
# 4. Server construction
# ===========================================================================
class TestCreateServer:

    @pytest.mark.asyncio
    async def test_every_tool_registered(self, toolbox):
        mcp = create_server(Settings(), toolbox)
        tools = await mcp.list_tools()
        assert {tool.name for tool in tools} == TOOL_NAMES

    @pytest.mark.asyncio
    async def test_tool_parameters_are_snake_case(self, toolbox):
        mcp = create_server(Settings(), toolbox)
        tools = {tool.name: tool for tool in await mcp.list_tools()}
        properties = tools["analyze_headings"].inputSchema["properties"]
        assert set(properties) == {"url", "target_keyword"}
        assert tools["analyze_headings"].inputSchema["required"] == ["url"]
        assert set(tools["generate_schema"].inputSchema["properties"]) == {"type", "data", "validate"}

    @pytest.mark.asyncio
    async def test_generate_schema_tool_returns_json(self, toolbox):
        mcp = create_server(Settings(), toolbox)
        content = await mcp.call_tool("generate_schema", {"type": "Person", "data": {"name": "Sam"}})
        blocks = content[0] if isinstance(content, tuple) else content
        payload = json.loads(blocks[0].text)
        assert payload["jsonLd"] == {"@context": "https://schema.org", "@type": "Person", "name": "Sam"}
