"""Tests for the PageSpeed Insights client (HTTP layer mocked)."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from seo_mcp.constants import MetricThreshold
from seo_mcp.integrations.google_pagespeed import PAGESPEED_API_URL, PageSpeedInsights, rate_metric
from seo_mcp.utils.errors import SeoMcpError
from seo_mcp.utils.rate_limiter import RateLimiter

LIGHTHOUSE_RESPONSE = {
    "lighthouseResult": {
        "categories": {
            "performance": {"score": 0.72},
            "seo": {"score": 0.92},
            "accessibility": {"score": 0.88},
            "best-practices": {"score": 1.0},
        },
        "audits": {
            "largest-contentful-paint": {"numericValue": 2100.4},
            "total-blocking-time": {"numericValue": 350},
            "cumulative-layout-shift": {"numericValue": 0.31234},
            "first-contentful-paint": {"numericValue": 1200},
            "server-response-time": {"numericValue": 900},
            "render-blocking-resources": {
                "title": "Eliminate render-blocking resources",
                "description": "Defer non-critical CSS.",
                "details": {"type": "opportunity", "overallSavingsMs": 1500},
            },
            "bootup-time": {
                "title": "Reduce JavaScript execution time",
                "description": "Parse less JS.",
                "displayValue": "2.3 s",
                "score": 0.5,
                "details": {"type": "table"},
            },
            "resource-summary": {
                "details": {"items": [
                    {"resourceType": "total", "transferSize": 1000, "requestCount": 20},
                    {"resourceType": "script", "transferSize": 600, "requestCount": 12},
                    {"resourceType": "image", "transferSize": 400, "requestCount": 8},
                ]},
            },
            "viewport": {"score": 1, "title": "Has a viewport meta tag"},
            "font-size": {"score": 0.5, "title": "Document doesn't use legible font sizes",
                          "displayValue": "62% legible text"},
            "tap-targets": {"score": None, "title": "Tap targets are sized appropriately"},
        },
    },
    "loadingExperience": {
        "metrics": {
            "LARGEST_CONTENTFUL_PAINT_MS": {"percentile": 2600, "category": "AVERAGE"},
            "CUMULATIVE_LAYOUT_SHIFT_SCORE": {"percentile": 5, "category": "FAST"},
        },
    },
}


def _http_response(status: int = 200, payload=None) -> httpx.Response:
    request = httpx.Request("GET", PAGESPEED_API_URL)
    return httpx.Response(status, json=payload or {}, request=request)


@pytest.fixture()
def mock_client():
    """Patch httpx.AsyncClient; yields the client used inside ``async with``."""
    client = MagicMock()
    client.get = AsyncMock(return_value=_http_response(payload=LIGHTHOUSE_RESPONSE))
    with patch("seo_mcp.integrations.google_pagespeed.httpx.AsyncClient") as client_cls:
        client_cls.return_value.__aenter__.return_value = client
        yield client


@pytest.fixture()
def psi():
    return PageSpeedInsights(api_key="test-key", rate_limiter=RateLimiter(100, 1))


# ===========================================================================
# 1. Metric rating
# ===========================================================================
class TestRateMetric:
    """Threshold boundaries are inclusive on the better side."""

    @pytest.mark.parametrize("value,expected", [
        (2500, "good"),
        (2501, "needs-improvement"),
        (4000, "needs-improvement"),
        (4001, "poor"),
    ])
    def test_lcp_thresholds(self, value, expected):
        assert rate_metric(value, MetricThreshold(2500, 4000)) == expected


# ===========================================================================
# 2. Core Web Vitals
# ===========================================================================
class TestCoreWebVitals:

    @pytest.mark.asyncio
    async def test_request_parameters(self, psi, mock_client):
        await psi.check_core_web_vitals("https://example.com/", strategy="desktop")
        args, kwargs = mock_client.get.await_args
        assert args == (PAGESPEED_API_URL,)
        assert kwargs["params"] == [
            ("url", "https://example.com/"),
            ("strategy", "desktop"),
            ("category", "performance"),
            ("category", "seo"),
            ("key", "test-key"),
        ]

    @pytest.mark.asyncio
    async def test_lab_metrics(self, psi, mock_client):
        result = await psi.check_core_web_vitals("https://example.com/")
        assert result["strategy"] == "mobile"
        assert result["coreWebVitals"] == {
            "LCP": {"value": 2.1, "unit": "s", "rating": "good"},
            "INP": {"value": 350, "unit": "ms", "rating": "needs-improvement"},
            "CLS": {"value": 0.312, "unit": "score", "rating": "poor"},
            "FCP": {"value": 1.2, "unit": "s", "rating": "good"},
            "TTFB": {"value": 900, "unit": "ms", "rating": "needs-improvement"},
        }
        assert result["lighthouseScores"] == {
            "performance": 72, "seo": 92, "accessibility": 88, "bestPractices": 100,
        }

    @pytest.mark.asyncio
    async def test_field_data_and_audits(self, psi, mock_client):
        result = await psi.check_core_web_vitals("https://example.com/")
        assert result["fieldData"]["LCP"] == {"value": 2.6, "unit": "s", "rating": "average"}
        assert result["fieldData"]["CLS"]["value"] == 0.05
        assert "INP" not in result["fieldData"]
        assert result["opportunities"] == [{
            "title": "Eliminate render-blocking resources",
            "savings": "1.5s",
            "description": "Defer non-critical CSS.",
        }]
        assert [d["title"] for d in result["diagnostics"]] == ["Reduce JavaScript execution time"]
        assert result["resources"] == {
            "totalSize": 1000,
            "requestCount": 20,
            "byType": {"script": {"size": 600, "count": 12}, "image": {"size": 400, "count": 8}},
        }

    @pytest.mark.asyncio
    async def test_no_field_data(self, psi, mock_client):
        mock_client.get.return_value = _http_response(payload={"lighthouseResult": {}})
        result = await psi.check_core_web_vitals("https://example.com/")
        assert result["fieldData"] is None
        assert result["lighthouseScores"]["performance"] == 0

    @pytest.mark.asyncio
    async def test_http_error_is_wrapped(self, psi, mock_client):
        mock_client.get.return_value = _http_response(status=429)
        with pytest.raises(SeoMcpError) as exc_info:
            await psi.check_core_web_vitals("https://example.com/")
        assert exc_info.value.code == "PAGESPEED_ERROR"
        assert "HTTP 429" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self, psi, mock_client):
        mock_client.get.side_effect = httpx.ConnectTimeout("timed out")
        with pytest.raises(SeoMcpError, match="PageSpeed request failed"):
            await psi.check_core_web_vitals("https://example.com/")


# ===========================================================================
# 3. Mobile friendliness
# ===========================================================================
class TestMobileFriendly:

    @pytest.mark.asyncio
    async def test_mobile_checks(self, psi, mock_client):
        result = await psi.check_mobile_friendly("https://example.com/")
        params = mock_client.get.await_args.kwargs["params"]
        assert ("strategy", "mobile") in params
        assert ("category", "accessibility") in params

        assert result["mobileFriendly"] is True
        assert result["mobileLighthouseScore"] == 72
        assert result["checks"] == {
            "viewport": {"passed": True, "displayValue": ""},
            "fontSizes": {"passed": False, "displayValue": "62% legible text"},
            "tapTargets": {"passed": True, "displayValue": ""},
        }
        assert result["issues"] == [{
            "type": "mobile_font_size",
            "severity": "medium",
            "detail": "Document doesn't use legible font sizes",
        }]


# ===========================================================================
# 4. Construction
# ===========================================================================
class TestPageSpeedConstruction:

    def test_without_key_warns(self, caplog):
        psi = PageSpeedInsights()
        assert psi.has_api_key is False
        assert "No PAGESPEED_API_KEY set" in caplog.text

    @pytest.mark.asyncio
    async def test_key_omitted_from_request(self, mock_client):
        psi = PageSpeedInsights(rate_limiter=RateLimiter(100, 1))
        await psi.check_core_web_vitals("https://example.com/")
        params = mock_client.get.await_args.kwargs["params"]
        assert all(name != "key" for name, _ in params)
