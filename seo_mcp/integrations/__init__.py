"""Clients for Google PageSpeed Insights, Search Console and DataForSEO."""

from seo_mcp.integrations.dataforseo import DataForSEO
from seo_mcp.integrations.google_pagespeed import PageSpeedInsights
from seo_mcp.integrations.google_search_console import GoogleSearchConsole

__all__ = ["DataForSEO", "GoogleSearchConsole", "PageSpeedInsights"]
