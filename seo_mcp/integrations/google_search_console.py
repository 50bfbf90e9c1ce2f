"""Google Search Console integration for performance data, URL inspection and sitemaps."""

import logging
import os
from datetime import date, timedelta
from typing import Any, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from seo_mcp.utils.errors import ApiKeyMissingError

logger = logging.getLogger(__name__)

# Full scope; sitemap submission is a write operation
GSC_SCOPES = ["https://www.googleapis.com/auth/webmasters"]

GSC_SETUP_INSTRUCTIONS = (
    "Set GSC_CREDENTIALS_PATH to a service-account JSON key file and add the "
    "service account as a user on the Search Console property."
)

MAX_ROW_LIMIT = 25000
DEFAULT_RANGE_DAYS = 28


class GoogleSearchConsole:
    """Client for the Google Search Console API.

    Usage::

        gsc = GoogleSearchConsole(credentials_path="config/gsc_credentials.json")
        data = gsc.query_performance("https://example.com/", dimensions=["query"])
        inspection = gsc.inspect_url("https://example.com/", "https://example.com/page")
    """

    def __init__(self, credentials_path: Optional[str] = None):
        self._credentials_path = credentials_path or ""
        self._service = None

    @property
    def is_configured(self) -> bool:
        return bool(self._credentials_path) and os.path.isfile(self._credentials_path)

    def authenticate(self) -> None:
        """Authenticate using a service account JSON key file.

        Raises:
            ApiKeyMissingError: if no credentials file is configured.
        """
        if not self.is_configured:
            raise ApiKeyMissingError("Google Search Console", GSC_SETUP_INSTRUCTIONS)
        credentials = service_account.Credentials.from_service_account_file(
            self._credentials_path, scopes=GSC_SCOPES
        )
        self._service = build("searchconsole", "v1", credentials=credentials, cache_discovery=False)
        logger.info("Authenticated with Google Search Console.")

    def _ensure_auth(self) -> None:
        if self._service is None:
            self.authenticate()

    # ------------------------------------------------------------------
    # Performance
    # ------------------------------------------------------------------

    def query_performance(
        self,
        site_url: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        dimensions: Optional[list[str]] = None,
        filters: Optional[list[dict[str, str]]] = None,
        row_limit: int = 1000,
    ) -> dict[str, Any]:
        """Fetch search performance rows with impression-weighted totals.

        Args:
            site_url: Property URL (``https://example.com/`` or ``sc-domain:example.com``).
            start_date: ISO date; defaults to 28 days before *end_date*.
            end_date: ISO date; defaults to today.
            dimensions: Grouping dimensions (query, page, country, device, date).
            filters: ``{"dimension", "operator", "expression"}`` dicts.
            row_limit: Max rows (API max 25000).

        Returns:
            Dict with ``rows``, ``totals`` and ``dateRange``.
        """
        self._ensure_auth()
        end = end_date or date.today().isoformat()
        start = start_date or (date.fromisoformat(end) - timedelta(days=DEFAULT_RANGE_DAYS)).isoformat()

        body: dict[str, Any] = {
            "startDate": start,
            "endDate": end,
            "dimensions": dimensions or ["query"],
            "rowLimit": min(row_limit, MAX_ROW_LIMIT),
        }
        if filters:
            body["dimensionFilterGroups"] = [{
                "filters": [
                    {"dimension": f["dimension"], "operator": f["operator"], "expression": f["expression"]}
                    for f in filters
                ]
            }]

        logger.info("GSC performance query: %s [%s to %s]", site_url, start, end)
        try:
            response = (
                self._service.searchanalytics()
                .query(siteUrl=site_url, body=body)
                .execute()
            )
        except HttpError as exc:
            logger.error("GSC API error: %s", exc)
            raise

        rows = [
            {
                "keys": row.get("keys", []),
                "clicks": row.get("clicks", 0),
                "impressions": row.get("impressions", 0),
                "ctr": row.get("ctr", 0.0),
                "position": row.get("position", 0.0),
            }
            for row in response.get("rows", [])
        ]

        logger.info("GSC performance: fetched %d rows", len(rows))
        return {"rows": rows, "totals": summarize_rows(rows), "dateRange": {"start": start, "end": end}}

    # ------------------------------------------------------------------
    # Index coverage
    # ------------------------------------------------------------------

    def inspect_url(self, site_url: str, url: str) -> dict[str, Any]:
        """Inspect one URL's index, crawl, canonical and mobile status."""
        self._ensure_auth()
        logger.info("GSC URL inspection: %s", url)
        try:
            response = (
                self._service.urlInspection()
                .index()
                .inspect(body={"inspectionUrl": url, "siteUrl": site_url})
                .execute()
            )
        except HttpError as exc:
            logger.error("GSC index coverage error: %s", exc)
            raise

        result = response.get("inspectionResult", {})
        index_status = result.get("indexStatusResult", {})
        mobile = result.get("mobileUsabilityResult", {})
        return {
            "url": url,
            "indexStatus": index_status.get("coverageState") or index_status.get("verdict") or "Unknown",
            "verdict": index_status.get("verdict", "UNKNOWN"),
            "crawlStatus": index_status.get("crawledAs") or "Unknown",
            "lastCrawlTime": index_status.get("lastCrawlTime"),
            "robotsTxtState": index_status.get("robotsTxtState"),
            "canonical": index_status.get("googleCanonical") or index_status.get("userCanonical") or "",
            "mobileUsability": mobile.get("verdict") or "Unknown",
        }

    # ------------------------------------------------------------------
    # Sitemaps
    # ------------------------------------------------------------------

    def list_sitemaps(self, site_url: str) -> list[dict[str, Any]]:
        """List all sitemaps submitted for the property."""
        self._ensure_auth()
        logger.info("Listing sitemaps for: %s", site_url)
        try:
            response = self._service.sitemaps().list(siteUrl=site_url).execute()
        except HttpError as exc:
            logger.error("GSC sitemaps error: %s", exc)
            raise

        results = []
        for sm in response.get("sitemap", []):
            results.append({
                "url": sm.get("path", ""),
                "type": sm.get("type", "sitemap"),
                "lastSubmitted": sm.get("lastSubmitted", ""),
                "lastDownloaded": sm.get("lastDownloaded", ""),
                "isPending": sm.get("isPending", False),
                "isSitemapIndex": sm.get("isSitemapsIndex", False),
                "warnings": int(sm.get("warnings", 0)),
                "errors": int(sm.get("errors", 0)),
                "urlCount": sum(int(c.get("submitted", 0)) for c in sm.get("contents", [])),
            })
        logger.info("GSC sitemaps: found %d", len(results))
        return results

    def submit_sitemap(self, site_url: str, sitemap_url: str) -> dict[str, Any]:
        self._ensure_auth()
        logger.info("Submitting sitemap: %s", sitemap_url)
        try:
            self._service.sitemaps().submit(siteUrl=site_url, feedpath=sitemap_url).execute()
        except HttpError as exc:
            logger.error("GSC sitemap submit error: %s", exc)
            raise
        return {"url": sitemap_url, "submitted": True, "isPending": True}


def summarize_rows(rows: list[dict[str, Any]]) -> dict[str, float]:
    """Totals over performance rows; position is weighted by impressions."""
    clicks = sum(r["clicks"] for r in rows)
    impressions = sum(r["impressions"] for r in rows)
    position_sum = sum(r["position"] * r["impressions"] for r in rows)
    return {
        "clicks": clicks,
        "impressions": impressions,
        "ctr": clicks / impressions if impressions else 0,
        "position": position_sum / impressions if impressions else 0,
    }
