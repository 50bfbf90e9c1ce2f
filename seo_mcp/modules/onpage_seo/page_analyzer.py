"""On-page analyzer that assembles a scored PageAnalysis for one URL.

Fetches the page, extracts title, meta description, canonical, robots
directives, Open Graph tags, heading/image/link summaries and optionally
body-text statistics, then attaches the composite score.
"""

import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from seo_mcp.constants import DEFAULT_RULES, DEFAULT_WEIGHTS, ScoreWeights, SeoRules
from seo_mcp.models.page import (
    CanonicalAnalysis,
    ContentAnalysis,
    HeadingSummary,
    ImageSummary,
    LinkSummary,
    MetaDescriptionAnalysis,
    OpenGraphAnalysis,
    PageAnalysis,
    RobotsAnalysis,
    TitleAnalysis,
)
from seo_mcp.modules.onpage_seo.scoring import calculate_seo_score
from seo_mcp.utils.helpers import round_half_up
from seo_mcp.utils.html_parser import (
    count_words,
    extract_canonical,
    extract_meta_description,
    extract_meta_robots,
    extract_open_graph,
    extract_title,
    get_body_text,
    parse_html,
)
from seo_mcp.utils.http_client import HttpFetcher
from seo_mcp.utils.validators import normalize_url

logger = logging.getLogger(__name__)

_SKIPPED_HREF_PREFIXES = ("#", "javascript:", "mailto:")


class PageAnalyzer:
    """Comprehensive single-page SEO analyser.

    Usage::

        analyzer = PageAnalyzer(fetcher=HttpFetcher())
        analysis = await analyzer.analyze_page("https://example.com", include_content=True)
        print(analysis.score.overall)
    """

    def __init__(
        self,
        fetcher: Optional[HttpFetcher] = None,
        rules: SeoRules = DEFAULT_RULES,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
    ) -> None:
        self._fetcher = fetcher or HttpFetcher()
        self._rules = rules
        self._weights = weights

    # ------------------------------------------------------------------
    # Main entry points
    # ------------------------------------------------------------------

    async def analyze_page(
        self,
        url: str,
        include_content: bool = False,
        follow_redirects: bool = True,
        user_agent: Optional[str] = None,
    ) -> PageAnalysis:
        logger.info("Analyzing page: %s", url)
        response = await self._fetcher.get(
            url, follow_redirects=follow_redirects, user_agent=user_agent
        )
        analysis = self.analyze_html(
            url,
            response.body,
            headers=response.headers,
            status_code=response.status,
            redirect_chain=response.redirect_chain,
            response_time=response.response_time,
            include_content=include_content,
        )
        logger.info("Page analysis complete: %s (score: %d)", url, analysis.score.overall)
        return analysis

    def analyze_html(
        self,
        url: str,
        html: str,
        headers: Optional[dict[str, str]] = None,
        status_code: int = 200,
        redirect_chain: Optional[list[str]] = None,
        response_time: int = 0,
        include_content: bool = False,
    ) -> PageAnalysis:
        """Analyse an already-fetched document; *headers* keys are lowercase."""
        soup = parse_html(html)
        analysis = PageAnalysis(
            url=url,
            status_code=status_code,
            redirect_chain=list(redirect_chain or []),
            response_time=response_time,
            title=self._analyze_title(soup),
            meta_description=self._analyze_meta_description(soup),
            canonical=self._analyze_canonical(soup, url),
            robots=self._analyze_robots(soup, headers or {}),
            open_graph=self._analyze_open_graph(soup),
            headings=self._summarize_headings(soup),
            images=self._summarize_images(soup),
            links=self._summarize_links(soup, url),
            content=self._analyze_content(soup) if include_content else None,
        )
        analysis.score = calculate_seo_score(analysis, self._rules, self._weights)
        return analysis

    # ------------------------------------------------------------------
    # Head metadata
    # ------------------------------------------------------------------

    def _analyze_title(self, soup: BeautifulSoup) -> TitleAnalysis:
        text = extract_title(soup)
        length = len(text) if text else 0
        rule = self._rules.title
        issues: list[str] = []

        if not text:
            issues.append("Missing title tag")
        else:
            if length < rule.min_length:
                issues.append(f"Title too short ({length} chars, minimum {rule.min_length})")
            if length > rule.max_length:
                issues.append(f"Title too long ({length} chars, maximum {rule.max_length})")

        return TitleAnalysis(text=text, length=length, issues=issues)

    def _analyze_meta_description(self, soup: BeautifulSoup) -> MetaDescriptionAnalysis:
        text = extract_meta_description(soup)
        length = len(text) if text else 0
        rule = self._rules.meta_description
        issues: list[str] = []

        if not text:
            issues.append("Missing meta description")
        else:
            if length < rule.min_length:
                issues.append(
                    f"Meta description too short ({length} chars, minimum {rule.min_length})"
                )
            if length > rule.max_length:
                issues.append(
                    f"Meta description too long ({length} chars, maximum {rule.max_length})"
                )

        return MetaDescriptionAnalysis(text=text, length=length, issues=issues)

    @staticmethod
    def _analyze_canonical(soup: BeautifulSoup, page_url: str) -> CanonicalAnalysis:
        url = extract_canonical(soup)
        issues: list[str] = []
        is_self = False

        if not url:
            issues.append("Missing canonical tag")
        else:
            resolved = urljoin(page_url, url)
            if not urlparse(resolved).hostname:
                issues.append("Invalid canonical URL")
            else:
                is_self = normalize_url(resolved) == normalize_url(page_url)

        return CanonicalAnalysis(url=url, is_self_referencing=is_self, issues=issues)

    @staticmethod
    def _analyze_robots(soup: BeautifulSoup, headers: dict[str, str]) -> RobotsAnalysis:
        meta = extract_meta_robots(soup)
        x_robots = headers.get("x-robots-tag") or None
        combined = ", ".join(v for v in (meta, x_robots) if v).lower()
        return RobotsAnalysis(
            meta=meta,
            x_robots_tag=x_robots,
            is_indexable="noindex" not in combined,
        )

    @staticmethod
    def _analyze_open_graph(soup: BeautifulSoup) -> OpenGraphAnalysis:
        og = extract_open_graph(soup)
        issues: list[str] = []
        for key in ("title", "description", "image"):
            if not og[key]:
                issues.append("Missing og:" + key)
        return OpenGraphAnalysis(issues=issues, **og)

    # ------------------------------------------------------------------
    # Body summaries
    # ------------------------------------------------------------------

    def _summarize_headings(self, soup: BeautifulSoup) -> HeadingSummary:
        h1_text = [
            h.get_text().strip() for h in soup.find_all("h1") if h.get_text().strip()
        ]
        total = len(soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"]))
        issues: list[str] = []

        if not h1_text:
            issues.append("Missing H1 tag")
        elif len(h1_text) > self._rules.headings.max_h1_count:
            issues.append(f"Multiple H1 tags found ({len(h1_text)})")

        return HeadingSummary(
            h1_count=len(h1_text), h1_text=h1_text, total_headings=total, issues=issues
        )

    @staticmethod
    def _summarize_images(soup: BeautifulSoup) -> ImageSummary:
        images = soup.find_all("img")
        # alt="" counts as present
        missing_alt = sum(1 for img in images if img.get("alt") is None)
        issues: list[str] = []
        if missing_alt:
            issues.append(f"{missing_alt} image(s) missing alt attribute")
        return ImageSummary(total=len(images), missing_alt=missing_alt, issues=issues)

    @staticmethod
    def _summarize_links(soup: BeautifulSoup, page_url: str) -> LinkSummary:
        internal = external = nofollow = 0
        page_host = urlparse(page_url).hostname

        for a in soup.find_all("a", href=True):
            href = a["href"].strip()
            if not href or href.startswith(_SKIPPED_HREF_PREFIXES):
                continue
            if "nofollow" in (a.get("rel") or []):
                nofollow += 1
            try:
                host = urlparse(urljoin(page_url, href)).hostname
            except ValueError:
                internal += 1
                continue
            if host == page_host:
                internal += 1
            else:
                external += 1

        return LinkSummary(internal=internal, external=external, nofollow=nofollow)

    @staticmethod
    def _analyze_content(soup: BeautifulSoup) -> ContentAnalysis:
        body_text = get_body_text(soup)
        word_count = count_words(body_text)
        sentences = len([s for s in re.split(r"[.!?]+", body_text) if s.strip()])
        readability = 0.0
        if sentences > 0:
            readability = min(100.0, max(0.0, 100 - abs(word_count / sentences - 15) * 3))
        return ContentAnalysis(word_count=word_count, readability_score=round_half_up(readability))
