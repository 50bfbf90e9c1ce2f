"""Typed records shared across analyzers."""

from seo_mcp.models.headings import (
    HeadingAnalysis,
    HeadingLevel,
    HeadingNode,
    HeadingObservation,
    KeywordPresence,
    SeoIssue,
    Severity,
)
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
    SeoScore,
    TitleAnalysis,
)

__all__ = [
    "HeadingAnalysis",
    "HeadingLevel",
    "HeadingNode",
    "HeadingObservation",
    "KeywordPresence",
    "SeoIssue",
    "Severity",
    "CanonicalAnalysis",
    "ContentAnalysis",
    "HeadingSummary",
    "ImageSummary",
    "LinkSummary",
    "MetaDescriptionAnalysis",
    "OpenGraphAnalysis",
    "PageAnalysis",
    "RobotsAnalysis",
    "SeoScore",
    "TitleAnalysis",
]
