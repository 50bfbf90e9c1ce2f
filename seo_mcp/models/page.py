"""Page-level analysis records consumed by the composite scorer."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class TitleAnalysis:
    text: Optional[str]
    length: int
    issues: list[str] = field(default_factory=list)


@dataclass
class MetaDescriptionAnalysis:
    text: Optional[str]
    length: int
    issues: list[str] = field(default_factory=list)


@dataclass
class CanonicalAnalysis:
    url: Optional[str]
    is_self_referencing: bool = False
    issues: list[str] = field(default_factory=list)


@dataclass
class RobotsAnalysis:
    meta: Optional[str]
    x_robots_tag: Optional[str]
    is_indexable: bool


@dataclass
class OpenGraphAnalysis:
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None
    type: Optional[str] = None
    issues: list[str] = field(default_factory=list)


@dataclass
class HeadingSummary:
    h1_count: int
    h1_text: list[str]
    total_headings: int
    issues: list[str] = field(default_factory=list)


@dataclass
class ImageSummary:
    total: int
    missing_alt: int
    issues: list[str] = field(default_factory=list)


@dataclass
class LinkSummary:
    internal: int
    external: int
    nofollow: int = 0


@dataclass
class ContentAnalysis:
    word_count: int
    readability_score: int


@dataclass
class SeoScore:
    overall: int
    breakdown: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {"overall": self.overall, "breakdown": dict(self.breakdown)}


@dataclass
class PageAnalysis:
    """Snapshot of every sub-analysis for one fetched page.

    The scorer reads this record and never mutates it; ``score`` is
    attached by the page analyzer after scoring.
    """

    url: str
    status_code: int
    redirect_chain: list[str]
    response_time: int
    title: TitleAnalysis
    meta_description: MetaDescriptionAnalysis
    canonical: CanonicalAnalysis
    robots: RobotsAnalysis
    open_graph: OpenGraphAnalysis
    headings: HeadingSummary
    images: ImageSummary
    links: LinkSummary
    content: Optional[ContentAnalysis] = None
    score: Optional[SeoScore] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "url": self.url,
            "statusCode": self.status_code,
            "redirectChain": list(self.redirect_chain),
            "responseTime": self.response_time,
            "title": {
                "text": self.title.text,
                "length": self.title.length,
                "issues": list(self.title.issues),
            },
            "metaDescription": {
                "text": self.meta_description.text,
                "length": self.meta_description.length,
                "issues": list(self.meta_description.issues),
            },
            "canonical": {
                "url": self.canonical.url,
                "isSelfReferencing": self.canonical.is_self_referencing,
                "issues": list(self.canonical.issues),
            },
            "robots": {
                "meta": self.robots.meta,
                "xRobotsTag": self.robots.x_robots_tag,
                "isIndexable": self.robots.is_indexable,
            },
            "openGraph": {
                "title": self.open_graph.title,
                "description": self.open_graph.description,
                "image": self.open_graph.image,
                "url": self.open_graph.url,
                "type": self.open_graph.type,
                "issues": list(self.open_graph.issues),
            },
            "headings": {
                "h1Count": self.headings.h1_count,
                "h1Text": list(self.headings.h1_text),
                "totalHeadings": self.headings.total_headings,
                "issues": list(self.headings.issues),
            },
            "images": {
                "total": self.images.total,
                "missingAlt": self.images.missing_alt,
                "issues": list(self.images.issues),
            },
            "links": {
                "internal": self.links.internal,
                "external": self.links.external,
                "nofollow": self.links.nofollow,
            },
        }
        if self.content is not None:
            result["content"] = {
                "wordCount": self.content.word_count,
                "readabilityScore": self.content.readability_score,
            }
        if self.score is not None:
            result["score"] = self.score.to_dict()
        return result
