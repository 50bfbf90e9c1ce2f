"""SEO rules, thresholds and score weights shared by every analyzer.

Values are grouped into frozen dataclasses so a caller can build an
alternative rule set (e.g. from ``config/settings.yaml``) and pass it
explicitly instead of mutating module state.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class LengthRule:
    """Character-length window for a text field (title, meta description)."""
    min_length: int
    max_length: int
    ideal_min_length: int
    ideal_max_length: int


@dataclass(frozen=True)
class HeadingRules:
    max_h1_count: int = 1


@dataclass(frozen=True)
class ImageRules:
    max_file_size_bytes: int = 200 * 1024
    modern_formats: tuple[str, ...] = ("webp", "avif")


@dataclass(frozen=True)
class LinkRules:
    max_per_page: int = 150
    generic_anchors: tuple[str, ...] = (
        "click here",
        "read more",
        "learn more",
        "here",
        "this",
        "link",
        "more",
        "continue",
        "go",
    )


@dataclass(frozen=True)
class ContentRules:
    thin_content_threshold: int = 200
    min_word_count_homepage: int = 200


@dataclass(frozen=True)
class MetricThreshold:
    good: float
    needs_improvement: float


@dataclass(frozen=True)
class PerformanceRules:
    lcp: MetricThreshold = MetricThreshold(2500, 4000)
    inp: MetricThreshold = MetricThreshold(200, 500)
    cls: MetricThreshold = MetricThreshold(0.1, 0.25)
    fcp: MetricThreshold = MetricThreshold(1800, 3000)
    ttfb: MetricThreshold = MetricThreshold(800, 1800)


@dataclass(frozen=True)
class SitemapRules:
    max_urls_per_file: int = 50000
    max_file_size_mb: int = 50


@dataclass(frozen=True)
class SeoRules:
    """Complete rule set consumed by the analyzers and the scorer."""
    title: LengthRule = LengthRule(30, 60, 50, 60)
    meta_description: LengthRule = LengthRule(70, 160, 150, 160)
    headings: HeadingRules = field(default_factory=HeadingRules)
    images: ImageRules = field(default_factory=ImageRules)
    links: LinkRules = field(default_factory=LinkRules)
    content: ContentRules = field(default_factory=ContentRules)
    performance: PerformanceRules = field(default_factory=PerformanceRules)
    sitemap: SitemapRules = field(default_factory=SitemapRules)


@dataclass(frozen=True)
class ScoreWeights:
    """Relative weight of each scoring category in the overall score."""
    title: float = 20
    meta_description: float = 10
    headings: float = 15
    images: float = 10
    links: float = 10
    canonical: float = 10
    open_graph: float = 5
    robots: float = 10
    content: float = 10

    @property
    def technical(self) -> float:
        """Blended weight of the canonical/OG/robots/content sub-categories."""
        return self.canonical + self.open_graph + self.robots + self.content


DEFAULT_RULES = SeoRules()
DEFAULT_WEIGHTS = ScoreWeights()

DEFAULT_USER_AGENT = "SEO-MCP-Bot/1.0 (+https://github.com/seo-mcp/seo-mcp)"
