"""On-page SEO module: headings, scoring, page, image, link and structured-data analysis."""

from seo_mcp.modules.onpage_seo.headings import analyze_headings, build_heading_tree, identify_issues
from seo_mcp.modules.onpage_seo.image_analyzer import analyze_images
from seo_mcp.modules.onpage_seo.link_analyzer import analyze_links
from seo_mcp.modules.onpage_seo.meta_suggestions import generate_meta_suggestions
from seo_mcp.modules.onpage_seo.page_analyzer import PageAnalyzer
from seo_mcp.modules.onpage_seo.schema_extractor import extract_schema
from seo_mcp.modules.onpage_seo.schema_generator import generate_schema, validate_schema
from seo_mcp.modules.onpage_seo.scoring import calculate_seo_score

__all__ = [
    "PageAnalyzer",
    "analyze_headings",
    "analyze_images",
    "analyze_links",
    "build_heading_tree",
    "calculate_seo_score",
    "extract_schema",
    "generate_meta_suggestions",
    "generate_schema",
    "identify_issues",
    "validate_schema",
]
