"""Technical SEO audit module."""

from seo_mcp.modules.technical_audit.robots_analyzer import analyze_robots_txt
from seo_mcp.modules.technical_audit.robots_generator import generate_robots_txt
from seo_mcp.modules.technical_audit.sitemap_analyzer import analyze_sitemap

__all__ = ["analyze_robots_txt", "analyze_sitemap", "generate_robots_txt"]
