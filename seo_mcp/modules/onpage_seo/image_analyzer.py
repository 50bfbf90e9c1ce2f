"""Per-image audit of alt text, formats, dimensions and lazy loading."""

import logging
import re
from typing import Any, Optional
from urllib.parse import urlparse

from seo_mcp.constants import DEFAULT_RULES, SeoRules
from seo_mcp.utils.helpers import round_half_up
from seo_mcp.utils.html_parser import parse_html
from seo_mcp.utils.http_client import HttpFetcher, HttpResponse
from seo_mcp.utils.validators import get_file_extension, resolve_url

logger = logging.getLogger(__name__)

GENERIC_FILENAMES = {
    "image", "img", "photo", "picture", "pic",
    "screenshot", "screen", "untitled", "unnamed",
    "download", "file", "asset", "media",
}

_GENERIC_PATTERN = re.compile(
    r"^(img|image|photo|pic|dsc|dcim|screenshot|screen[-_]?shot)[-_]?\d*$", re.I
)
_HASH_PATTERN = re.compile(r"^[a-f0-9]{16,}$", re.I)
_FORMAT_HINTS = ("webp", "avif", "png", "jpg")


def extract_format(src: str) -> str:
    """Image format from the file extension, else from a CDN query hint."""
    ext = get_file_extension(src)
    if ext:
        return ext
    for fmt in _FORMAT_HINTS:
        if f"format={fmt}" in src or f"fm={fmt}" in src:
            return fmt
    return "unknown"


def evaluate_filename(src: str) -> str:
    """Classify the image filename as ``good`` or ``generic``."""
    try:
        path = urlparse(src).path
    except ValueError:
        return "generic"
    filename = path.rsplit("/", 1)[-1].split(".")[0].lower()

    if len(filename) <= 2:
        return "generic"
    if filename in GENERIC_FILENAMES or _GENERIC_PATTERN.match(filename):
        return "generic"
    if _HASH_PATTERN.match(filename) or filename.isdigit():
        return "generic"
    return "good"


def _parse_dimension(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    match = re.match(r"\s*(\d+)", value)
    if not match or int(match.group(1)) == 0:
        return None
    return int(match.group(1))


def collect_images(html: str, page_url: str, max_images: int = 100) -> list[dict[str, Any]]:
    """Per-image attributes for up to *max_images* ``<img>`` elements."""
    images: list[dict[str, Any]] = []
    for img in parse_html(html).find_all("img")[:max_images]:
        raw_src = img.get("src") or img.get("data-src") or ""
        if not raw_src:
            continue
        src = resolve_url(raw_src, page_url)
        images.append({
            "src": src,
            "alt": img.get("alt"),
            "width": _parse_dimension(img.get("width")),
            "height": _parse_dimension(img.get("height")),
            "loading": img.get("loading") or None,
            "format": extract_format(src),
            "filenameQuality": evaluate_filename(src),
        })
    return images


def summarize_images(
    images: list[dict[str, Any]],
    sizes_checked: bool = False,
    rules: SeoRules = DEFAULT_RULES,
) -> dict[str, Any]:
    """Aggregate counts and a 0-100 score for a list of image records."""
    total = len(images)
    missing_alt = sum(1 for i in images if i["alt"] is None)
    empty_alt = sum(1 for i in images if i["alt"] is not None and not i["alt"].strip())
    oversized = sum(
        1 for i in images
        if i.get("fileSize") is not None and i["fileSize"] > rules.images.max_file_size_bytes
    )
    non_modern = sum(
        1 for i in images
        if i["format"] != "unknown" and i["format"] not in rules.images.modern_formats
    )
    missing_dimensions = sum(1 for i in images if i["width"] is None or i["height"] is None)
    missing_lazy = sum(1 for i in images if i["loading"] != "lazy")

    score = 100
    if total > 0:
        score -= round_half_up(missing_alt / total * 30)
        score -= round_half_up(missing_dimensions / total * 15)
        score -= round_half_up(non_modern / total * 15)
        if sizes_checked:
            score -= round_half_up(oversized / total * 20)
        score -= round_half_up(missing_lazy / total * 10)

    return {
        "total": total,
        "missingAlt": missing_alt,
        "emptyAlt": empty_alt,
        "oversized": oversized,
        "nonModernFormat": non_modern,
        "missingDimensions": missing_dimensions,
        "missingLazyLoad": missing_lazy,
        "score": max(0, min(100, score)),
    }


def _content_length(response: Optional[HttpResponse]) -> Optional[int]:
    if response is None:
        return None
    length = response.headers.get("content-length", "")
    return int(length) if length.isdigit() else None


async def analyze_images(
    url: str,
    check_file_size: bool = False,
    max_images: int = 100,
    fetcher: Optional[HttpFetcher] = None,
    rules: SeoRules = DEFAULT_RULES,
) -> dict[str, Any]:
    """Audit every image on *url* and return per-image details plus a summary."""
    logger.info("Analyzing images: %s", url)
    fetcher = fetcher or HttpFetcher()
    response = await fetcher.get(url)
    images = collect_images(response.body, url, max_images)

    if check_file_size and images:
        responses = await fetcher.head_many([img["src"] for img in images])
        for img, response in zip(images, responses):
            img["fileSize"] = _content_length(response)

    summary = summarize_images(images, sizes_checked=check_file_size, rules=rules)
    logger.info("Image analysis complete: %d images, score %d", summary["total"], summary["score"])
    return {"images": images, "summary": summary}
