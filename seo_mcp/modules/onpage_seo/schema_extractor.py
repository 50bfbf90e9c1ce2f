"""Structured-data extraction: JSON-LD blocks and microdata items on a page."""

import logging
from typing import Any, Optional

from bs4 import BeautifulSoup

from seo_mcp.modules.onpage_seo.schema_generator import schema_type_of, validate_schema
from seo_mcp.utils.html_parser import collapse_whitespace, extract_json_ld, parse_html
from seo_mcp.utils.http_client import HttpFetcher

logger = logging.getLogger(__name__)


def _json_ld_entities(soup: BeautifulSoup) -> list[dict]:
    """JSON-LD entities with ``@graph`` containers expanded in place."""
    entities: list[dict] = []
    for block in extract_json_ld(soup):
        graph = block.get("@graph")
        if isinstance(graph, list):
            entities.extend(item for item in graph if isinstance(item, dict))
        else:
            entities.append(block)
    return entities


def _microdata_items(soup: BeautifulSoup) -> list[dict]:
    items: list[dict] = []
    for element in soup.select("[itemscope]"):
        item_type = (element.get("itemtype") or "").rstrip("/").rsplit("/", 1)[-1]
        properties: dict[str, Any] = {}
        for prop in element.select("[itemprop]"):
            name = prop.get("itemprop")
            value = prop.get("content") or collapse_whitespace(prop.get_text())
            if name:
                properties[name] = value
        if properties:
            items.append({"@type": item_type or "Unknown", **properties})
    return items


def _record(fmt: str, raw: dict, validate_google: bool) -> dict[str, Any]:
    return {
        "format": fmt,
        "type": schema_type_of(raw) or "Unknown",
        "raw": raw,
        "validation": validate_schema(raw, check_google=validate_google),
    }


def extract_schema_html(html: str, validate_google: bool = True) -> dict[str, Any]:
    """Collect and validate every structured-data item in *html*.

    Invalid JSON-LD blocks are skipped. Microdata items without any
    ``itemprop`` are ignored.
    """
    soup = parse_html(html)
    schemas = [_record("json-ld", raw, validate_google) for raw in _json_ld_entities(soup)]
    schemas.extend(_record("microdata", raw, validate_google) for raw in _microdata_items(soup))

    types: list[str] = []
    for schema in schemas:
        if schema["type"] not in types:
            types.append(schema["type"])

    return {
        "schemas": schemas,
        "summary": {
            "totalSchemas": len(schemas),
            "types": types,
            "googleEligibleCount": sum(1 for s in schemas if s["validation"]["googleEligible"]),
            "errorCount": sum(len(s["validation"]["errors"]) for s in schemas),
            "warningCount": sum(len(s["validation"]["warnings"]) for s in schemas),
        },
    }


async def extract_schema(
    url: str,
    validate_google: bool = True,
    fetcher: Optional[HttpFetcher] = None,
) -> dict[str, Any]:
    """Fetch *url* and extract its JSON-LD and microdata."""
    logger.info("Extracting structured data: %s", url)
    fetcher = fetcher or HttpFetcher()
    response = await fetcher.get(url)

    result = {"url": response.url, **extract_schema_html(response.body, validate_google)}
    logger.info(
        "Schema extraction complete: %d schemas, %d errors",
        result["summary"]["totalSchemas"], result["summary"]["errorCount"],
    )
    return result
