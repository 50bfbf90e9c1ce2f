"""JSON-LD generation and validation against Google's rich-result requirements."""

import json
import logging
import re
from datetime import datetime
from typing import Any, Optional

logger = logging.getLogger(__name__)

SCHEMA_CONTEXT = "https://schema.org"

# ---------------------------------------------------------------------------
# Field registries used by validate_schema()
# ---------------------------------------------------------------------------

_REQUIRED_FIELDS: dict[str, list[str]] = {
    "Article": ["headline", "author", "datePublished"],
    "BlogPosting": ["headline", "author", "datePublished"],
    "NewsArticle": ["headline", "author", "datePublished"],
    "Product": ["name"],
    "FAQPage": ["mainEntity"],
    "HowTo": ["name", "step"],
    "LocalBusiness": ["name", "address"],
    "Organization": ["name"],
    "Person": ["name"],
    "BreadcrumbList": ["itemListElement"],
    "WebSite": ["name", "url"],
    "Event": ["name", "startDate", "location"],
    "Recipe": ["name", "image"],
    "VideoObject": ["name", "description", "thumbnailUrl", "uploadDate"],
    "Course": ["name", "description", "provider"],
    "SoftwareApplication": ["name"],
    "Review": ["itemReviewed", "author"],
    "JobPosting": ["title", "description", "datePosted", "hiringOrganization"],
}

_RECOMMENDED_FIELDS: dict[str, list[str]] = {
    "Article": ["image", "dateModified", "publisher", "description"],
    "BlogPosting": ["image", "dateModified", "publisher", "description"],
    "NewsArticle": ["image", "dateModified", "publisher"],
    "Product": ["image", "description", "offers", "review", "aggregateRating", "brand", "sku"],
    "HowTo": ["description", "image", "totalTime", "estimatedCost", "supply", "tool"],
    "LocalBusiness": ["telephone", "openingHoursSpecification", "geo", "image", "priceRange", "url"],
    "Organization": ["url", "logo", "sameAs", "contactPoint"],
    "Person": ["url", "image", "jobTitle", "sameAs"],
    "WebSite": ["potentialAction"],
    "Event": ["description", "image", "endDate", "offers", "performer", "organizer"],
    "Recipe": ["author", "datePublished", "description", "prepTime", "cookTime",
               "recipeIngredient", "recipeInstructions"],
    "VideoObject": ["contentUrl", "duration", "embedUrl"],
    "Course": ["offers", "hasCourseInstance"],
    "SoftwareApplication": ["offers", "aggregateRating", "operatingSystem", "applicationCategory"],
    "Review": ["reviewRating", "datePublished"],
    "JobPosting": ["validThrough", "employmentType", "jobLocation", "baseSalary"],
}

# Types Google can render as a rich result, and the result they produce
_RICH_RESULT_TYPES: dict[str, str] = {
    "Article": "Article",
    "BlogPosting": "Article",
    "NewsArticle": "Article",
    "Product": "Product snippet",
    "FAQPage": "FAQ",
    "HowTo": "How-to",
    "LocalBusiness": "Local business",
    "Organization": "Logo",
    "BreadcrumbList": "Breadcrumb",
    "WebSite": "Sitelinks search box",
    "Event": "Event",
    "Recipe": "Recipe",
    "VideoObject": "Video",
    "Course": "Course",
    "SoftwareApplication": "Software app",
    "Review": "Review snippet",
    "JobPosting": "Job posting",
}

_DATE_FIELDS = ("datePublished", "dateModified", "uploadDate", "startDate", "endDate",
                "datePosted", "validThrough")


def schema_type_of(schema: dict) -> Optional[str]:
    """The primary ``@type`` of *schema*; the first entry when it is a list."""
    value = schema.get("@type")
    if isinstance(value, list):
        value = value[0] if value else None
    return str(value) if value else None


def validate_schema(schema: dict, check_google: bool = True) -> dict[str, Any]:
    """Check *schema* for an ``@type`` and Google's required fields.

    With *check_google* off only the ``@type`` check runs. A schema is
    ``googleEligible`` when it has no errors and its type maps to a rich
    result.
    """
    errors: list[str] = []
    warnings: list[str] = []

    schema_type = schema_type_of(schema)
    if schema_type is None:
        errors.append("Missing @type property")

    rich_result = None
    if schema_type and check_google:
        for fld in _REQUIRED_FIELDS.get(schema_type, []):
            if schema.get(fld) in (None, "", [], {}):
                errors.append("Missing required property: " + fld)
        for fld in _RECOMMENDED_FIELDS.get(schema_type, []):
            if fld not in schema:
                warnings.append("Missing recommended property: " + fld)
        errors.extend(_type_specific_errors(schema_type, schema, warnings))
        rich_result = _RICH_RESULT_TYPES.get(schema_type)

    valid = not errors
    logger.debug(
        "Schema validation for %s: valid=%s, errors=%d, warnings=%d",
        schema_type, valid, len(errors), len(warnings),
    )
    return {
        "valid": valid,
        "errors": errors,
        "warnings": warnings,
        "googleEligible": valid and rich_result is not None,
        "richResultType": rich_result,
    }


def _type_specific_errors(schema_type: str, schema: dict, warnings: list[str]) -> list[str]:
    errors: list[str] = []

    if schema_type in ("Article", "BlogPosting", "NewsArticle"):
        headline = schema.get("headline")
        if isinstance(headline, str) and len(headline) > 110:
            warnings.append("Headline exceeds 110 characters (Google may truncate)")
        published = schema.get("datePublished")
        if isinstance(published, str) and published and not _is_valid_date(published):
            errors.append("datePublished is not a valid ISO 8601 date")

    if schema_type == "FAQPage":
        entities = schema.get("mainEntity")
        if isinstance(entities, list):
            for i, entity in enumerate(entities):
                if not isinstance(entity, dict) or entity.get("@type") != "Question":
                    errors.append("mainEntity[" + str(i) + "] must have @type Question")

    if schema_type == "Product":
        offers = schema.get("offers")
        if isinstance(offers, dict):
            if "price" not in offers:
                warnings.append("Product offer missing price")
            if "priceCurrency" not in offers:
                warnings.append("Product offer missing priceCurrency")

    return errors


def generate_schema(schema_type: str, data: dict, validate: bool = True) -> dict[str, Any]:
    """Build a JSON-LD document of *schema_type* from *data*.

    Date properties given in common human formats ("March 5, 2026",
    "03/05/2026") are normalised to ISO 8601. Keys in *data* win over the
    generated ``@context`` and ``@type``.

    Returns:
        Dict with ``jsonLd``, ``htmlSnippet`` (a ready-to-paste script tag)
        and ``validation``.
    """
    json_ld: dict[str, Any] = {"@context": SCHEMA_CONTEXT, "@type": schema_type, **data}
    for fld in _DATE_FIELDS:
        if isinstance(json_ld.get(fld), str):
            json_ld[fld] = _normalise_date(json_ld[fld])

    if validate:
        validation = validate_schema(json_ld)
    else:
        validation = {
            "valid": True,
            "errors": [],
            "warnings": [],
            "googleEligible": False,
            "richResultType": None,
        }

    snippet = '<script type="application/ld+json">\n' + json.dumps(json_ld, indent=2) + "\n</script>"
    logger.info("Generated %s schema (%d properties)", schema_type, len(json_ld))
    return {"jsonLd": json_ld, "htmlSnippet": snippet, "validation": validation}


def _normalise_date(date_str: str) -> str:
    """Try to normalise a date string to ISO 8601."""
    if not date_str or re.match(r"\d{4}-\d{2}-\d{2}", date_str):
        return date_str
    for fmt in ("%B %d, %Y", "%b %d, %Y", "%m/%d/%Y", "%d/%m/%Y"):
        try:
            return datetime.strptime(date_str, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return date_str


def _is_valid_date(date_str: str) -> bool:
    if re.match(r"\d{4}-\d{2}-\d{2}", date_str):
        return True
    try:
        datetime.fromisoformat(date_str.replace("Z", "+00:00"))
        return True
    except ValueError:
        return False
