"""Composite on-page SEO score.

Each category scorer is a pure function of a :class:`PageAnalysis`
returning 0-100.  Title, meta, headings, images and links carry their
own weight; canonical, Open Graph, robots and content are blended into a
single ``technical`` category whose weight is the sum of theirs.
"""

from typing import Optional

from seo_mcp.constants import DEFAULT_RULES, DEFAULT_WEIGHTS, LengthRule, ScoreWeights, SeoRules
from seo_mcp.models.page import PageAnalysis, SeoScore
from seo_mcp.utils.helpers import round_half_up


def _clamp(score: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, score))


def _score_length(text: Optional[str], length: int, issue_count: int, rule: LengthRule) -> int:
    if not text:
        return 0

    score = 60
    if rule.ideal_min_length <= length <= rule.ideal_max_length:
        score = 100
    elif rule.min_length <= length <= rule.max_length:
        score = 80
    elif length > rule.max_length:
        score = 50
    elif 0 < length < rule.min_length:
        score = 40

    score -= issue_count * 10
    return _clamp(score)


# ---------------------------------------------------------------------------
# Category scorers
# ---------------------------------------------------------------------------

def score_title(analysis: PageAnalysis, rules: SeoRules = DEFAULT_RULES) -> int:
    title = analysis.title
    return _score_length(title.text, title.length, len(title.issues), rules.title)


def score_meta_description(analysis: PageAnalysis, rules: SeoRules = DEFAULT_RULES) -> int:
    meta = analysis.meta_description
    return _score_length(meta.text, meta.length, len(meta.issues), rules.meta_description)


def score_headings(analysis: PageAnalysis, rules: SeoRules = DEFAULT_RULES) -> int:
    headings = analysis.headings
    score = 100

    if headings.h1_count == 0:
        score -= 40
    elif headings.h1_count > rules.headings.max_h1_count:
        score -= 20

    if headings.total_headings == 0:
        score -= 30

    score -= len(headings.issues) * 10
    return _clamp(score)


def score_images(analysis: PageAnalysis, rules: SeoRules = DEFAULT_RULES) -> int:
    images = analysis.images
    if images.total == 0:
        return 100

    score = 100
    missing_ratio = images.missing_alt / images.total
    if missing_ratio > 0.5:
        score -= 40
    elif missing_ratio > 0.2:
        score -= 20
    elif missing_ratio > 0:
        score -= 10

    score -= len(images.issues) * 5
    return _clamp(score)


def score_links(analysis: PageAnalysis, rules: SeoRules = DEFAULT_RULES) -> int:
    links = analysis.links
    score = 100

    if links.internal == 0:
        score -= 20

    total = links.internal + links.external
    if total > rules.links.max_per_page:
        score -= 15
    if total == 0:
        score -= 30

    return _clamp(score)


def score_canonical(analysis: PageAnalysis, rules: SeoRules = DEFAULT_RULES) -> int:
    canonical = analysis.canonical
    if not canonical.url:
        return 30
    return _clamp(100 - len(canonical.issues) * 15)


def score_open_graph(analysis: PageAnalysis, rules: SeoRules = DEFAULT_RULES) -> int:
    og = analysis.open_graph
    score = 0
    if og.title:
        score += 25
    if og.description:
        score += 25
    if og.image:
        score += 25
    if og.url:
        score += 15
    if og.type:
        score += 10

    score -= len(og.issues) * 10
    return _clamp(score)


def score_robots(analysis: PageAnalysis, rules: SeoRules = DEFAULT_RULES) -> int:
    return 100 if analysis.robots.is_indexable else 20


def score_content(analysis: PageAnalysis, rules: SeoRules = DEFAULT_RULES) -> int:
    content = analysis.content
    if content is None:
        return 50

    score = 100
    if content.word_count < rules.content.thin_content_threshold:
        score -= 40
    elif content.word_count < rules.content.min_word_count_homepage:
        score -= 20
    return _clamp(score)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def score_categories(
    analysis: PageAnalysis, rules: SeoRules = DEFAULT_RULES
) -> dict[str, int]:
    """Raw score of every category, technical sub-categories included."""
    return {
        "title": score_title(analysis, rules),
        "meta": score_meta_description(analysis, rules),
        "headings": score_headings(analysis, rules),
        "images": score_images(analysis, rules),
        "links": score_links(analysis, rules),
        "canonical": score_canonical(analysis, rules),
        "open_graph": score_open_graph(analysis, rules),
        "robots": score_robots(analysis, rules),
        "content": score_content(analysis, rules),
    }


def calculate_seo_score(
    analysis: PageAnalysis,
    rules: SeoRules = DEFAULT_RULES,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> SeoScore:
    """Blend category scores into one weighted 0-100 result.

    The technical blend and the overall score round halves up.
    """
    raw = score_categories(analysis, rules)

    technical_weight = weights.technical
    technical = 0
    if technical_weight > 0:
        technical = round_half_up(
            (
                raw["canonical"] * weights.canonical
                + raw["open_graph"] * weights.open_graph
                + raw["robots"] * weights.robots
                + raw["content"] * weights.content
            ) / technical_weight
        )

    categories = {
        "title": (raw["title"], weights.title),
        "meta": (raw["meta"], weights.meta_description),
        "headings": (raw["headings"], weights.headings),
        "images": (raw["images"], weights.images),
        "links": (raw["links"], weights.links),
        "technical": (technical, technical_weight),
    }

    total_weight = sum(weight for _, weight in categories.values())
    overall = 0
    if total_weight > 0:
        overall = round_half_up(
            sum(score * weight for score, weight in categories.values()) / total_weight
        )

    return SeoScore(
        overall=_clamp(overall),
        breakdown={name: score for name, (score, _) in categories.items()},
    )
