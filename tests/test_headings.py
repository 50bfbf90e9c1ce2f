"""Tests for heading outline reconstruction and heading issue detection."""

import pytest

from seo_mcp.constants import HeadingRules, SeoRules
from seo_mcp.models.headings import HeadingLevel, HeadingObservation, Severity
from seo_mcp.modules.onpage_seo.headings import (
    analyze_heading_observations,
    analyze_headings,
    analyze_headings_html,
    build_heading_tree,
    check_keyword_presence,
    count_by_level,
    extract_heading_observations,
    identify_issues,
)
from seo_mcp.utils.html_parser import parse_html


def _obs(*items):
    return [HeadingObservation(tag, text, order) for tag, text, order in items]


def _issue_types(analysis):
    return [issue.type for issue in analysis.issues]


def _walk(nodes):
    for node in nodes:
        yield node
        yield from _walk(node.children)


# ===========================================================================
# 1. Value types
# ===========================================================================
class TestHeadingTypes:

    def test_level_from_tag(self):
        assert HeadingLevel.from_tag("h3") is HeadingLevel.H3
        assert HeadingLevel.from_tag("H1") is HeadingLevel.H1
        assert HeadingLevel.H4.tag == "h4"
        assert HeadingLevel.H4.label == "H4"

    def test_observation_derives_level(self):
        obs = HeadingObservation("h2", "Section", 1)
        assert obs.level is HeadingLevel.H2
        assert obs.to_dict() == {"tag": "h2", "text": "Section", "order": 1}

    def test_observation_is_immutable(self):
        obs = HeadingObservation("h2", "Section", 1)
        with pytest.raises(AttributeError):
            obs.text = "changed"


# ===========================================================================
# 2. Tree builder
# ===========================================================================
class TestBuildHeadingTree:

    def test_nested_outline(self):
        tree = build_heading_tree(_obs(("h1", "Title", 1), ("h2", "Sec A", 2),
                                       ("h3", "Sub", 3), ("h2", "Sec B", 4)))
        assert len(tree) == 1
        root = tree[0]
        assert root.tag == "h1"
        assert [c.text for c in root.children] == ["Sec A", "Sec B"]
        assert [c.text for c in root.children[0].children] == ["Sub"]
        assert root.children[1].children == []

    def test_equal_levels_are_siblings(self):
        tree = build_heading_tree(_obs(("h1", "T", 1), ("h2", "A", 2), ("h2", "B", 3)))
        assert [c.text for c in tree[0].children] == ["A", "B"]
        assert all(not c.children for c in tree[0].children)

    def test_document_starting_below_h1_has_no_synthetic_root(self):
        tree = build_heading_tree(_obs(("h3", "Deep", 1), ("h4", "Deeper", 2), ("h2", "Up", 3)))
        assert [n.tag for n in tree] == ["h3", "h2"]
        assert tree[0].children[0].text == "Deeper"

    def test_multiple_h1_are_independent_roots(self):
        tree = build_heading_tree(_obs(("h1", "One", 1), ("h2", "A", 2), ("h1", "Two", 3)))
        assert [n.text for n in tree] == ["One", "Two"]
        assert tree[1].children == []

    def test_empty_input(self):
        assert build_heading_tree([]) == []

    @pytest.mark.parametrize("tags", [
        ["h1", "h2", "h3", "h2", "h4", "h1", "h6", "h2"],
        ["h6", "h5", "h4", "h3", "h2", "h1"],
        ["h2", "h2", "h3", "h3", "h1", "h3"],
    ])
    def test_children_ordered_and_deeper(self, tags):
        flat = _obs(*[(tag, f"t{i}", i) for i, tag in enumerate(tags, start=1)])
        tree = build_heading_tree(flat)
        nodes = list(_walk(tree))
        assert len(nodes) == len(flat)
        for node in nodes:
            orders = [c.order for c in node.children]
            assert orders == sorted(orders)
            assert all(c.level > node.level for c in node.children)

    def test_to_dict_is_recursive(self):
        tree = build_heading_tree(_obs(("h1", "T", 1), ("h2", "A", 2)))
        assert tree[0].to_dict() == {
            "tag": "h1", "text": "T", "order": 1,
            "children": [{"tag": "h2", "text": "A", "order": 2, "children": []}],
        }


# ===========================================================================
# 3. Issue detection
# ===========================================================================
class TestIdentifyIssues:

    def test_contiguous_levels_have_no_issues(self):
        flat = _obs(("h1", "Title", 1), ("h2", "Sec A", 2), ("h3", "Sub", 3), ("h2", "Sec B", 4))
        assert count_by_level(flat) == {"h1": 1, "h2": 2, "h3": 1}
        assert identify_issues(flat, count_by_level(flat)) == []

    def test_empty_h1_is_not_missing(self):
        flat = _obs(("h1", "", 1))
        issues = identify_issues(flat, count_by_level(flat))
        assert [i.type for i in issues] == ["empty_heading"]
        assert issues[0].detail == "Empty H1 heading at position 1"

    def test_missing_h1_and_wrong_first_heading(self):
        flat = _obs(("h2", "Only", 1))
        issues = identify_issues(flat, count_by_level(flat))
        assert [(i.type, i.severity) for i in issues] == [
            ("missing_h1", Severity.CRITICAL),
            ("no_h1_first", Severity.MEDIUM),
        ]
        assert issues[1].detail == "First heading is H2, expected H1"

    def test_single_skipped_level(self):
        flat = _obs(("h1", "T", 1), ("h2", "A", 2), ("h4", "B", 3))
        issues = identify_issues(flat, count_by_level(flat))
        assert len(issues) == 1
        assert issues[0].type == "skipped_level"
        assert issues[0].detail == "Heading level skipped: H3 (found H2 followed by H4)"

    def test_multi_level_gap_names_range(self):
        flat = _obs(("h1", "T", 1), ("h5", "Deep", 2))
        issues = identify_issues(flat, count_by_level(flat))
        assert issues[0].detail == "Heading level skipped: H2-H4 (found H1 followed by H5)"

    def test_skips_judged_on_distinct_levels_not_sequence(self):
        # h1 -> h3 in sequence, but h2 appears later so the set {1,2,3} is contiguous
        flat = _obs(("h1", "T", 1), ("h3", "A", 2), ("h2", "B", 3))
        assert identify_issues(flat, count_by_level(flat)) == []

    def test_multiple_h1(self):
        flat = _obs(("h1", "A", 1), ("h1", "B", 2), ("h1", "C", 3))
        issues = identify_issues(flat, count_by_level(flat))
        assert issues[0].type == "multiple_h1"
        assert issues[0].severity is Severity.HIGH
        assert issues[0].detail == "Page has 3 H1 headings (recommended: 1)"

    def test_max_h1_is_configurable(self):
        flat = _obs(("h1", "A", 1), ("h1", "B", 2))
        assert identify_issues(flat, count_by_level(flat), max_h1_count=2) == []

    def test_issue_order(self):
        flat = _obs(("h3", "", 1), ("h1", "A", 2), ("h1", "B", 3), ("h6", "", 4))
        types = [i.type for i in identify_issues(flat, count_by_level(flat))]
        assert types == ["multiple_h1", "empty_heading", "empty_heading",
                         "skipped_level", "skipped_level", "no_h1_first"]

    def test_no_headings(self):
        issues = identify_issues([], {})
        assert [i.type for i in issues] == ["missing_h1"]

    @pytest.mark.parametrize("h1_count", [0, 1, 2, 5])
    def test_missing_and_multiple_h1_mutually_exclusive(self, h1_count):
        flat = _obs(*[("h1", "x", i) for i in range(1, h1_count + 1)])
        types = {i.type for i in identify_issues(flat, count_by_level(flat))}
        assert not {"missing_h1", "multiple_h1"} <= types


# ===========================================================================
# 4. Keyword presence
# ===========================================================================
class TestKeywordPresence:

    def test_case_insensitive_match(self):
        flat = _obs(("h1", "Best Running Shoes", 1), ("h2", "Running shoes for trails", 2),
                    ("h2", "Sizing", 3), ("h3", "running SHOES care", 4))
        presence = check_keyword_presence(flat, "running shoes")
        assert presence.in_h1 is True
        assert presence.in_h2 == ("Running shoes for trails",)
        assert presence.count == 3

    def test_keyword_missing_from_h1_adds_issue_last(self):
        flat = _obs(("h1", "Guide", 1), ("h2", "Running shoes", 2))
        analysis = analyze_heading_observations(flat, target_keyword="running shoes")
        assert _issue_types(analysis)[-1] == "keyword_missing_h1"
        assert analysis.issues[-1].detail == 'Target keyword "running shoes" not found in H1'
        assert analysis.to_dict()["keywordPresence"] == {
            "inH1": False, "inH2": ["Running shoes"], "count": 1,
        }

    def test_no_keyword_omits_presence(self):
        analysis = analyze_heading_observations(_obs(("h1", "Guide", 1)))
        payload = analysis.to_dict()
        assert "keywordPresence" not in payload
        assert list(payload) == ["headingTree", "flatList", "counts", "issues"]


# ===========================================================================
# 5. HTML extraction and fetch entry point
# ===========================================================================
class TestHeadingExtraction:

    def test_extract_collapses_whitespace(self):
        soup = parse_html("<h1>  Hello \n\n  <em>world</em> </h1><p>x</p><h2>Two</h2>")
        flat = extract_heading_observations(soup)
        assert [(o.tag, o.text, o.order) for o in flat] == [("h1", "Hello world", 1), ("h2", "Two", 2)]

    def test_analyze_html(self, bare_html):
        analysis = analyze_headings_html(bare_html)
        assert _issue_types(analysis) == ["missing_h1", "skipped_level", "no_h1_first"]
        assert analysis.counts == {"h2": 1, "h4": 1}

    def test_rules_flow_through(self):
        rules = SeoRules(headings=HeadingRules(max_h1_count=3))
        analysis = analyze_headings_html("<h1>a</h1><h1>b</h1>", rules=rules)
        assert analysis.issues == []

    @pytest.mark.asyncio
    async def test_analyze_headings_fetches_page(self, mock_fetcher):
        analysis = await analyze_headings("https://example.com/", "running shoes", fetcher=mock_fetcher)
        mock_fetcher.get.assert_awaited_once_with("https://example.com/")
        assert [o.tag for o in analysis.flat_list] == ["h1", "h2", "h3", "h2"]
        assert analysis.keyword_presence.in_h1 is True
        assert analysis.issues == []
