"""Heading hierarchy value types."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Optional


class HeadingLevel(IntEnum):
    """Numeric heading level; lower value ranks higher in the outline."""

    H1 = 1
    H2 = 2
    H3 = 3
    H4 = 4
    H5 = 5
    H6 = 6

    @classmethod
    def from_tag(cls, tag: str) -> "HeadingLevel":
        return cls(int(tag.strip().lower()[1]))

    @property
    def tag(self) -> str:
        return "h" + str(self.value)

    @property
    def label(self) -> str:
        return "H" + str(self.value)


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class SeoIssue:
    """One detected problem. ``type`` is a stable snake_case issue code."""

    type: str
    severity: Severity
    detail: str

    def to_dict(self) -> dict[str, str]:
        return {
            "type": self.type,
            "severity": self.severity.value,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class HeadingObservation:
    """A heading element seen while scanning a document in source order."""

    tag: str
    text: str
    order: int
    level: HeadingLevel = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", HeadingLevel.from_tag(self.tag))

    def to_dict(self) -> dict[str, Any]:
        return {"tag": self.tag, "text": self.text, "order": self.order}


@dataclass
class HeadingNode:
    tag: str
    text: str
    order: int
    level: HeadingLevel
    children: list["HeadingNode"] = field(default_factory=list)

    @classmethod
    def from_observation(cls, obs: HeadingObservation) -> "HeadingNode":
        return cls(tag=obs.tag, text=obs.text, order=obs.order, level=obs.level)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "text": self.text,
            "order": self.order,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class KeywordPresence:
    in_h1: bool
    in_h2: tuple[str, ...]
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"inH1": self.in_h1, "inH2": list(self.in_h2), "count": self.count}


@dataclass
class HeadingAnalysis:
    """Result payload of the ``analyze_headings`` tool."""

    heading_tree: list[HeadingNode]
    flat_list: list[HeadingObservation]
    counts: dict[str, int]
    issues: list[SeoIssue]
    keyword_presence: Optional[KeywordPresence] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "headingTree": [node.to_dict() for node in self.heading_tree],
            "flatList": [obs.to_dict() for obs in self.flat_list],
            "counts": dict(self.counts),
        }
        if self.keyword_presence is not None:
            result["keywordPresence"] = self.keyword_presence.to_dict()
        result["issues"] = [issue.to_dict() for issue in self.issues]
        return result
