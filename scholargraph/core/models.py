"""Graph entities shared by the store, the suggestion overlay and the views."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

QUARTILES = ("Q1", "Q2", "Q3", "Q4")


class NodeKind(str, Enum):
    PAPER = "Paper"
    NOTE = "Note"
    CONCEPT = "Concept"

    @classmethod
    def parse(cls, value: Any) -> NodeKind:
        """Accept enum members, exact values or any casing of them."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for kind in cls:
            if kind.value.lower() == text:
                return kind
        raise ValueError(f"Unknown node kind: {value!r}")


class Direction(str, Enum):
    OUTGOING = "Outgoing"
    INCOMING = "Incoming"


@dataclass
class Badge:
    """Classification tag on a paper (index, quartile, impact factor)."""
    type: str
    partition: str | None = None
    impact_factor: float | None = None

    @property
    def has_partition(self) -> bool:
        return bool(self.partition) or self.type in QUARTILES

    def matches(self, value: str) -> bool:
        return value in (self.type, self.partition)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.partition:
            data["partition"] = self.partition
        if self.impact_factor is not None:
            data["if"] = self.impact_factor
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> Badge:
        if isinstance(data, str):
            return cls(type=data)
        impact = data.get("impact_factor", data.get("if"))
        return cls(
            type=str(data.get("type", "")),
            partition=data.get("partition") or None,
            impact_factor=float(impact) if impact is not None else None,
        )


def today() -> str:
    return date.today().isoformat()


@dataclass
class Node:
    """A paper, free-form note or derived concept."""
    id: str
    label: str
    kind: NodeKind
    content: str = ""
    added_date: str = field(default_factory=today)
    year: int | None = None
    badges: list[Badge] = field(default_factory=list)
    group: str = ""
    starred: bool = False
    is_suggestion: bool = False
    reason: str | None = None  # suggestion nodes only

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "type": self.kind.value,
            "content": self.content,
            "addedDate": self.added_date,
            "group": self.group,
            "isStarred": self.starred,
            "isSuggestion": self.is_suggestion,
        }
        if self.year is not None:
            data["year"] = self.year
        if self.badges:
            data["badges"] = [b.to_dict() for b in self.badges]
        if self.reason:
            data["reason"] = self.reason
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        year = data.get("year")
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", "")),
            kind=NodeKind.parse(data.get("type", data.get("kind", NodeKind.CONCEPT))),
            content=data.get("content") or "",
            added_date=data.get("addedDate") or data.get("added_date") or today(),
            year=int(year) if year not in (None, "") else None,
            badges=[Badge.from_dict(b) for b in data.get("badges") or []],
            group=data.get("group") or "",
            starred=bool(data.get("isStarred", data.get("starred", False))),
            is_suggestion=bool(data.get("isSuggestion", data.get("is_suggestion", False))),
            reason=data.get("reason") or None,
        )


@dataclass
class Link:
    """Directed, labeled relation between two node ids."""
    source: str
    target: str
    label: str = ""
    is_suggestion: bool = False
    reason: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.source, self.target)

    def touches(self, node_id: str) -> bool:
        return node_id in (self.source, self.target)

    def other_end(self, node_id: str) -> str:
        return self.target if node_id == self.source else self.source

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "source": self.source,
            "target": self.target,
            "label": self.label,
            "isSuggestion": self.is_suggestion,
        }
        if self.reason:
            data["reason"] = self.reason
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Link:
        return cls(
            source=str(data["source"]),
            target=str(data["target"]),
            label=data.get("label") or "",
            is_suggestion=bool(data.get("isSuggestion", data.get("is_suggestion", False))),
            reason=data.get("reason") or None,
        )


@dataclass
class RelatedLink:
    """A visible link seen from one of its endpoints."""
    link: Link
    direction: Direction
    other: Node
