"""Filter & search pipeline: derives the visible node/link set."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from .models import Link, Node

logger = logging.getLogger(__name__)

ALL = "All"
DEFAULT_OLDER_THAN = 2020


class YearMode(str, Enum):
    ALL = "all"
    EXACT = "exact"
    OLDER = "older"


@dataclass(frozen=True)
class YearFilter:
    mode: YearMode = YearMode.ALL
    year: int | None = None

    @classmethod
    def exact(cls, year: int) -> YearFilter:
        return cls(YearMode.EXACT, int(year))

    @classmethod
    def older_than(cls, threshold: int = DEFAULT_OLDER_THAN) -> YearFilter:
        return cls(YearMode.OLDER, int(threshold))

    @property
    def active(self) -> bool:
        return self.mode is not YearMode.ALL

    def passes(self, node: Node) -> bool:
        if self.mode is YearMode.ALL:
            return True
        if node.year is None:
            return False
        if self.mode is YearMode.EXACT:
            return node.year == self.year
        return node.year < (self.year if self.year is not None else DEFAULT_OLDER_THAN)


@dataclass
class FilterState:
    query: str = ""
    partition: str = ALL
    year: YearFilter = field(default_factory=YearFilter)
    starred_only: bool = False
    show_suggestions: bool = False


# ---- the four standard predicates ----------------------------------------
# Each is a pure (node, state) -> bool; an inactive filter always passes.

def matches_query(node: Node, state: FilterState) -> bool:
    needle = state.query.strip().lower()
    if not needle:
        return True
    return needle in node.label.lower() or needle in (node.content or "").lower()


def matches_partition(node: Node, state: FilterState) -> bool:
    if not state.partition or state.partition == ALL:
        return True
    return any(b.matches(state.partition) for b in node.badges)


def matches_year(node: Node, state: FilterState) -> bool:
    return state.year.passes(node)


def matches_starred(node: Node, state: FilterState) -> bool:
    return node.starred or not state.starred_only


STANDARD_FILTERS: tuple[Callable[[Node, FilterState], bool], ...] = (
    matches_query,
    matches_partition,
    matches_year,
    matches_starred,
)


class SearchStatus(str, Enum):
    NOT_SEARCHED = "not_searched"
    SEARCHING = "searching"
    RESULTS = "results"


class SemanticSearch:
    """Ticketed semantic override; the newest request wins.

    ``results is None`` means no semantic result is active, while an empty
    list is a real "no matches" answer.
    """

    def __init__(self):
        self.query: str = ""
        self.results: list[str] | None = None
        self._latest_ticket = 0
        self._pending: set[int] = set()

    @property
    def status(self) -> SearchStatus:
        if self._latest_ticket in self._pending:
            return SearchStatus.SEARCHING
        if self.results is None:
            return SearchStatus.NOT_SEARCHED
        return SearchStatus.RESULTS

    @property
    def active(self) -> bool:
        return self.results is not None

    def begin(self, query: str) -> int:
        self._latest_ticket += 1
        self._pending.add(self._latest_ticket)
        self.query = query
        return self._latest_ticket

    def complete(self, ticket: int, node_ids: Iterable[str]) -> bool:
        self._pending.discard(ticket)
        if ticket != self._latest_ticket:
            logger.warning("Discarding stale semantic search result (ticket %d < %d)", ticket, self._latest_ticket)
            return False
        self.results = list(dict.fromkeys(node_ids))
        return True

    def fail(self, ticket: int) -> None:
        self._pending.discard(ticket)

    def clear(self) -> None:
        # Any response still in flight becomes stale.
        self._latest_ticket += 1
        self._pending.clear()
        self.query = ""
        self.results = None


@dataclass
class VisibleGraph:
    nodes: list[Node] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)

    @property
    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def find(self, node_id: str) -> Node | None:
        return next((n for n in self.nodes if n.id == node_id), None)


def apply_filters(
    nodes: Iterable[Node],
    state: FilterState,
    filters: Sequence[Callable[[Node, FilterState], bool]] = STANDARD_FILTERS,
) -> list[Node]:
    """AND-composition of the standard filters, order-independent."""
    return [n for n in nodes if all(f(n, state) for f in filters)]


def compute_visible(
    canonical_nodes: Sequence[Node],
    canonical_links: Sequence[Link],
    overlay_nodes: Sequence[Node],
    overlay_links: Sequence[Link],
    state: FilterState,
    semantic_ids: Sequence[str] | None = None,
) -> VisibleGraph:
    """Resolve the visible set in the fixed order: semantic, filters, overlay, links."""
    if semantic_ids is not None:
        wanted = set(semantic_ids)
        nodes = [n for n in (*canonical_nodes, *overlay_nodes) if n.id in wanted]
    else:
        nodes = apply_filters(canonical_nodes, state)
        if state.show_suggestions:
            # Overlay candidates bypass the standard filters so they stay reviewable.
            nodes.extend(overlay_nodes)

    ids = {n.id for n in nodes}
    candidate_links = list(canonical_links)
    if state.show_suggestions:
        candidate_links.extend(overlay_links)
    links = [l for l in candidate_links if l.source in ids and l.target in ids]
    return VisibleGraph(nodes=nodes, links=links)


class FilterPipeline:
    """Holds the active filter/search state and computes visible sets."""

    def __init__(self, older_than_year: int = DEFAULT_OLDER_THAN):
        self.state = FilterState()
        self.semantic = SemanticSearch()
        self.older_than_year = older_than_year

    def set_query(self, query: str) -> None:
        self.state.query = query or ""
        if not self.state.query.strip():
            self.semantic.clear()

    def set_partition(self, partition: str | None) -> None:
        self.state.partition = partition or ALL

    def set_year(self, year: int | str | YearFilter | None) -> None:
        """Accepts ``None``/"All", a year, "older", or a ready YearFilter."""
        if isinstance(year, YearFilter):
            self.state.year = year
        elif year is None or str(year).strip().lower() in ("", "all"):
            self.state.year = YearFilter()
        elif str(year).strip().lower() == "older":
            self.state.year = YearFilter.older_than(self.older_than_year)
        else:
            self.state.year = YearFilter.exact(int(year))

    def set_starred_only(self, flag: bool) -> None:
        self.state.starred_only = bool(flag)

    def set_show_suggestions(self, flag: bool) -> None:
        self.state.show_suggestions = bool(flag)

    def compute(
        self,
        canonical_nodes: Sequence[Node],
        canonical_links: Sequence[Link],
        overlay_nodes: Sequence[Node] = (),
        overlay_links: Sequence[Link] = (),
    ) -> VisibleGraph:
        return compute_visible(
            canonical_nodes,
            canonical_links,
            overlay_nodes,
            overlay_links,
            self.state,
            self.semantic.results,
        )
