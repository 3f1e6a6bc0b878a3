"""Knowledge-graph engine: one store, one overlay, one view, one layout.

Every mutation and every layout tick runs under a single re-entrant lock, so
a tick never observes a half-applied change (a promotion moves a node and its
links in one critical section).  Collaborator requests run outside the lock;
only their results are applied under it.
"""

from __future__ import annotations

import logging
import threading
import time
import warnings
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Any

from ..collaborator import Collaborator
from .exceptions import CollaboratorFailure, DanglingEndpoint, DuplicateId, EmptyGraph
from .filters import DEFAULT_OLDER_THAN, FilterPipeline, SearchStatus, VisibleGraph, YearFilter
from .graph_store import GraphStore
from .grouping import Grouper
from .layout import LayoutConfig, LayoutSimulation, LayoutState
from .models import Badge, Link, Node, NodeKind, RelatedLink, today
from .selection import SelectionSurface
from .suggestions import SuggestionEngine

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
MIN_NODES_FOR_CONNECT = 2
CONTAINS = "Contains"


class KnowledgeGraphEngine:
    """Facade over the graph components with a narrow mutation API."""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        collaborator: Collaborator | None = None,
    ):
        self.config = config or {}
        self._lock = threading.RLock()
        self.collaborator = collaborator or Collaborator(self.config)
        self.grouper = Grouper(self.config)
        self.store = GraphStore(self.grouper)
        self.suggestions = SuggestionEngine(self.store, self.collaborator)
        filters_cfg = self.config.get("filters", {}) or {}
        self.filters = FilterPipeline(int(filters_cfg.get("older_than_year", DEFAULT_OLDER_THAN)))
        self.layout = LayoutSimulation(LayoutConfig.from_config(self.config))
        self.selection = SelectionSurface(self.store, self.suggestions, self.visible)

    # ---- views -------------------------------------------------------

    def visible(self) -> VisibleGraph:
        with self._lock:
            return self.filters.compute(
                self.store.nodes,
                self.store.links,
                self.suggestions.nodes,
                self.suggestions.links,
            )

    def relayout(self) -> VisibleGraph:
        """Recompute the visible set and hand it to the layout."""
        with self._lock:
            view = self.visible()
            self.layout.set_graph(view.nodes, view.links)
            return view

    def find(self, node_id: str) -> Node | None:
        with self._lock:
            return self.store.find(node_id) or self.suggestions.find(node_id)

    # ---- canonical mutations -----------------------------------------

    def new_id(self, prefix: str) -> str:
        """``<prefix>-<epoch millis>``, suffixed until unique across both collections."""
        return self._unique_id(f"{prefix}-{int(time.time() * 1000)}")

    def _unique_id(self, base: str) -> str:
        with self._lock:
            candidate, n = base, 1
            while candidate in self.store or candidate in self.suggestions:
                candidate = f"{base}-{n}"
                n += 1
            return candidate

    def insert_node(self, node: Node) -> Node:
        with self._lock:
            if node.id in self.suggestions:
                raise DuplicateId(node.id, "suggestion")
            self.store.insert_node(node)
            self.relayout()
            return node

    def insert_link(self, link: Link) -> DanglingEndpoint | None:
        with self._lock:
            warning = self.store.insert_link(link)
            self.relayout()
            return warning

    def add_note(self, label: str = "New Note", content: str = "") -> Node:
        node = Node(id=self.new_id("note"), label=label, kind=NodeKind.NOTE, content=content)
        return self.insert_node(node)

    def import_papers(self, records: Iterable[dict[str, Any]]) -> list[Node]:
        """Seed canonical papers from search-result records; known ids are skipped."""
        added = []
        with self._lock:
            for record in records:
                node_id = str(record.get("id") or self.new_id("paper"))
                if node_id in self.store or node_id in self.suggestions:
                    logger.info("Skipping already imported paper %s", node_id)
                    continue
                year = record.get("year")
                node = Node(
                    id=node_id,
                    label=str(record.get("title") or record.get("label") or node_id),
                    kind=NodeKind.PAPER,
                    content=record.get("abstract") or record.get("content") or "",
                    added_date=record.get("addedDate") or today(),
                    year=int(year) if year not in (None, "") else None,
                    badges=[Badge.from_dict(b) for b in record.get("badges") or []],
                )
                self.store.insert_node(node)
                added.append(node)
            self.relayout()
        logger.info("Imported %d paper(s)", len(added))
        return added

    def update_node_content(self, node_id: str, label: str | None = None, content: str | None = None) -> Node:
        with self._lock:
            node = self.store.update_node_content(node_id, label, content)
            self.relayout()
            return node

    def toggle_star(self, node_id: str) -> bool:
        with self._lock:
            starred = self.store.toggle_star(node_id)
            self.relayout()
            return starred

    def delete_node(self, node_id: str) -> Node:
        with self._lock:
            node = self.store.delete_node(node_id)
            if self.selection.selected_id == node_id:
                self.selection.clear()
            self.relayout()
            return node

    # ---- collaborator-backed actions ---------------------------------

    def connect(self) -> list[Link]:
        """Ask for relations between canonical nodes and merge new ones directly."""
        with self._lock:
            nodes = self.store.nodes
        if len(nodes) < MIN_NODES_FOR_CONNECT:
            raise EmptyGraph("Connect", MIN_NODES_FOR_CONNECT, len(nodes))
        proposed = self.collaborator.generate_links(nodes)

        added: list[Link] = []
        with self._lock:
            seen = {l.key for l in self.store.links}
            for link in proposed:
                missing = [n for n in (link.source, link.target) if n not in self.store]
                if missing:
                    warning = DanglingEndpoint(link.source, link.target, missing)
                    warnings.warn(warning, stacklevel=2)
                    logger.warning("Skipping proposed link: %s", warning)
                    continue
                if link.key in seen:
                    continue
                seen.add(link.key)
                self.store.insert_link(link)
                added.append(link)
            self.relayout()
        logger.info("Connect added %d of %d proposed link(s)", len(added), len(proposed))
        return added

    def generate_suggestions(self) -> bool:
        """Replace the overlay with fresh suggestions (blocking)."""
        with self._lock:
            ticket = self.suggestions.begin_generation()
            context = self.store.nodes
        try:
            nodes, links = self.collaborator.generate_suggestions(context)
        except Exception as e:
            with self._lock:
                self.suggestions.fail_generation(ticket)
            if isinstance(e, CollaboratorFailure):
                raise
            raise CollaboratorFailure("Suggestion generation", str(e)) from e
        return self._complete_suggestions(ticket, nodes, links)

    def generate_suggestions_async(self, executor: Executor) -> Future:
        """Fire-and-forget variant; the future resolves to whether it applied."""
        with self._lock:
            ticket = self.suggestions.begin_generation()
            context = self.store.nodes
        return self._submit(
            executor,
            lambda: self.collaborator.generate_suggestions(context),
            lambda result: self._complete_suggestions(ticket, *result),
            lambda: self.suggestions.fail_generation(ticket),
        )

    def _complete_suggestions(self, ticket: int, nodes: list[Node], links: list[Link]) -> bool:
        with self._lock:
            applied = self.suggestions.complete_generation(ticket, nodes, links)
            if applied:
                self.relayout()
            return applied

    def semantic_search(self, query: str) -> list[str]:
        """Run a semantic query and make its result the active override (blocking)."""
        with self._lock:
            ticket = self.filters.semantic.begin(query)
            context = self.store.nodes + self.suggestions.nodes
        try:
            ids = self.collaborator.semantic_search(query, context)
        except Exception as e:
            with self._lock:
                self.filters.semantic.fail(ticket)
            if isinstance(e, CollaboratorFailure):
                raise
            raise CollaboratorFailure("Semantic search", str(e)) from e
        self._complete_semantic(ticket, ids)
        return ids

    def semantic_search_async(self, query: str, executor: Executor) -> Future:
        with self._lock:
            ticket = self.filters.semantic.begin(query)
            context = self.store.nodes + self.suggestions.nodes
        return self._submit(
            executor,
            lambda: self.collaborator.semantic_search(query, context),
            lambda ids: self._complete_semantic(ticket, ids),
            lambda: self.filters.semantic.fail(ticket),
        )

    def _complete_semantic(self, ticket: int, ids: list[str]) -> bool:
        with self._lock:
            applied = self.filters.semantic.complete(ticket, ids)
            if applied:
                self.relayout()
            return applied

    @property
    def search_status(self) -> SearchStatus:
        return self.filters.semantic.status

    def _submit(
        self,
        executor: Executor,
        fetch: Callable[[], Any],
        apply: Callable[[Any], bool],
        fail: Callable[[], None],
    ) -> Future:
        def run():
            try:
                result = fetch()
            except Exception as e:
                with self._lock:
                    fail()
                if isinstance(e, CollaboratorFailure):
                    raise
                raise CollaboratorFailure("Background request", str(e)) from e
            return apply(result)

        return executor.submit(run)

    def chat(self, query: str) -> str:
        return self.collaborator.chat(query, self.visible().nodes)

    def ingest_document(self, path: Path) -> tuple[Node, list[Node]]:
        """Parent paper for the file, one child per extracted element, 'Contains' links."""
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(path)
        parsed = self.collaborator.parse_document(path)
        with self._lock:
            parent = Node(
                id=self.new_id("paper"),
                label=path.name,
                kind=NodeKind.PAPER,
                content=parsed.summary,
            )
            self.store.insert_node(parent)
            children = []
            for i, element in enumerate(parsed.elements, 1):
                label = f"{element.type}: {element.label}" if element.type else element.label
                child = Node(
                    id=self._unique_id(f"{parent.id}-el{i}"),
                    label=label,
                    kind=NodeKind.CONCEPT,
                    content=element.content,
                )
                self.store.insert_node(child)
                self.store.insert_link(Link(source=parent.id, target=child.id, label=CONTAINS))
                children.append(child)
            self.relayout()
        logger.info("Ingested %s: %d element(s)", path.name, len(children))
        return parent, children

    def add_image_note(self, path: Path) -> Node:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(path)
        text = self.collaborator.analyze_image(path)
        node = Node(id=self.new_id("note"), label=path.name, kind=NodeKind.NOTE, content=text)
        return self.insert_node(node)

    # ---- suggestion review -------------------------------------------

    def promote_node(self, node_id: str) -> tuple[Node, list[Link]]:
        with self._lock:
            result = self.suggestions.promote_node(node_id)
            self.relayout()
            return result

    def promote_link(self, source: str, target: str) -> Link:
        with self._lock:
            link = self.suggestions.promote_link(source, target)
            self.relayout()
            return link

    def discard_node(self, node_id: str) -> Node:
        with self._lock:
            node = self.suggestions.discard_node(node_id)
            self.relayout()
            return node

    def discard_link(self, source: str, target: str) -> Link:
        with self._lock:
            link = self.suggestions.discard_link(source, target)
            self.relayout()
            return link

    def clear_suggestions(self) -> None:
        with self._lock:
            self.suggestions.clear()
            self.relayout()

    # ---- filter state ------------------------------------------------

    def set_query(self, query: str) -> None:
        with self._lock:
            self.filters.set_query(query)
            self.relayout()

    def set_partition(self, partition: str | None) -> None:
        with self._lock:
            self.filters.set_partition(partition)
            self.relayout()

    def set_year(self, year: int | str | YearFilter | None) -> None:
        with self._lock:
            self.filters.set_year(year)
            self.relayout()

    def set_starred_only(self, flag: bool) -> None:
        with self._lock:
            self.filters.set_starred_only(flag)
            self.relayout()

    def set_show_suggestions(self, flag: bool) -> None:
        with self._lock:
            self.filters.set_show_suggestions(flag)
            self.relayout()

    def clear_semantic(self) -> None:
        with self._lock:
            self.filters.semantic.clear()
            self.relayout()

    # ---- layout ------------------------------------------------------

    def tick(self) -> bool:
        with self._lock:
            return self.layout.tick()

    def run_layout(self, max_ticks: int | None = None) -> int:
        """Tick until settled, taking the lock per tick so input can interleave."""
        budget = self.layout.config.max_ticks if max_ticks is None else max_ticks
        taken = 0
        while taken < budget:
            with self._lock:
                if self.layout.state is LayoutState.IDLE:
                    break
                moving = self.layout.tick()
            taken += 1
            if not moving:
                break
        return taken

    def drag_start(self, node_id: str) -> None:
        with self._lock:
            self.layout.drag_start(node_id)

    def drag_move(self, node_id: str, x: float, y: float) -> None:
        with self._lock:
            self.layout.drag_move(node_id, x, y)

    def drag_end(self, node_id: str) -> None:
        with self._lock:
            self.layout.drag_end(node_id)

    # ---- selection ---------------------------------------------------

    def select(self, node_id: str) -> Node:
        with self._lock:
            return self.selection.select(node_id)

    def edit_label(self, label: str, node_id: str | None = None) -> Node:
        with self._lock:
            node = self.selection.edit_label(label, node_id)
            self.relayout()
            return node

    def edit_content(self, content: str, node_id: str | None = None) -> Node:
        with self._lock:
            node = self.selection.edit_content(content, node_id)
            self.relayout()
            return node

    def related_links(self, node_id: str | None = None) -> list[RelatedLink]:
        with self._lock:
            return self.selection.related_links(node_id)

    # ---- snapshot ----------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            data = self.store.to_dict()
            return {
                "version": SNAPSHOT_VERSION,
                "nodes": data["nodes"],
                "links": data["links"],
                "suggestions": {
                    "nodes": [n.to_dict() for n in self.suggestions.nodes],
                    "links": [l.to_dict() for l in self.suggestions.links],
                },
                "positions": {nid: [x, y] for nid, (x, y) in self.layout.positions().items()},
            }

    @classmethod
    def from_snapshot(
        cls,
        data: dict[str, Any] | None,
        config: dict[str, Any] | None = None,
        collaborator: Collaborator | None = None,
    ) -> KnowledgeGraphEngine:
        engine = cls(config, collaborator)
        data = data or {}
        with engine._lock:
            engine.store.load(data.get("nodes") or [], data.get("links") or [])
            overlay = data.get("suggestions") or {}
            engine.suggestions.load(
                [Node.from_dict(n) for n in overlay.get("nodes") or []],
                [Link.from_dict(l) for l in overlay.get("links") or []],
            )
            positions = data.get("positions") or {}
            engine.layout.remember({nid: (float(p[0]), float(p[1])) for nid, p in positions.items()})
            engine.relayout()
        return engine
