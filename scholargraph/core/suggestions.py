"""Disposable overlay of AI-proposed nodes and links pending review.

Lifecycle::

    Idle -> Generating -> Populated -> Idle (clear, or drained by promotions)

A generation request takes a ticket.  Only the newest ticket may replace the
overlay; responses for superseded tickets are dropped on arrival.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Iterable
from enum import Enum
from typing import Protocol

from .exceptions import CollaboratorFailure, DanglingEndpoint, DuplicateId, EmptyGraph, NotFound
from .graph_store import GraphStore
from .grouping import PROMOTED_GROUP, SUGGESTION_GROUP
from .models import Link, Node

logger = logging.getLogger(__name__)

MIN_NODES_FOR_SUGGESTIONS = 2


class SuggestionState(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    POPULATED = "populated"


class SuggestionSource(Protocol):
    def generate_suggestions(self, nodes: list[Node]) -> tuple[list[Node], list[Link]]:
        ...


class SuggestionEngine:
    """Owns the overlay collection; promotion moves entries into the store."""

    def __init__(self, store: GraphStore, source: SuggestionSource | None = None):
        self.store = store
        self.source = source
        self._nodes: dict[str, Node] = {}
        self._links: list[Link] = []
        self._state = SuggestionState.IDLE
        self._latest_ticket = 0
        self._pending: set[int] = set()

    # ---- reads -------------------------------------------------------

    @property
    def state(self) -> SuggestionState:
        return self._state

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    @property
    def links(self) -> list[Link]:
        return list(self._links)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def find(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def is_empty(self) -> bool:
        return not self._nodes and not self._links

    # ---- generation --------------------------------------------------

    def begin_generation(self) -> int:
        """Validate and open a request; returns its ticket."""
        count = len(self.store)
        if count < MIN_NODES_FOR_SUGGESTIONS:
            raise EmptyGraph("Suggestion generation", MIN_NODES_FOR_SUGGESTIONS, count)
        self._latest_ticket += 1
        self._pending.add(self._latest_ticket)
        self._state = SuggestionState.GENERATING
        return self._latest_ticket

    def complete_generation(self, ticket: int, nodes: Iterable[Node], links: Iterable[Link]) -> bool:
        """Replace the whole overlay with a response. False if superseded."""
        self._pending.discard(ticket)
        if ticket != self._latest_ticket:
            logger.warning("Discarding stale suggestion response (ticket %d < %d)", ticket, self._latest_ticket)
            self._settle_state()
            return False

        new_nodes: dict[str, Node] = {}
        renamed: dict[str, str] = {}
        for node in nodes:
            original_id = node.id
            if node.id in self.store or node.id in new_nodes:
                node.id = self._rekey(node.id, new_nodes)
                logger.info("Re-keyed suggestion %s -> %s", original_id, node.id)
            renamed.setdefault(original_id, node.id)
            node.is_suggestion = True
            node.group = SUGGESTION_GROUP
            node.starred = False
            new_nodes[node.id] = node

        new_links: list[Link] = []
        seen: set[tuple[str, str]] = set()
        for link in links:
            link.source = self._resolve(link.source, renamed)
            link.target = self._resolve(link.target, renamed)
            missing = [
                n for n in (link.source, link.target)
                if n not in self.store and n not in new_nodes
            ]
            if missing:
                warning = DanglingEndpoint(link.source, link.target, missing)
                warnings.warn(warning, stacklevel=2)
                logger.warning("Dropping suggested link: %s", warning)
                continue
            if link.key in seen:
                continue
            seen.add(link.key)
            link.is_suggestion = True
            new_links.append(link)

        self._nodes = new_nodes
        self._links = new_links
        logger.info("Suggestion overlay replaced: %d nodes, %d links", len(new_nodes), len(new_links))
        self._settle_state()
        return True

    def fail_generation(self, ticket: int) -> None:
        """Close a failed request; the overlay is left untouched."""
        self._pending.discard(ticket)
        self._settle_state()

    def generate(self, current_graph: list[Node] | None = None) -> bool:
        """Ask the source for suggestions and replace the overlay with them."""
        if self.source is None:
            raise CollaboratorFailure("Suggestion generation", "no collaborator configured")
        ticket = self.begin_generation()
        context = list(current_graph) if current_graph is not None else self.store.nodes
        try:
            nodes, links = self.source.generate_suggestions(context)
        except CollaboratorFailure:
            self.fail_generation(ticket)
            raise
        except Exception as e:
            self.fail_generation(ticket)
            raise CollaboratorFailure("Suggestion generation", str(e)) from e
        return self.complete_generation(ticket, nodes, links)

    # ---- review actions ----------------------------------------------

    def promote_node(self, node_id: str) -> tuple[Node, list[Link]]:
        """Move a node into the store, together with every overlay link
        whose endpoints are then both canonical."""
        node = self._nodes.get(node_id)
        if node is None:
            raise NotFound(node_id, "suggestion")
        if node_id in self.store:
            raise DuplicateId(node_id)

        del self._nodes[node_id]
        node.is_suggestion = False
        node.reason = None
        node.group = PROMOTED_GROUP
        self.store.insert_node(node)

        moving = [l for l in self._links if l.source in self.store and l.target in self.store]
        moved_ids = {id(l) for l in moving}
        self._links = [l for l in self._links if id(l) not in moved_ids]
        for link in moving:
            link.is_suggestion = False
            link.reason = None
            self.store.insert_link(link)

        logger.info("Promoted suggestion %s with %d link(s)", node_id, len(moving))
        self._settle_state()
        return node, moving

    def promote_link(self, source: str, target: str) -> Link:
        """Accept one suggested relation whose endpoints are both canonical."""
        link = self._find_link(source, target)
        for endpoint in (source, target):
            if endpoint not in self.store:
                raise NotFound(endpoint)
        self._links.remove(link)
        link.is_suggestion = False
        link.reason = None
        self.store.insert_link(link)
        logger.info("Promoted suggested link %s -> %s", source, target)
        self._settle_state()
        return link

    def discard_node(self, node_id: str) -> Node:
        """Reject a suggested node and every overlay link touching it."""
        node = self._nodes.pop(node_id, None)
        if node is None:
            raise NotFound(node_id, "suggestion")
        self._links = [l for l in self._links if not l.touches(node_id)]
        self._settle_state()
        return node

    def discard_link(self, source: str, target: str) -> Link:
        link = self._find_link(source, target)
        self._links.remove(link)
        self._settle_state()
        return link

    def clear(self) -> None:
        self._nodes = {}
        self._links = []
        self._settle_state()

    def load(self, nodes: Iterable[Node], links: Iterable[Link]) -> None:
        """Restore an overlay saved earlier; ids must not collide with the store."""
        self._nodes = {}
        for node in nodes:
            if node.id in self.store or node.id in self._nodes:
                node.id = self._rekey(node.id, self._nodes)
            node.is_suggestion = True
            self._nodes[node.id] = node
        self._links = []
        for link in links:
            link.is_suggestion = True
            self._links.append(link)
        self._settle_state()

    # ---- internals ---------------------------------------------------

    def _find_link(self, source: str, target: str) -> Link:
        for link in self._links:
            if link.source == source and link.target == target:
                return link
        raise NotFound(f"{source}->{target}", "suggestion")

    def _rekey(self, base: str, batch: dict[str, Node]) -> str:
        n = 1
        while True:
            candidate = f"{base}-s{n}"
            if candidate not in self.store and candidate not in batch and candidate not in self._nodes:
                return candidate
            n += 1

    @staticmethod
    def _resolve(node_id: str, renamed: dict[str, str]) -> str:
        return renamed.get(node_id, node_id)

    def _settle_state(self) -> None:
        if self._latest_ticket in self._pending:
            self._state = SuggestionState.GENERATING
        elif self.is_empty():
            self._state = SuggestionState.IDLE
        else:
            self._state = SuggestionState.POPULATED
