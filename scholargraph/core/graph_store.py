"""Canonical graph storage: the confirmed nodes and links."""

from __future__ import annotations

import logging
import warnings
from collections.abc import Callable, Iterable
from typing import Any

from .exceptions import DanglingEndpoint, DuplicateId, NotFound
from .grouping import assign_group
from .models import Link, Node

logger = logging.getLogger(__name__)


class GraphStore:
    """Single source of truth for confirmed graph content.

    Dangling link endpoints are tolerated in storage; views filter them out.
    Callers that share a store across threads must hold the engine lock.
    """

    def __init__(self, grouper: Callable[..., str] | None = None):
        self._nodes: dict[str, Node] = {}
        self._links: list[Link] = []
        self._grouper = grouper or assign_group

    # ---- reads -------------------------------------------------------

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    @property
    def links(self) -> list[Link]:
        return list(self._links)

    def get(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NotFound(node_id) from None

    def find(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def has_link(self, source: str, target: str) -> bool:
        return any(l.source == source and l.target == target for l in self._links)

    def links_touching(self, node_id: str) -> list[Link]:
        return [l for l in self._links if l.touches(node_id)]

    # ---- mutations ---------------------------------------------------

    def insert_node(self, node: Node) -> Node:
        if node.id in self._nodes:
            raise DuplicateId(node.id)
        node.is_suggestion = False
        node.reason = None
        if not node.group:
            node.group = self._grouper(node.kind, node.badges, node.label)
        self._nodes[node.id] = node
        return node

    def insert_link(self, link: Link) -> DanglingEndpoint | None:
        """Store a link; warn (but keep it) when an endpoint is unknown."""
        link.is_suggestion = False
        self._links.append(link)
        missing = [n for n in (link.source, link.target) if n not in self._nodes]
        if missing:
            warning = DanglingEndpoint(link.source, link.target, missing)
            warnings.warn(warning, stacklevel=2)
            logger.warning("%s", warning)
            return warning
        return None

    def update_node_content(
        self,
        node_id: str,
        new_label: str | None = None,
        new_content: str | None = None,
    ) -> Node:
        node = self.get(node_id)
        if new_label is not None:
            node.label = new_label
        if new_content is not None:
            node.content = new_content
        return node

    def toggle_star(self, node_id: str) -> bool:
        node = self.get(node_id)
        node.starred = not node.starred
        return node.starred

    def delete_node(self, node_id: str) -> Node:
        """Remove a node; links that referenced it stay and dangle."""
        node = self.get(node_id)
        del self._nodes[node_id]
        return node

    # ---- serialization -----------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self._nodes.values()],
            "links": [l.to_dict() for l in self._links],
        }

    def load(self, nodes: Iterable[dict[str, Any]], links: Iterable[dict[str, Any]]) -> None:
        """Replace contents from dicts without re-running grouping."""
        self._nodes = {}
        for data in nodes:
            node = Node.from_dict(data)
            if node.id in self._nodes:
                raise DuplicateId(node.id)
            node.is_suggestion = False
            if not node.group:
                node.group = self._grouper(node.kind, node.badges, node.label)
            self._nodes[node.id] = node
        self._links = []
        for data in links:
            link = Link.from_dict(data)
            link.is_suggestion = False
            self._links.append(link)
