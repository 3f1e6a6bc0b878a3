"""Selection/detail surface: the node currently under inspection."""

from __future__ import annotations

from collections.abc import Callable

from .exceptions import NotFound
from .filters import VisibleGraph
from .graph_store import GraphStore
from .models import Direction, Node, RelatedLink
from .suggestions import SuggestionEngine


class SelectionSurface:
    """Tracks the active node and writes edits back into the store."""

    def __init__(
        self,
        store: GraphStore,
        overlay: SuggestionEngine,
        visible: Callable[[], VisibleGraph],
    ):
        self.store = store
        self.overlay = overlay
        self._visible = visible
        self.selected_id: str | None = None

    def _lookup(self, node_id: str) -> Node | None:
        return self.store.find(node_id) or self.overlay.find(node_id)

    def select(self, node_id: str) -> Node:
        node = self._lookup(node_id)
        if node is None:
            raise NotFound(node_id)
        self.selected_id = node_id
        return node

    def clear(self) -> None:
        self.selected_id = None

    @property
    def selected(self) -> Node | None:
        """The selected node as it is now (follows promotion; None once gone)."""
        if self.selected_id is None:
            return None
        return self._lookup(self.selected_id)

    def edit_label(self, label: str, node_id: str | None = None) -> Node:
        return self.store.update_node_content(self._target(node_id), new_label=label)

    def edit_content(self, content: str, node_id: str | None = None) -> Node:
        return self.store.update_node_content(self._target(node_id), new_content=content)

    def related_links(self, node_id: str | None = None) -> list[RelatedLink]:
        target = self._target(node_id)
        view = self._visible()
        related = []
        for link in view.links:
            if not link.touches(target):
                continue
            direction = Direction.OUTGOING if link.source == target else Direction.INCOMING
            other = view.find(link.other_end(target))
            if other is None:
                continue
            related.append(RelatedLink(link=link, direction=direction, other=other))
        return related

    def _target(self, node_id: str | None) -> str:
        target = node_id or self.selected_id
        if target is None:
            raise NotFound("<no selection>")
        return target
