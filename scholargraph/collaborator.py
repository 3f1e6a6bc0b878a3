"""AI collaborator: the external requests the engine depends on."""

from __future__ import annotations

import json
import logging
import mimetypes
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, TypeVar

from .core.exceptions import CollaboratorFailure
from .core.models import Badge, Link, Node, NodeKind
from .llm.client import Attachment, LLMClient
from .llm.schemas import GraphSuggestions, LinkProposals, ParsedDocument, RelevantNodes

logger = logging.getLogger(__name__)

R = TypeVar("R")

CONTENT_PREVIEW_CHARS = 100

SYSTEM_PROMPT = (
    "You are a research assistant curating a knowledge graph of papers, notes "
    "and concepts for an academic user. Respond in {language}."
)


def _node_context(nodes: Sequence[Node], with_content: bool = True) -> str:
    rows = []
    for n in nodes:
        row: dict[str, Any] = {"id": n.id, "label": n.label, "type": n.kind.value}
        if with_content and n.content:
            row["content"] = n.content[:CONTENT_PREVIEW_CHARS]
        rows.append(row)
    return json.dumps(rows, ensure_ascii=False)


def _attachment(path: Path) -> Attachment:
    mime_type, _ = mimetypes.guess_type(path.name)
    return Attachment(data=path.read_bytes(), mime_type=mime_type or "application/octet-stream", name=path.name)


class Collaborator:
    """Wraps an LLM client; every failure surfaces as CollaboratorFailure."""

    def __init__(self, config: dict[str, Any], client: LLMClient | None = None):
        self.config = config or {}
        self._client = client
        self.language = str(self.config.get("language", "English"))

    @property
    def client(self) -> LLMClient:
        # Built lazily so offline commands never need API credentials.
        if self._client is None:
            try:
                self._client = LLMClient(self.config, profile="graph")
            except Exception as e:
                raise CollaboratorFailure("LLM setup", str(e)) from e
        return self._client

    @property
    def system(self) -> str:
        return SYSTEM_PROMPT.format(language=self.language)

    def _call(self, operation: str, fn: Callable[[], R]) -> R:
        try:
            return fn()
        except CollaboratorFailure:
            raise
        except Exception as e:
            logger.warning("%s failed: %s", operation, e)
            raise CollaboratorFailure(operation, str(e)) from e

    # ---- graph operations --------------------------------------------

    def generate_links(self, nodes: Sequence[Node]) -> list[Link]:
        user = (
            "Propose meaningful directed relations between these nodes. Use only the "
            "given ids. Labels are short, e.g. 'Extends', 'Uses Method', 'Evolved To', "
            f"'Contradicts'.\nNodes: {_node_context(nodes)}"
        )
        result = self._call(
            "Connect",
            lambda: self.client.parse(system=self.system, user=user, schema=LinkProposals),
        )
        return [Link(source=l.source, target=l.target, label=l.label, reason=l.reason) for l in result.links]

    def generate_suggestions(self, nodes: Sequence[Node]) -> tuple[list[Node], list[Link]]:
        user = (
            "Suggest new related papers or concepts that would extend this graph, and "
            "links connecting them to existing nodes (or to each other). Give every "
            "suggestion a new id and a reason.\n"
            f"Existing nodes: {_node_context(nodes, with_content=False)}"
        )
        result = self._call(
            "Suggestion generation",
            lambda: self.client.parse(system=self.system, user=user, schema=GraphSuggestions),
        )
        new_nodes = []
        for spec in result.recommended_nodes:
            try:
                kind = NodeKind.parse(spec.type)
            except ValueError:
                kind = NodeKind.PAPER
            new_nodes.append(Node(
                id=spec.id,
                label=spec.label,
                kind=kind,
                content=spec.content,
                year=spec.year,
                badges=[Badge(type=b.type, partition=b.partition, impact_factor=b.impact_factor) for b in spec.badges],
                is_suggestion=True,
                reason=spec.reason or None,
            ))
        new_links = [
            Link(source=l.source, target=l.target, label=l.label, is_suggestion=True, reason=l.reason)
            for l in result.suggested_links
        ]
        return new_nodes, new_links

    def semantic_search(self, query: str, nodes: Sequence[Node]) -> list[str]:
        user = (
            f'Find the nodes relevant to "{query}". Return their ids, most relevant '
            "first, or an empty list when none are relevant.\n"
            f"Nodes: {_node_context(nodes)}"
        )
        result = self._call(
            "Semantic search",
            lambda: self.client.parse(system=self.system, user=user, schema=RelevantNodes),
        )
        known = {n.id for n in nodes}
        return [nid for nid in result.node_ids if nid in known]

    def chat(self, query: str, nodes: Sequence[Node]) -> str:
        user = (
            "Answer the question using the knowledge graph below as context.\n"
            f"Nodes: {_node_context(nodes)}\nQuestion: {query}"
        )
        return self._call("Chat", lambda: self.client.raw(system=self.system, user=user))

    # ---- file operations ---------------------------------------------

    def parse_document(self, path: Path) -> ParsedDocument:
        path = Path(path)
        user = (
            "Deep parse this document. Give a summary and list its key elements "
            "(formulas, algorithms, charts, core concepts) with a label and content each."
        )
        return self._call(
            "Document parsing",
            lambda: self.client.parse(
                system=self.system, user=user, schema=ParsedDocument, attachments=[_attachment(path)],
            ),
        )

    def analyze_image(self, path: Path) -> str:
        path = Path(path)
        user = "Analyze this image note. Extract its text and key concepts."
        return self._call(
            "Image analysis",
            lambda: self.client.raw(system=self.system, user=user, attachments=[_attachment(path)]),
        )
