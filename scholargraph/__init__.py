"""ScholarGraph: an AI-assisted knowledge graph for papers, notes and concepts."""

from .core.engine import KnowledgeGraphEngine
from .core.exceptions import (
    CollaboratorFailure,
    DanglingEndpoint,
    DuplicateId,
    EmptyGraph,
    NotFound,
    ScholarGraphError,
)
from .core.models import Badge, Link, Node, NodeKind

__version__ = "0.1.0"

__all__ = [
    "Badge",
    "CollaboratorFailure",
    "DanglingEndpoint",
    "DuplicateId",
    "EmptyGraph",
    "KnowledgeGraphEngine",
    "Link",
    "Node",
    "NodeKind",
    "NotFound",
    "ScholarGraphError",
]
