"""Error taxonomy for the knowledge-graph engine."""

from __future__ import annotations


class ScholarGraphError(Exception):
    """Base class for engine errors."""
    pass


class DuplicateId(ScholarGraphError):
    """A node id is already taken in the collection it was inserted into."""

    def __init__(self, node_id: str, where: str = "canonical"):
        self.node_id = node_id
        self.where = where
        super().__init__(f"Duplicate node id in {where} graph: {node_id}")


class NotFound(ScholarGraphError):
    """Mutation or lookup on a node id that does not exist."""

    def __init__(self, node_id: str, where: str = "canonical"):
        self.node_id = node_id
        self.where = where
        super().__init__(f"Node not found in {where} graph: {node_id}")


class EmptyGraph(ScholarGraphError):
    """Operation needs more canonical nodes than the graph holds."""

    def __init__(self, operation: str, required: int, actual: int):
        self.operation = operation
        self.required = required
        self.actual = actual
        super().__init__(
            f"{operation} needs at least {required} nodes, graph has {actual}"
        )


class CollaboratorFailure(ScholarGraphError):
    """An external AI request failed or returned something unusable."""

    def __init__(self, operation: str, message: str = ""):
        self.operation = operation
        detail = f": {message}" if message else ""
        super().__init__(f"{operation} failed, try again{detail}")


class DanglingEndpoint(UserWarning):
    """Advisory: a link references a node id that does not resolve.

    Emitted through ``warnings.warn``; never raised by storage itself.
    """

    def __init__(self, source: str, target: str, missing: list[str] | None = None):
        self.source = source
        self.target = target
        self.missing = list(missing or [])
        super().__init__(
            f"Link {source} -> {target} has unresolved endpoint(s): {', '.join(self.missing) or '?'}"
        )
