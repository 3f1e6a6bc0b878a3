"""Pydantic schemas for collaborator structured outputs."""
from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field


class BadgeSpec(BaseModel):
    """Classification badge attached to a proposed paper."""
    model_config = {"extra": "ignore", "populate_by_name": True}
    type: str = Field(description="Index or category, e.g. SCI, EI, Q1")
    partition: str | None = Field(None, description="Quartile Q1-Q4 when known")
    impact_factor: float | None = Field(
        None,
        description="Journal impact factor",
        validation_alias=AliasChoices("impact_factor", "if", "impactFactor"),
    )


class LinkSpec(BaseModel):
    """Relation between two existing node ids."""
    model_config = {"extra": "ignore"}
    source: str = Field(
        description="Source node id (must be one of the given ids)",
        validation_alias=AliasChoices("source", "src", "from", "source_id"),
    )
    target: str = Field(
        description="Target node id (must be one of the given ids)",
        validation_alias=AliasChoices("target", "dst", "to", "target_id"),
    )
    label: str = Field("", description="Short relation name, e.g. 'Extends', 'Uses Method'")
    reason: str | None = Field(None, description="Why the relation holds")


class LinkProposals(BaseModel):
    """Answer to generate-links."""
    model_config = {"extra": "ignore"}
    links: list[LinkSpec] = Field(default_factory=list, description="Proposed links; empty if none")


class SuggestedNodeSpec(BaseModel):
    """A research item that is not in the graph yet."""
    model_config = {"extra": "ignore"}
    id: str = Field(description="New unique id, distinct from existing ids")
    label: str = Field(description="Title of the paper or concept")
    type: str = Field("Paper", description="Paper, Note or Concept")
    content: str = Field("", description="Short abstract or description")
    year: int | None = Field(None, description="Publication year if known")
    badges: list[BadgeSpec] = Field(default_factory=list)
    reason: str = Field("", description="Why this is recommended")


class GraphSuggestions(BaseModel):
    """Answer to generate-suggestions."""
    model_config = {"extra": "ignore"}
    recommended_nodes: list[SuggestedNodeSpec] = Field(
        default_factory=list,
        validation_alias=AliasChoices("recommended_nodes", "recommendedNodes", "nodes"),
    )
    suggested_links: list[LinkSpec] = Field(
        default_factory=list,
        description="Links between suggested ids and/or existing ids",
        validation_alias=AliasChoices("suggested_links", "suggestedLinks", "links"),
    )


class RelevantNodes(BaseModel):
    """Answer to semantic search."""
    model_config = {"extra": "ignore"}
    node_ids: list[str] = Field(
        default_factory=list,
        description="Ids of relevant nodes, most relevant first; empty when nothing matches",
        validation_alias=AliasChoices("node_ids", "nodeIds", "ids"),
    )


class DocumentElement(BaseModel):
    model_config = {"extra": "ignore"}
    type: str = Field("Concept", description="Formula, Algorithm, Chart, Concept ...")
    label: str = Field(description="Short name of the element")
    content: str = Field("", description="Explanation or transcription")


class ParsedDocument(BaseModel):
    """Answer to deep document parsing."""
    model_config = {"extra": "ignore"}
    summary: str = Field("", description="Summary of the whole document")
    elements: list[DocumentElement] = Field(default_factory=list)
