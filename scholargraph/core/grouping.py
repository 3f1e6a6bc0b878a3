"""Deterministic cluster labels for nodes entering the graph."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .models import Badge, NodeKind

NOTES_GROUP = "Personal Notes"
SUGGESTION_GROUP = "Suggestion"
PROMOTED_GROUP = "New Research"
DEFAULT_FALLBACK = "General AI"
UNCATEGORIZED = "Uncategorized"

# Ordered; the first keyword set found in the label wins.
DEFAULT_KEYWORD_GROUPS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("hierarchical", "ensemble", "stacking", "boosting"), "Ensemble Learning"),
    (("quantum", "physics"), "Quantum AI"),
    (("medical", "biomedical", "clinical", "healthcare"), "Healthcare"),
    (("reinforcement", "dqn", "policy gradient"), "Reinforcement Learning"),
    (("language model", "llm", "transformer"), "Language Models"),
)


def badge_group(badges: Sequence[Badge]) -> str | None:
    """Group for a badge list: first partitioned badge, else the first badge."""
    if not badges:
        return None
    chosen = next((b for b in badges if b.has_partition), badges[0])
    if chosen.partition and chosen.partition != chosen.type:
        return f"{chosen.type} {chosen.partition}"
    return chosen.type


def assign_group(
    kind: NodeKind,
    badges: Sequence[Badge] | None,
    label: str,
    keyword_groups: Sequence[tuple[Sequence[str], str]] | None = None,
    fallback: str | None = None,
) -> str:
    """Pure function of (kind, badges, label) plus the configured table."""
    if NodeKind.parse(kind) is NodeKind.NOTE:
        return NOTES_GROUP
    from_badge = badge_group(list(badges or []))
    if from_badge:
        return from_badge

    table = DEFAULT_KEYWORD_GROUPS if keyword_groups is None else keyword_groups
    if not table:
        return UNCATEGORIZED
    lowered = (label or "").lower()
    for keywords, group in table:
        if any(k.lower() in lowered for k in keywords):
            return group
    return fallback or DEFAULT_FALLBACK


class Grouper:
    """assign_group bound to a keyword table taken from config."""

    def __init__(self, config: dict[str, Any] | None = None):
        cfg = (config or {}).get("grouping", {}) if isinstance(config, dict) else {}
        raw = cfg.get("keywords") if isinstance(cfg, dict) else None
        if raw is None:
            self.keyword_groups = DEFAULT_KEYWORD_GROUPS
        else:
            # YAML form: [{group: "Quantum AI", keywords: [quantum, physics]}, ...]
            self.keyword_groups = tuple(
                (tuple(entry.get("keywords") or []), str(entry["group"]))
                for entry in raw
                if isinstance(entry, dict) and entry.get("group")
            )
        self.fallback = (cfg.get("fallback") if isinstance(cfg, dict) else None) or DEFAULT_FALLBACK

    def __call__(self, kind: NodeKind, badges: Sequence[Badge] | None, label: str) -> str:
        return assign_group(kind, badges, label, self.keyword_groups, self.fallback)
