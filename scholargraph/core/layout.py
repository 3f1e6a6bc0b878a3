"""Force-directed layout for the visible graph.

Follows the d3-force model: alpha cools geometrically toward ``alpha_target``,
forces write into velocities, and velocities decay on integration.  Forces:
many-body repulsion, link springs, weak x/y centering and collision radii.

State machine::

    Idle --set_graph--> Settling --settled--> Idle
    Settling/Idle --drag_start--> Dragging --drag_end--> Settling
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Sequence
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

from .exceptions import NotFound
from .models import Link, Node

logger = logging.getLogger(__name__)

INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


class LayoutState(str, Enum):
    IDLE = "idle"
    SETTLING = "settling"
    DRAGGING = "dragging"


@dataclass
class LayoutConfig:
    width: float = 960.0
    height: float = 640.0
    link_distance: float = 150.0
    charge_strength: float = -300.0
    center_strength: float = 0.05
    collide_strength: float = 1.0
    node_radius: float = 20.0
    char_width: float = 5.0
    max_label_chars: int = 15
    alpha_min: float = 0.001
    alpha_decay: float | None = None  # derived from alpha_min when unset
    velocity_decay: float = 0.4
    reheat_alpha: float = 0.3
    drag_alpha_target: float = 0.3
    energy_threshold: float = 0.01
    max_ticks: int = 300
    seed: int = 0

    def __post_init__(self):
        if self.alpha_decay is None:
            self.alpha_decay = 1 - self.alpha_min ** (1 / 300)

    @classmethod
    def from_config(cls, config: dict[str, Any] | None) -> LayoutConfig:
        section = (config or {}).get("layout", {}) if isinstance(config, dict) else {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (section or {}).items() if k in known})


@dataclass
class NodePosition:
    id: str
    x: float
    y: float
    radius: float
    vx: float = 0.0
    vy: float = 0.0
    fx: float | None = None
    fy: float | None = None

    @property
    def pinned(self) -> bool:
        return self.fx is not None


def label_radius(label: str, cfg: LayoutConfig) -> float:
    """Collision radius large enough for the truncated label."""
    shown = len(label) if len(label) <= cfg.max_label_chars else cfg.max_label_chars + 3
    return max(cfg.node_radius, shown * cfg.char_width / 2)


class LayoutSimulation:
    """Iterative relaxation over the visible node/link arrays."""

    def __init__(self, config: LayoutConfig | None = None):
        self.config = config or LayoutConfig()
        self.alpha = 0.0
        self.alpha_target = 0.0
        self.state = LayoutState.IDLE
        self.ticks = 0
        self._positions: dict[str, NodePosition] = {}
        self._remembered: dict[str, tuple[float, float]] = {}
        self._links: list[tuple[str, str]] = []
        self._link_strength: list[float] = []
        self._link_bias: list[float] = []
        self._dragging: str | None = None
        self._ticks_since_heat = 0
        self._random = random.Random(self.config.seed)

    # ---- reads -------------------------------------------------------

    @property
    def center(self) -> tuple[float, float]:
        return self.config.width / 2, self.config.height / 2

    @property
    def settled(self) -> bool:
        return self.state is LayoutState.IDLE

    @property
    def dragging(self) -> str | None:
        return self._dragging

    def position(self, node_id: str) -> tuple[float, float]:
        pos = self._positions.get(node_id)
        if pos is None:
            raise NotFound(node_id, "layout")
        return pos.x, pos.y

    def positions(self) -> dict[str, tuple[float, float]]:
        return {nid: (p.x, p.y) for nid, p in self._positions.items()}

    def node(self, node_id: str) -> NodePosition:
        pos = self._positions.get(node_id)
        if pos is None:
            raise NotFound(node_id, "layout")
        return pos

    def kinetic_energy(self) -> float:
        return sum(p.vx * p.vx + p.vy * p.vy for p in self._positions.values() if not p.pinned)

    # ---- graph changes -----------------------------------------------

    def remember(self, positions: dict[str, tuple[float, float]]) -> None:
        """Seed positions for nodes that may appear in a later visible set."""
        self._remembered.update(positions)

    def set_graph(self, nodes: Sequence[Node], links: Sequence[Link]) -> None:
        """Swap in a new visible set, keeping positions of surviving nodes."""
        cfg = self.config
        previous = self._positions
        for nid, pos in previous.items():
            self._remembered[nid] = (pos.x, pos.y)

        ids = [n.id for n in nodes]
        id_set = set(ids)
        self._links = [
            (l.source, l.target) for l in links
            if l.source in id_set and l.target in id_set and l.source != l.target
        ]

        neighbours: dict[str, list[str]] = {nid: [] for nid in ids}
        for s, t in self._links:
            neighbours[s].append(t)
            neighbours[t].append(s)

        positions: dict[str, NodePosition] = {}
        preserved = 0
        for index, node in enumerate(nodes):
            radius = label_radius(node.label, cfg)
            old = previous.get(node.id)
            if old is not None:
                old.radius = radius
                positions[node.id] = old
                preserved += 1
                continue
            if node.id in self._remembered:
                x, y = self._remembered[node.id]
                preserved += 1
            else:
                x, y = self._initial_position(index, node.id, neighbours, positions, previous)
            positions[node.id] = NodePosition(node.id, x, y, radius)
        self._positions = positions

        count = {nid: 0 for nid in ids}
        for s, t in self._links:
            count[s] += 1
            count[t] += 1
        self._link_strength = [1 / min(count[s], count[t]) for s, t in self._links]
        self._link_bias = [count[s] / (count[s] + count[t]) for s, t in self._links]

        if self._dragging is not None and self._dragging not in positions:
            self._dragging = None
            self.alpha_target = 0.0

        if not positions:
            self.alpha = 0.0
            self._set_state(LayoutState.IDLE)
            return
        if preserved:
            self.alpha = max(self.alpha, cfg.reheat_alpha)
        else:
            self.alpha = 1.0
        self._ticks_since_heat = 0
        if self._dragging is None:
            self._set_state(LayoutState.SETTLING)

    def _initial_position(self, index, node_id, neighbours, placed, previous) -> tuple[float, float]:
        """Near an already placed neighbour if any, else on a phyllotaxis spiral."""
        for other in neighbours.get(node_id, []):
            anchor = placed.get(other) or previous.get(other)
            if anchor is not None:
                angle = (index + 1) * INITIAL_ANGLE
                dist = self.config.link_distance / 2
                return anchor.x + dist * math.cos(angle), anchor.y + dist * math.sin(angle)
        cx, cy = self.center
        radius = INITIAL_RADIUS * math.sqrt(0.5 + index)
        angle = index * INITIAL_ANGLE
        return cx + radius * math.cos(angle), cy + radius * math.sin(angle)

    # ---- drag --------------------------------------------------------

    def drag_start(self, node_id: str) -> None:
        pos = self.node(node_id)
        pos.fx, pos.fy = pos.x, pos.y
        pos.vx = pos.vy = 0.0
        self._dragging = node_id
        self.alpha_target = self.config.drag_alpha_target
        self.alpha = max(self.alpha, self.config.drag_alpha_target)
        self._set_state(LayoutState.DRAGGING)

    def drag_move(self, node_id: str, x: float, y: float) -> None:
        pos = self.node(node_id)
        pos.fx, pos.fy = float(x), float(y)
        pos.x, pos.y = float(x), float(y)

    def drag_end(self, node_id: str) -> None:
        pos = self.node(node_id)
        # The node stays where it was dropped and rejoins integration from rest.
        if pos.fx is not None:
            pos.x, pos.y = pos.fx, pos.fy
        pos.fx = pos.fy = None
        pos.vx = pos.vy = 0.0
        if self._dragging == node_id:
            self._dragging = None
        self.alpha_target = 0.0
        self._ticks_since_heat = 0
        self._set_state(LayoutState.SETTLING)

    # ---- ticking -----------------------------------------------------

    def tick(self) -> bool:
        """Advance one step. Returns True while the layout is still moving."""
        if self.state is LayoutState.IDLE:
            return False
        cfg = self.config
        self.alpha += (self.alpha_target - self.alpha) * cfg.alpha_decay

        self._apply_links()
        self._apply_charge()
        self._apply_centering()
        self._apply_collisions()

        keep = 1 - cfg.velocity_decay
        for pos in self._positions.values():
            if pos.fx is None:
                pos.vx *= keep
                pos.vy *= keep
                pos.x += pos.vx
                pos.y += pos.vy
            else:
                pos.x, pos.y = pos.fx, pos.fy
                pos.vx = pos.vy = 0.0

        self.ticks += 1
        self._ticks_since_heat += 1
        if self.state is LayoutState.SETTLING:
            energy = self.kinetic_energy()
            if self.alpha < cfg.alpha_min or (self._ticks_since_heat > 1 and energy < cfg.energy_threshold):
                self._set_state(LayoutState.IDLE)
        return self.state is not LayoutState.IDLE

    def run(self, max_ticks: int | None = None) -> int:
        """Tick until settled or the budget is spent; returns ticks taken."""
        budget = self.config.max_ticks if max_ticks is None else max_ticks
        taken = 0
        while taken < budget and self.state is not LayoutState.IDLE:
            taken += 1
            if not self.tick():
                break
        return taken

    # ---- forces ------------------------------------------------------

    def _jiggle(self) -> float:
        return (self._random.random() - 0.5) * 1e-6

    def _apply_links(self) -> None:
        distance = self.config.link_distance
        for (s_id, t_id), strength, bias in zip(self._links, self._link_strength, self._link_bias):
            s = self._positions[s_id]
            t = self._positions[t_id]
            x = (t.x + t.vx - s.x - s.vx) or self._jiggle()
            y = (t.y + t.vy - s.y - s.vy) or self._jiggle()
            length = math.sqrt(x * x + y * y)
            length = (length - distance) / length * self.alpha * strength
            x *= length
            y *= length
            t.vx -= x * bias
            t.vy -= y * bias
            s.vx += x * (1 - bias)
            s.vy += y * (1 - bias)

    def _apply_charge(self) -> None:
        strength = self.config.charge_strength * self.alpha
        nodes = list(self._positions.values())
        for i, a in enumerate(nodes):
            for b in nodes[i + 1:]:
                x = b.x - a.x
                y = b.y - a.y
                if x == 0:
                    x = self._jiggle()
                if y == 0:
                    y = self._jiggle()
                dist2 = x * x + y * y
                if dist2 < 1:
                    dist2 = math.sqrt(dist2)
                a.vx += x * strength / dist2
                a.vy += y * strength / dist2
                b.vx -= x * strength / dist2
                b.vy -= y * strength / dist2

    def _apply_centering(self) -> None:
        cx, cy = self.center
        k = self.config.center_strength * self.alpha
        for pos in self._positions.values():
            pos.vx += (cx - pos.x) * k
            pos.vy += (cy - pos.y) * k

    def _apply_collisions(self) -> None:
        strength = self.config.collide_strength
        nodes = list(self._positions.values())
        for i, a in enumerate(nodes):
            ri2 = a.radius * a.radius
            xi = a.x + a.vx
            yi = a.y + a.vy
            for b in nodes[i + 1:]:
                r = a.radius + b.radius
                x = xi - b.x - b.vx
                y = yi - b.y - b.vy
                dist2 = x * x + y * y
                if dist2 >= r * r:
                    continue
                if x == 0:
                    x = self._jiggle()
                    dist2 += x * x
                if y == 0:
                    y = self._jiggle()
                    dist2 += y * y
                dist = math.sqrt(dist2)
                push = (r - dist) / dist * strength
                x *= push
                y *= push
                rj2 = b.radius * b.radius
                share = rj2 / (ri2 + rj2)
                a.vx += x * share
                a.vy += y * share
                b.vx -= x * (1 - share)
                b.vy -= y * (1 - share)

    def _set_state(self, state: LayoutState) -> None:
        if state is not self.state:
            logger.debug("Layout %s -> %s (alpha=%.4f, tick=%d)", self.state.value, state.value, self.alpha, self.ticks)
            self.state = state
