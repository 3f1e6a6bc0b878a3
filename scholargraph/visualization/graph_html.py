"""Static HTML rendering of a laid-out knowledge graph."""

import hashlib
import html
from pathlib import Path

from ..core.filters import VisibleGraph
from ..core.grouping import SUGGESTION_GROUP

# Professional color scheme with tech accent
PALETTE = [
    '#30a14e',  # GitHub green
    '#58a6ff',  # GitHub blue
    '#a371f7',  # Purple
    '#f9826c',  # Warm orange
    '#d29922',  # Gold
    '#79c0ff',  # Light blue
    '#ff7b72',  # Coral
    '#56d364',  # Light green
    '#bc8cff',  # Light purple
    '#ffa657',  # Orange
]
SUGGESTION_COLOR = '#8b949e'
STAR_COLOR = '#f2cc60'
MAX_LABEL_CHARS = 15


def group_color(group: str) -> str:
    """Stable color per group name."""
    if group == SUGGESTION_GROUP:
        return SUGGESTION_COLOR
    digest = hashlib.md5(group.encode('utf-8')).hexdigest()
    return PALETTE[int(digest[:8], 16) % len(PALETTE)]


def _short(label: str) -> str:
    return label if len(label) <= MAX_LABEL_CHARS else label[:MAX_LABEL_CHARS] + '…'


def render_svg(
    view: VisibleGraph,
    positions: dict[str, tuple[float, float]],
    width: float,
    height: float,
    node_radius: float = 20,
) -> str:
    """SVG markup for the visible nodes at their layout positions."""
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {width:g} {height:g}" '
        f'width="{width:g}" height="{height:g}">',
        '<defs><marker id="arrow" viewBox="0 0 10 10" refX="10" refY="5" markerWidth="6" '
        'markerHeight="6" orient="auto-start-reverse"><path d="M 0 0 L 10 5 L 0 10 z" '
        'fill="#7d8590"/></marker></defs>',
    ]

    for link in view.links:
        if link.source not in positions or link.target not in positions:
            continue
        x1, y1 = positions[link.source]
        x2, y2 = positions[link.target]
        dash = ' stroke-dasharray="6 4"' if link.is_suggestion else ''
        title = html.escape(f"{link.source} → {link.target}: {link.label}")
        parts.append(
            f'<line x1="{x1:.1f}" y1="{y1:.1f}" x2="{x2:.1f}" y2="{y2:.1f}" stroke="#7d8590" '
            f'stroke-width="1.5"{dash} marker-end="url(#arrow)"><title>{title}</title></line>'
        )
        if link.label:
            parts.append(
                f'<text x="{(x1 + x2) / 2:.1f}" y="{(y1 + y2) / 2:.1f}" class="link-label">'
                f'{html.escape(link.label)}</text>'
            )

    for node in view.nodes:
        if node.id not in positions:
            continue
        x, y = positions[node.id]
        color = group_color(node.group)
        dash = ' stroke-dasharray="4 3"' if node.is_suggestion else ''
        stroke = STAR_COLOR if node.starred else '#e6edf3'
        tooltip = html.escape(f"{node.label}\n[{node.kind.value}] {node.group}\n{node.reason or node.content}")
        parts.append(
            f'<g class="node"><circle cx="{x:.1f}" cy="{y:.1f}" r="{node_radius:g}" fill="{color}" '
            f'fill-opacity="{0.4 if node.is_suggestion else 0.9}" stroke="{stroke}" stroke-width="2"{dash}>'
            f'<title>{tooltip}</title></circle>'
            f'<text x="{x:.1f}" y="{y + node_radius + 12:.1f}" class="node-label">{html.escape(_short(node.label))}</text></g>'
        )

    parts.append('</svg>')
    return '\n'.join(parts)


def generate_graph_html(
    view: VisibleGraph,
    positions: dict[str, tuple[float, float]],
    output_path: Path,
    width: float = 960,
    height: float = 640,
    title: str = "Knowledge Graph",
) -> Path:
    """
    Write a standalone HTML page showing the graph.

    Suggestions are drawn dashed and faded; starred nodes get a gold ring.
    The legend lists every group present in the view.
    """
    groups = sorted({n.group for n in view.nodes})
    legend = '\n'.join(
        f'<div class="legend-item"><span class="legend-color" style="background: {group_color(g)}"></span>'
        f'{html.escape(g)}</div>'
        for g in groups
    )
    svg = render_svg(view, positions, width, height)

    html_content = f"""<!DOCTYPE html>
<html>
<head>
    <title>{html.escape(title)}</title>
    <meta charset="utf-8">
    <style>
        body {{
            font-family: 'Inter', -apple-system, BlinkMacSystemFont, sans-serif;
            margin: 0;
            padding: 0;
            background: linear-gradient(135deg, #0f1419 0%, #1a1f2e 100%);
            color: #e6edf3;
        }}

        #header {{
            background: linear-gradient(135deg, #1c2128 0%, #2d333b 100%);
            padding: 24px;
            border-bottom: 1px solid #30a14e33;
        }}

        #header h1 {{
            margin: 0;
            font-size: 24px;
            font-weight: 600;
            color: #30a14e;
        }}

        #stats {{
            margin-top: 8px;
            font-size: 13px;
            color: #8b949e;
        }}

        #legend {{
            padding: 12px 24px;
            background: #161b22;
            border-bottom: 1px solid #30363d;
        }}

        .legend-item {{
            display: inline-block;
            margin-right: 16px;
            font-size: 12px;
            color: #8b949e;
        }}

        .legend-color {{
            display: inline-block;
            width: 10px;
            height: 10px;
            border-radius: 50%;
            margin-right: 6px;
        }}

        #graph {{
            background: #0d1117;
        }}

        .node-label {{
            fill: #e6edf3;
            font-size: 11px;
            text-anchor: middle;
        }}

        .link-label {{
            fill: #7d8590;
            font-size: 9px;
            text-anchor: middle;
        }}
    </style>
</head>
<body>
    <div id="header">
        <h1>{html.escape(title)}</h1>
        <div id="stats">{len(view.nodes)} nodes · {len(view.links)} links</div>
    </div>
    <div id="legend">
{legend}
    </div>
    <div id="graph">
{svg}
    </div>
</body>
</html>
"""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html_content, encoding='utf-8')
    return output_path
