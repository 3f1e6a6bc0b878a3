#!/usr/bin/env python3
"""ScholarGraph - AI-assisted research knowledge graph."""

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .core.engine import KnowledgeGraphEngine
from .core.exceptions import CollaboratorFailure, ScholarGraphError
from .core.filters import VisibleGraph
from .core.models import Direction
from .core.snapshot import SnapshotFile
from .utils.config_loader import load_config

app = typer.Typer(
    name="scholargraph",
    help="AI-assisted knowledge graph for papers, notes and concepts",
    add_completion=False,
)
console = Console()

DEFAULT_GRAPH = Path("graph.json")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=False, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    graph_path: Path = typer.Option(DEFAULT_GRAPH, "--graph", "-g", help="Graph snapshot file"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """Curate a knowledge graph of papers, notes and concepts."""
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: failed to load configuration: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    level = "DEBUG" if debug else str((config.get("logging") or {}).get("level", "WARNING"))
    _setup_logging(level)
    ctx.obj = {"graph": graph_path, "config": config}


def _fail(e: Exception) -> typer.Exit:
    if isinstance(e, CollaboratorFailure):
        console.print(f"[red]{escape(str(e))}[/red]")
    else:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
    return typer.Exit(code=1)


def _mutate(ctx: typer.Context, action: Callable[[KnowledgeGraphEngine], Any]) -> Any:
    """Load, apply ``action`` and save under the snapshot file lock."""
    snapshot = SnapshotFile(ctx.obj["graph"])
    config = ctx.obj["config"]

    def update(data):
        engine = KnowledgeGraphEngine.from_snapshot(data, config)
        result = action(engine)
        return engine.snapshot(), result

    try:
        return snapshot.update_atomic(update)
    except (ScholarGraphError, FileNotFoundError, TimeoutError) as e:
        raise _fail(e)


def _read(ctx: typer.Context) -> KnowledgeGraphEngine:
    try:
        data = SnapshotFile(ctx.obj["graph"]).load()
    except (ScholarGraphError, TimeoutError) as e:
        raise _fail(e)
    return KnowledgeGraphEngine.from_snapshot(data, ctx.obj["config"])


def _node_table(view: VisibleGraph, title: str) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Group", style="magenta")
    table.add_column("Year", justify="right")
    table.add_column("Badges")
    table.add_column("", justify="center")
    for node in view.nodes:
        badges = ", ".join(b.type + (f" {b.partition}" if b.partition and b.partition != b.type else "") for b in node.badges)
        marker = "[yellow]★[/yellow]" if node.starred else ""
        if node.is_suggestion:
            marker = "[dim]suggested[/dim]"
        table.add_row(
            node.id,
            escape(node.label),
            node.kind.value,
            node.group,
            str(node.year or ""),
            badges,
            marker,
        )
    return table


def _link_table(view: VisibleGraph) -> Table:
    table = Table(title="Links", box=box.SIMPLE_HEAD)
    table.add_column("Source", style="cyan")
    table.add_column("Label")
    table.add_column("Target", style="cyan")
    for link in view.links:
        label = f"[dim]{escape(link.label)} (suggested)[/dim]" if link.is_suggestion else escape(link.label)
        table.add_row(link.source, label, link.target)
    return table


@app.command()
def init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing graph"),
):
    """Create an empty graph file."""
    snapshot = SnapshotFile(ctx.obj["graph"])
    if snapshot.exists and not force:
        console.print(f"[yellow]Graph already exists:[/yellow] {snapshot.file_path}")
        raise typer.Exit(code=0)
    snapshot.save(KnowledgeGraphEngine(ctx.obj["config"]).snapshot())
    console.print(f"[green]Created[/green] {snapshot.file_path}")


@app.command("add-note")
def add_note(
    ctx: typer.Context,
    label: str = typer.Option("New Note", "--label", "-l", help="Note title"),
    content: str = typer.Option("", "--content", help="Note text"),
):
    """Add a manual note."""
    node = _mutate(ctx, lambda e: e.add_note(label, content))
    console.print(f"[green]Added note[/green] {node.id} ([magenta]{node.group}[/magenta])")


@app.command("import-papers")
def import_papers(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="JSON file with a list of paper records"),
):
    """Seed the graph with paper records (id, title, abstract, year, badges)."""
    try:
        records = json.loads(file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise _fail(e)
    if isinstance(records, dict):
        records = records.get("papers") or records.get("nodes") or []
    added = _mutate(ctx, lambda e: e.import_papers(records))
    console.print(f"[green]Imported {len(added)} paper(s)[/green]")


@app.command()
def ingest(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Document to deep-parse (PDF, text...)"),
):
    """Parse a document into a paper node with its key elements."""
    with console.status(f"Parsing {file.name}..."):
        parent, children = _mutate(ctx, lambda e: e.ingest_document(file))
    console.print(f"[green]Ingested[/green] {parent.id}: {len(children)} element(s)")


@app.command("image-note")
def image_note(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Image to analyze"),
):
    """Create a note from an image's extracted text."""
    with console.status(f"Analyzing {file.name}..."):
        node = _mutate(ctx, lambda e: e.add_image_note(file))
    console.print(f"[green]Added note[/green] {node.id}")


@app.command()
def connect(ctx: typer.Context):
    """Ask the AI to connect existing nodes."""
    with console.status("Connecting nodes..."):
        added = _mutate(ctx, lambda e: e.connect())
    console.print(f"[green]Added {len(added)} link(s)[/green]")
    for link in added:
        console.print(f"  {link.source} --{escape(link.label)}--> {link.target}")


@app.command()
def suggest(ctx: typer.Context):
    """Generate suggested papers and links (replaces previous suggestions)."""
    def run(engine: KnowledgeGraphEngine):
        engine.generate_suggestions()
        return engine.suggestions.nodes, engine.suggestions.links

    with console.status("Generating suggestions..."):
        nodes, links = _mutate(ctx, run)
    table = Table(title="Suggestions", box=box.SIMPLE_HEAD)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Label")
    table.add_column("Reason", style="dim")
    for node in nodes:
        table.add_row(node.id, escape(node.label), escape(node.reason or ""))
    console.print(table)
    console.print(f"{len(links)} suggested link(s)")


@app.command()
def accept(ctx: typer.Context, node_id: str = typer.Argument(..., help="Suggested node id")):
    """Promote a suggested node (and its links to known nodes)."""
    node, moved = _mutate(ctx, lambda e: e.promote_node(node_id))
    console.print(f"[green]Accepted[/green] {node.id} with {len(moved)} link(s)")


@app.command("accept-link")
def accept_link(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Source node id"),
    target: str = typer.Argument(..., help="Target node id"),
):
    """Promote a suggested link between two graph nodes."""
    link = _mutate(ctx, lambda e: e.promote_link(source, target))
    console.print(f"[green]Accepted[/green] {link.source} --{escape(link.label)}--> {link.target}")


@app.command()
def reject(ctx: typer.Context, node_id: str = typer.Argument(..., help="Suggested node id")):
    """Discard a suggested node."""
    _mutate(ctx, lambda e: e.discard_node(node_id))
    console.print(f"[yellow]Rejected[/yellow] {node_id}")


@app.command("reject-link")
def reject_link(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Source node id"),
    target: str = typer.Argument(..., help="Target node id"),
):
    """Discard a suggested link."""
    _mutate(ctx, lambda e: e.discard_link(source, target))
    console.print(f"[yellow]Rejected[/yellow] {source} -> {target}")


@app.command()
def star(ctx: typer.Context, node_id: str = typer.Argument(..., help="Node id")):
    """Toggle the star on a node."""
    starred = _mutate(ctx, lambda e: e.toggle_star(node_id))
    console.print(f"{node_id}: {'starred' if starred else 'unstarred'}")


@app.command()
def edit(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Node id"),
    label: str | None = typer.Option(None, "--label", "-l", help="New label"),
    content: str | None = typer.Option(None, "--content", help="New content"),
):
    """Edit a node's label and/or content."""
    node = _mutate(ctx, lambda e: e.update_node_content(node_id, label, content))
    console.print(f"[green]Updated[/green] {node.id}: {escape(node.label)}")


@app.command()
def delete(ctx: typer.Context, node_id: str = typer.Argument(..., help="Node id")):
    """Delete a node; its links are kept but hidden."""
    _mutate(ctx, lambda e: e.delete_node(node_id))
    console.print(f"[yellow]Deleted[/yellow] {node_id}")


@app.command()
def show(
    ctx: typer.Context,
    search: str = typer.Option("", "--search", "-s", help="Keyword (or semantic query with --semantic)"),
    partition: str | None = typer.Option(None, "--partition", "-p", help="Badge partition or type, e.g. Q1, SCI"),
    year: int | None = typer.Option(None, "--year", "-y", help="Exact publication year"),
    older: bool = typer.Option(False, "--older", help="Only papers older than the configured year"),
    starred: bool = typer.Option(False, "--starred", help="Only starred nodes"),
    suggestions: bool = typer.Option(True, "--suggestions/--no-suggestions", help="Include suggestions"),
    semantic: bool = typer.Option(False, "--semantic", help="Ask the AI which nodes match --search"),
    links: bool = typer.Option(True, "--links/--no-links", help="List visible links"),
):
    """Show the visible graph under the given filters."""
    engine = _read(ctx)
    engine.set_partition(partition)
    engine.set_year("older" if older else year)
    engine.set_starred_only(starred)
    engine.set_show_suggestions(suggestions)
    try:
        if semantic and search:
            with console.status("Searching..."):
                engine.semantic_search(search)
        else:
            engine.set_query(search)
    except ScholarGraphError as e:
        raise _fail(e)

    view = engine.visible()
    console.print(_node_table(view, f"Nodes ({len(view.nodes)})"))
    if links and view.links:
        console.print(_link_table(view))


@app.command()
def related(ctx: typer.Context, node_id: str = typer.Argument(..., help="Node id")):
    """Show a node's details and its visible relations."""
    engine = _read(ctx)
    engine.set_show_suggestions(True)
    try:
        node = engine.select(node_id)
        relations = engine.related_links()
    except ScholarGraphError as e:
        raise _fail(e)

    body = f"[bold]{escape(node.label)}[/bold]\n[dim]{node.kind.value} · {node.group} · added {node.added_date}[/dim]"
    if node.reason:
        body += f"\n[italic]Why: {escape(node.reason)}[/italic]"
    if node.content:
        body += f"\n\n{escape(node.content)}"
    console.print(Panel.fit(body, title=node.id, border_style="cyan"))

    table = Table(title="Related", box=box.SIMPLE_HEAD)
    table.add_column("Direction")
    table.add_column("Relation")
    table.add_column("Node", style="cyan")
    for rel in relations:
        arrow = "→" if rel.direction is Direction.OUTGOING else "←"
        table.add_row(f"{arrow} {rel.direction.value}", escape(rel.link.label), f"{escape(rel.other.label)} ({rel.other.id})")
    console.print(table)


@app.command()
def layout(
    ctx: typer.Context,
    ticks: int | None = typer.Option(None, "--ticks", "-t", help="Maximum ticks (default: until settled)"),
    html_out: Path | None = typer.Option(None, "--html", help="Write an HTML rendering here"),
):
    """Run the force layout and store positions."""
    def run(engine: KnowledgeGraphEngine):
        engine.set_show_suggestions(True)
        taken = engine.run_layout(ticks)
        return taken, engine.layout.settled, engine.visible(), engine.layout.positions()

    taken, settled, view, positions = _mutate(ctx, run)
    state = "settled" if settled else "still moving"
    console.print(f"Layout: {taken} tick(s), {state}")
    if html_out:
        from .visualization.graph_html import generate_graph_html

        cfg = ctx.obj["config"].get("layout") or {}
        path = generate_graph_html(
            view, positions, html_out,
            width=cfg.get("width", 960), height=cfg.get("height", 640),
        )
        console.print(f"\n[bold]Open in browser:[/bold] [link]file://{path.resolve()}[/link]")


@app.command()
def chat(ctx: typer.Context, query: str = typer.Argument(..., help="Question about the graph")):
    """Ask a question with the graph as context."""
    engine = _read(ctx)
    engine.set_show_suggestions(True)
    try:
        with console.status("Thinking..."):
            answer = engine.chat(query)
    except ScholarGraphError as e:
        raise _fail(e)
    console.print(Panel(escape(answer), title="Answer", border_style="green"))


if __name__ == "__main__":
    app()
