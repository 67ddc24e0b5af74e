"""CLI interface for turnclusters."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from pathlib import Path

import click

from . import __version__
from .builder import build_conversation_clusters
from .config import LOG_LEVEL, NORMAL_STOP_REASON
from .exporter import export_html, export_markdown, safe_filename
from .loader import load_conversation
from .metrics import calculate_cluster_metrics
from .searchable import extract_conversation_content
from .sources import create_source_registry
from .strategies import create_default_registry

source_option = click.option(
    "--source",
    default=None,
    help="Source id to resolve the clustering strategy (overrides meta.source).",
)


@click.group()
@click.version_option(version=__version__, prog_name="turnclusters")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def cli(verbose: bool):
    """turnclusters: group AI assistant traces into interaction rounds.

    Each command reads a conversation JSON document (meta, turns and
    optionally the raw entries) as produced by a trace parser.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@source_option
def clusters(path: str, source: str | None):
    """List the clusters built from a conversation."""
    conversation = load_conversation(path, source=source)
    built = build_conversation_clusters(conversation, create_default_registry())

    if not built:
        click.echo("No clusters.")
        return

    for cluster in built:
        user_pos = "-" if cluster.user_turn_index is None else cluster.user_turn_index
        assistant_pos = "-" if cluster.assistant_turn_index is None else cluster.assistant_turn_index
        line = (
            f"#{cluster.index:<4} turns {user_pos}/{assistant_pos}  "
            f"thinking={cluster.thinking_count} tools={cluster.tool_count} docs={cluster.document_count}"
        )
        flags = []
        if cluster.is_sidechain:
            flags.append("sidechain")
        if cluster.agent_id:
            flags.append(f"agent:{cluster.agent_id}")
        if cluster.stop_reason and cluster.stop_reason != NORMAL_STOP_REASON:
            flags.append(f"stop:{cluster.stop_reason}")
        if flags:
            line += "  [" + ", ".join(flags) + "]"
        if cluster.has_error:
            line = click.style(line, fg="red")
        click.echo(line)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@source_option
@click.option("--json", "as_json", is_flag=True, help="Print metrics as JSON.")
def metrics(path: str, source: str | None, as_json: bool):
    """Show token and content metrics per cluster."""
    conversation = load_conversation(path, source=source)
    built = build_conversation_clusters(conversation, create_default_registry())
    results = calculate_cluster_metrics(built)

    if as_json:
        click.echo(json.dumps([m.model_dump(by_alias=True) for m in results], indent=2))
        return

    click.echo()
    click.echo(click.style("Cluster Metrics", bold=True))
    for m in results:
        click.echo(
            f"  #{m.index:<4} in={m.input_tokens:,} out={m.output_tokens:,} "
            f"total={m.total_tokens:,} chars={m.content_length:,}"
        )
    click.echo()
    click.echo(f"  Clusters:       {len(results):,}")
    click.echo(f"  Input tokens:   {sum(m.input_tokens for m in results):,}")
    click.echo(f"  Output tokens:  {sum(m.output_tokens for m in results):,}")
    click.echo(f"  Total tokens:   {sum(m.total_tokens for m in results):,}")
    click.echo()


EXTENSIONS = {"markdown": "md", "html": "html", "json": "json"}


@cli.command("export")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@source_option
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["markdown", "html", "json"]),
    default="markdown",
    show_default=True,
)
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default=None,
    help="Write to a file instead of stdout. A directory gets a file named after the title.",
)
@click.option("--title", default=None, help="Document title (defaults to meta.title).")
def export_cmd(path: str, source: str | None, fmt: str, output: str | None, title: str | None):
    """Export the searchable content of a conversation."""
    conversation = load_conversation(path, source=source)
    registry = create_default_registry()
    built = build_conversation_clusters(conversation, registry)
    searchable = extract_conversation_content(conversation, built, registry)

    source_registry = create_source_registry()
    source_config = source_registry.get(conversation.meta.source)
    default_title = source_config.default_title if source_config else "Conversation"
    title = title or conversation.meta.title or default_title

    if fmt == "json":
        text = json.dumps([s.model_dump(by_alias=True) for s in searchable], indent=2, ensure_ascii=False)
    else:
        render = export_html if fmt == "html" else export_markdown
        text = render(
            searchable,
            title,
            sources=source_registry,
            source_id=conversation.meta.source,
            exported_at=datetime.now(),
        )

    if output:
        target = Path(output)
        if target.is_dir():
            target = target / f"{safe_filename(title)}.{EXTENSIONS[fmt]}"
        target.write_text(text, encoding="utf-8")
        click.echo(f"Wrote {len(searchable)} clusters to {target}", err=True)
    else:
        click.echo(text)


@cli.command()
def sources():
    """List registered clustering strategies and source configurations."""
    registry = create_default_registry()
    source_registry = create_source_registry()

    click.echo()
    click.echo(click.style("Strategies", bold=True))
    for strategy_id in registry.get_ids():
        marker = " (default)" if strategy_id == registry.default.id else ""
        click.echo(f"  {strategy_id}{marker}")

    click.echo()
    click.echo(click.style("Sources", bold=True))
    for config in source_registry.get_all():
        click.echo(f"  {config.id}: {config.name}")
        click.echo(f"    Extensions:  {', '.join(config.file_extensions)}")
        capabilities = [name for name, enabled in config.capabilities.model_dump().items() if enabled]
        click.echo(f"    Capabilities: {', '.join(capabilities) or 'none'}")
    click.echo()
