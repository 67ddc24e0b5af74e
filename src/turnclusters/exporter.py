"""Render searchable clusters as Markdown or standalone HTML transcripts."""

from __future__ import annotations

import html
import re
from datetime import datetime

from markdown_it import MarkdownIt

from .config import NORMAL_STOP_REASON
from .models import SearchableCluster
from .sources import SourceRegistry, create_source_registry

EXPORTER_NAME = "turnclusters"

# Raw HTML in message bodies is escaped, not passed through
_markdown = MarkdownIt("commonmark", {"html": False, "breaks": True}).enable(["table", "strikethrough"])

HTML_STYLES = """
    * { box-sizing: border-box; }
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
           line-height: 1.6; max-width: 900px; margin: 0 auto; padding: 20px; background: #f5f5f5; color: #333; }
    h1 { border-bottom: 2px solid #ddd; padding-bottom: 10px; }
    .turn { margin-bottom: 30px; background: #fff; border-radius: 8px; padding: 20px; }
    .turn-sidechain { border-left: 3px solid #bbb; opacity: 0.85; }
    .user { background: #e3f2fd; padding: 15px; border-radius: 6px; margin-bottom: 15px; }
    .user-label { font-weight: 600; color: #1565c0; margin-bottom: 5px; }
    .thinking { background: #fff3e0; padding: 15px; border-radius: 6px; margin-bottom: 10px; }
    .thinking-header { font-weight: 600; color: #e65100; cursor: pointer; }
    .thinking-content { font-size: 14px; color: #666; }
    .tool { background: #f3e5f5; padding: 15px; border-radius: 6px; margin-bottom: 10px; }
    .tool-header { font-weight: 600; color: #7b1fa2; cursor: pointer; }
    .tool-content { white-space: pre-wrap; font-size: 13px; font-family: monospace;
                    background: rgba(0,0,0,0.05); padding: 10px; border-radius: 4px; overflow-x: auto; }
    .tool-result { background: #e8f5e9; }
    .tool-result .tool-header { color: #2e7d32; }
    .tool-error { background: #ffebee; }
    .tool-error .tool-header { color: #c62828; }
    .badges { display: flex; gap: 6px; margin-bottom: 10px; flex-wrap: wrap; }
    .badge { display: inline-block; padding: 2px 8px; border-radius: 10px; font-size: 11px; font-weight: 600; }
    .badge-sidechain { background: #e0e0e0; color: #555; }
    .badge-agent { background: #e3f2fd; color: #1565c0; }
    .badge-stop-reason { background: #fff3e0; color: #e65100; }
    .error-banner { background: #ffebee; color: #c62828; padding: 10px 15px; border-radius: 6px;
                    margin-bottom: 10px; border-left: 4px solid #c62828; }
    .meta { color: #666; font-size: 12px; margin-top: 20px; padding-top: 10px; border-top: 1px solid #ddd; }
    code { background: rgba(0,0,0,0.08); padding: 0.15em 0.4em; border-radius: 3px; font-family: monospace; }
    pre { background: rgba(0,0,0,0.08); padding: 12px; border-radius: 6px; overflow-x: auto; }
    pre code { background: none; padding: 0; }
    table { border-collapse: collapse; }
    th, td { border: 1px solid #ddd; padding: 6px 10px; }
"""


def escape_html(text: str) -> str:
    return html.escape(text, quote=False)


def render_markdown(text: str) -> str:
    """Render a message body to HTML with any embedded raw HTML escaped."""
    if not text:
        return ""
    return _markdown.render(text)


def safe_filename(title: str) -> str:
    """Filesystem-safe stem derived from a conversation title."""
    stem = re.sub(r"[^a-z0-9\s-]", "", title, flags=re.IGNORECASE)
    stem = re.sub(r"\s+", "-", stem)[:50].lower()
    return stem or "conversation"


def _format_footer(exported_at: datetime) -> str:
    return f"Exported from {EXPORTER_NAME} on {exported_at:%Y-%m-%d %H:%M:%S}"


def _format_duration(duration_ms: int | None) -> str:
    if duration_ms is None:
        return ""
    if duration_ms < 1000:
        return f", {duration_ms} ms"
    return f", {duration_ms / 1000:.1f}s"


def _details(summary: str, body: str) -> str:
    return f"<details>\n<summary>{summary}</summary>\n\n```\n{body}\n```\n\n</details>\n\n"


def _format_badges(cluster: SearchableCluster, sidechain_label: str) -> str:
    badges: list[str] = []
    if cluster.is_sidechain:
        badges.append(f"`{sidechain_label}`")
    if cluster.agent_id:
        badges.append(f"`agent: {cluster.agent_id}`")
    if cluster.stop_reason and cluster.stop_reason != NORMAL_STOP_REASON:
        badges.append(f"`stop: {cluster.stop_reason}`")
    return " ".join(badges)


def _format_cluster(number: int, cluster: SearchableCluster, sidechain_label: str) -> str:
    """Format one cluster as a Markdown section."""
    text = f"---\n\n## Turn {number}\n\n"

    badges = _format_badges(cluster, sidechain_label)
    if badges:
        text += f"{badges}\n\n"

    if cluster.has_error:
        text += f"> **Error:** {cluster.error or 'Error occurred'}\n\n"

    if cluster.user_text:
        text += f"### User\n\n{cluster.user_text}\n\n"

    text += "### Assistant\n\n"

    for thinking in cluster.thinking_blocks:
        summary = f"Thinking ({len(thinking.text):,} chars{_format_duration(thinking.duration_ms)})"
        text += _details(summary, thinking.text)

    # Results are paired with tool uses by position
    for position, tool_use in enumerate(cluster.tool_uses):
        text += _details(f"Tool: {tool_use.name}", tool_use.input)
        if position < len(cluster.tool_results):
            result = cluster.tool_results[position]
            label = "Error" if result.is_error else "Result"
            text += _details(f"{label}{_format_duration(result.duration_ms)}", result.content)

    if cluster.assistant_text:
        text += f"{cluster.assistant_text}\n\n"

    return text


def export_markdown(
    clusters: list[SearchableCluster],
    title: str,
    sources: SourceRegistry | None = None,
    source_id: str | None = None,
    exported_at: datetime | None = None,
) -> str:
    """Render clusters as a Markdown document titled ``title``.

    The export footer is only written when ``exported_at`` is given.
    """
    if sources is None:
        sources = create_source_registry()
    sidechain_label = sources.get_badge(source_id, "sidechain", "sidechain")

    parts = [f"# {title}\n\n"]
    for number, cluster in enumerate(clusters, start=1):
        parts.append(_format_cluster(number, cluster, sidechain_label))
    if exported_at is not None:
        parts.append(f"---\n\n*{_format_footer(exported_at)}*\n")
    elif clusters:
        parts.append("---\n")
    return "".join(parts)


def _html_details(css_class: str, header_class: str, summary: str, content_class: str, body: str) -> str:
    return (
        f'      <details class="{css_class}">\n'
        f'        <summary class="{header_class}">{summary}</summary>\n'
        f'        <div class="{content_class}">{body}</div>\n'
        "      </details>\n"
    )


def _html_cluster(cluster: SearchableCluster, sidechain_label: str) -> str:
    turn_class = "turn turn-sidechain" if cluster.is_sidechain else "turn"
    text = f'  <div class="{turn_class}">\n'

    badges: list[str] = []
    if cluster.is_sidechain:
        badges.append(f'<span class="badge badge-sidechain">{escape_html(sidechain_label)}</span>')
    if cluster.agent_id:
        badges.append(f'<span class="badge badge-agent">{escape_html(cluster.agent_id)}</span>')
    if cluster.stop_reason and cluster.stop_reason != NORMAL_STOP_REASON:
        badges.append(f'<span class="badge badge-stop-reason">{escape_html(cluster.stop_reason)}</span>')
    if badges:
        text += f'    <div class="badges">{"".join(badges)}</div>\n'

    if cluster.has_error:
        text += f'    <div class="error-banner">{escape_html(cluster.error or "Error occurred")}</div>\n'

    if cluster.user_text:
        text += (
            '    <div class="user">\n'
            '      <div class="user-label">User</div>\n'
            f"      <div>{render_markdown(cluster.user_text)}</div>\n"
            "    </div>\n"
        )

    text += '    <div class="assistant">\n'

    for thinking in cluster.thinking_blocks:
        summary = f"Thinking ({len(thinking.text):,} chars{_format_duration(thinking.duration_ms)})"
        text += _html_details("thinking", "thinking-header", summary, "thinking-content", render_markdown(thinking.text))

    for position, tool_use in enumerate(cluster.tool_uses):
        text += _html_details(
            "tool", "tool-header", f"Tool: {escape_html(tool_use.name)}", "tool-content", escape_html(tool_use.input)
        )
        if position < len(cluster.tool_results):
            result = cluster.tool_results[position]
            css_class = "tool tool-error" if result.is_error else "tool tool-result"
            label = "Error" if result.is_error else "Result"
            text += _html_details(
                css_class,
                "tool-header",
                f"{label}{_format_duration(result.duration_ms)}",
                "tool-content",
                escape_html(result.content),
            )

    if cluster.assistant_text:
        text += f'      <div class="text">{render_markdown(cluster.assistant_text)}</div>\n'

    text += "    </div>\n  </div>\n"
    return text


def export_html(
    clusters: list[SearchableCluster],
    title: str,
    sources: SourceRegistry | None = None,
    source_id: str | None = None,
    exported_at: datetime | None = None,
) -> str:
    """Render clusters as a standalone HTML page titled ``title``.

    Titles, labels and tool payloads are escaped; user, assistant and
    thinking text are rendered as Markdown.
    """
    if sources is None:
        sources = create_source_registry()
    sidechain_label = sources.get_badge(source_id, "sidechain", "sidechain")
    safe_title = escape_html(title)

    parts = [
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '  <meta charset="UTF-8">\n'
        '  <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"  <title>{safe_title}</title>\n"
        f"  <style>{HTML_STYLES}</style>\n"
        "</head>\n"
        "<body>\n"
        f"  <h1>{safe_title}</h1>\n"
    ]
    for cluster in clusters:
        parts.append(_html_cluster(cluster, sidechain_label))
    if exported_at is not None:
        parts.append(f'  <div class="meta">{_format_footer(exported_at)}</div>\n')
    parts.append("</body>\n</html>\n")
    return "".join(parts)
