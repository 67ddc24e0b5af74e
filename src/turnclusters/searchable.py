"""Flatten clusters into timing-annotated, search- and display-ready content."""

from __future__ import annotations

import json
import logging

from .config import TOOL_INPUT_INDENT
from .models import (
    ClusterTimingData,
    ContentBlock,
    Conversation,
    DocumentMeta,
    Entry,
    SearchableCluster,
    ThinkingBlockData,
    ToolResultBlock,
    ToolResultData,
    ToolUseData,
    TurnCluster,
)
from .strategies import ClaudeCodeStrategy, ClusterStrategy, StrategyRegistry, create_default_registry

logger = logging.getLogger(__name__)


class _ThinkingTimingCursor:
    """Hands out pre-extracted thinking timings in log order.

    A timing is consumed only when its text equals the thinking block being
    looked up; on a mismatch the block gets no duration and the cursor stays.
    """

    def __init__(self, timings: list[ThinkingBlockData]):
        self._timings = timings
        self._position = 0

    def duration_for(self, text: str) -> int | None:
        if self._position >= len(self._timings):
            return None
        timing = self._timings[self._position]
        if timing.text != text:
            return None
        self._position += 1
        return timing.duration_ms


def document_meta(block: ContentBlock) -> DocumentMeta | None:
    """Describe an image or document block; None for any other block type."""
    if block.type == "image":
        source = block.source
        return DocumentMeta(
            media_type=source.media_type or "image/unknown",
            source_type="url" if source.type == "url" else "base64",
            size=len(source.data) if source.data is not None else None,
            url=source.url,
            data=source.data,
        )
    if block.type == "document":
        source = block.source
        return DocumentMeta(
            media_type=source.media_type or "application/octet-stream",
            source_type=source.type if source.type in ("url", "file") else "base64",
            size=len(source.data) if source.data is not None else None,
            title=block.title,
            url=source.url,
            data=source.data,
            file_id=source.file_id,
        )
    return None


def tool_result_text(block: ToolResultBlock) -> str:
    """Render a tool result's content as plain text.

    Structured results keep the text of their nested text blocks, one per line.
    """
    if isinstance(block.content, str):
        return block.content
    return "\n".join(nested.text for nested in block.content if nested.type == "text")


def extract_searchable_content(
    clusters: list[TurnCluster],
    entries: list[Entry] | None = None,
    strategy: ClusterStrategy | None = None,
) -> list[SearchableCluster]:
    """Project each cluster into a SearchableCluster, preserving order.

    Tool durations come from the tool_use/tool_result timestamps the strategy
    extracts from ``entries``; thinking durations are matched by exact text,
    in log order, across all clusters.
    """
    if strategy is None:
        strategy = ClaudeCodeStrategy()
    timing = strategy.extract_timing_data(entries)
    thinking_cursor = _ThinkingTimingCursor(timing.thinking_timings)

    results: list[SearchableCluster] = []
    for cluster in clusters:
        searchable = SearchableCluster(
            cluster_index=cluster.index,
            is_sidechain=cluster.is_sidechain,
            agent_id=cluster.agent_id,
            has_error=cluster.has_error,
            stop_reason=cluster.stop_reason,
            error=cluster.assistant_turn.error if cluster.assistant_turn is not None else None,
        )

        if cluster.user_turn is not None:
            searchable.user_text = "\n".join(
                block.text for block in cluster.user_turn.content if block.type == "text"
            )
            for block in cluster.user_turn.content:
                meta = document_meta(block)
                if meta is not None:
                    searchable.documents.append(meta)

        if cluster.assistant_turn is not None:
            assistant_parts: list[str] = []
            for block in cluster.assistant_turn.content:
                if block.type == "text":
                    assistant_parts.append(block.text)
                elif block.type == "thinking":
                    searchable.thinking_blocks.append(
                        ThinkingBlockData(
                            text=block.thinking,
                            duration_ms=thinking_cursor.duration_for(block.thinking),
                        )
                    )
                elif block.type == "tool_use":
                    searchable.tool_uses.append(
                        ToolUseData(
                            name=block.name,
                            input=json.dumps(block.input or {}, indent=TOOL_INPUT_INDENT, ensure_ascii=False),
                            id=block.id,
                        )
                    )
                elif block.type == "tool_result":
                    searchable.tool_results.append(
                        ToolResultData(
                            content=tool_result_text(block),
                            is_error=bool(block.is_error),
                            duration_ms=_tool_duration(block.tool_use_id, timing),
                        )
                    )
                else:
                    meta = document_meta(block)
                    if meta is not None:
                        searchable.documents.append(meta)
            searchable.assistant_text = "\n".join(assistant_parts)

        results.append(searchable)

    return results


def _tool_duration(tool_use_id: str, timing: ClusterTimingData) -> int | None:
    use_time = timing.tool_use_timestamps.get(tool_use_id)
    result_time = timing.tool_result_timestamps.get(tool_use_id)
    if use_time is None or result_time is None:
        return None
    if result_time <= use_time:
        return None
    return result_time - use_time


def extract_conversation_content(
    conversation: Conversation,
    clusters: list[TurnCluster],
    registry: StrategyRegistry | None = None,
) -> list[SearchableCluster]:
    """Extract searchable content using the conversation's entries and source strategy."""
    if registry is None:
        registry = create_default_registry()
    strategy = registry.get(conversation.meta.source)
    logger.debug("Extracting %d clusters with strategy %r", len(clusters), strategy.id)
    return extract_searchable_content(clusters, conversation.entries, strategy)
