"""Per-source absorption and timing strategies, and the registry that resolves them."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Protocol

from .config import DEFAULT_SOURCE_ID
from .models import ClusterTimingData, Entry, ThinkingBlockData, Turn

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ClusterStrategy(Protocol):
    """Rules one trace source uses for grouping turns and timing content.

    ``should_absorb_into_previous`` decides whether a turn is folded into the
    open cluster's assistant content instead of starting a new cluster.
    ``extract_timing_data`` derives tool and thinking timings from the raw
    entry log.
    """

    id: str

    def should_absorb_into_previous(self, turn: Turn) -> bool: ...

    def extract_timing_data(self, entries: list[Entry] | None) -> ClusterTimingData: ...


def to_epoch_ms(timestamp: str | None) -> int | None:
    """Convert an ISO-8601 timestamp to epoch milliseconds.

    Offset-less timestamps are taken as UTC. Returns None for missing or
    unparsable values.
    """
    if not timestamp:
        return None
    try:
        parsed = datetime.fromisoformat(timestamp.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (parsed - _EPOCH) // timedelta(milliseconds=1)


def is_tool_result_only(turn: Turn) -> bool:
    """True for user turns made entirely of tool_result blocks.

    Claude Code logs tool outputs under the user role; these are not real
    user messages.
    """
    return (
        turn.role == "user"
        and len(turn.content) > 0
        and all(block.type == "tool_result" for block in turn.content)
    )


class ClaudeCodeStrategy:
    """Built-in strategy for Claude Code session logs."""

    id = "claude-code"

    def should_absorb_into_previous(self, turn: Turn) -> bool:
        return is_tool_result_only(turn)

    def extract_timing_data(self, entries: list[Entry] | None) -> ClusterTimingData:
        timing = ClusterTimingData()
        if not entries:
            return timing

        # Only entries with a usable timestamp take part in timing
        timed: list[tuple[Entry, int]] = []
        for entry in entries:
            entry_time = to_epoch_ms(entry.timestamp)
            if entry_time is None:
                if entry.timestamp:
                    logger.debug("Skipping entry %s: unparsable timestamp %r", entry.uuid, entry.timestamp)
                continue
            timed.append((entry, entry_time))

        for position, (entry, entry_time) in enumerate(timed):
            next_time = timed[position + 1][1] if position + 1 < len(timed) else None

            if entry.type == "assistant" and entry.parsed_assistant_message is not None:
                for block in entry.parsed_assistant_message.content:
                    if block.type == "tool_use":
                        timing.tool_use_timestamps[block.id] = entry_time
                    elif block.type == "thinking":
                        duration = next_time - entry_time if next_time is not None else None
                        timing.thinking_timings.append(
                            ThinkingBlockData(
                                text=block.thinking,
                                duration_ms=duration if duration is not None and duration > 0 else None,
                            )
                        )

            if entry.type == "user" and entry.parsed_user_message is not None:
                content = entry.parsed_user_message.content
                if isinstance(content, str):
                    continue
                for block in content:
                    if block.type == "tool_result":
                        timing.tool_result_timestamps[block.tool_use_id] = entry_time

        return timing


class StrategyRegistry:
    """Maps source ids to strategies, with an explicit fallback.

    Unknown or missing source ids resolve to the default strategy; a lookup
    never fails.
    """

    def __init__(self, default: ClusterStrategy):
        self._strategies: dict[str, ClusterStrategy] = {}
        self._default = default
        self.register(default)

    def register(self, strategy: ClusterStrategy) -> None:
        self._strategies[strategy.id] = strategy

    def get(self, source_id: str | None) -> ClusterStrategy:
        if source_id and source_id in self._strategies:
            return self._strategies[source_id]
        logger.debug("No strategy registered for source %r, using %r", source_id, self._default.id)
        return self._default

    def set_default(self, strategy: ClusterStrategy) -> None:
        self._default = strategy
        self.register(strategy)

    @property
    def default(self) -> ClusterStrategy:
        return self._default

    def get_ids(self) -> list[str]:
        return list(self._strategies)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._strategies


def create_default_registry() -> StrategyRegistry:
    """Build a registry holding the built-in strategies.

    The fallback is the strategy named by DEFAULT_SOURCE_ID when registered,
    otherwise Claude Code.
    """
    registry = StrategyRegistry(ClaudeCodeStrategy())
    if DEFAULT_SOURCE_ID in registry:
        registry.set_default(registry.get(DEFAULT_SOURCE_ID))
    return registry
