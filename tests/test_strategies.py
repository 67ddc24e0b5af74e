"""Tests for cluster strategies and the strategy registry."""

import pytest

from turnclusters.models import (
    ClusterTimingData,
    Entry,
    ParsedAssistantMessage,
    ParsedUserMessage,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    Turn,
)
from turnclusters.strategies import (
    ClaudeCodeStrategy,
    StrategyRegistry,
    create_default_registry,
    is_tool_result_only,
    to_epoch_ms,
)


def assistant_entry(uuid, timestamp, *blocks):
    return Entry(
        type="assistant",
        uuid=uuid,
        timestamp=timestamp,
        parsed_assistant_message=ParsedAssistantMessage(content=list(blocks)),
    )


def user_entry(uuid, timestamp, content):
    return Entry(
        type="user",
        uuid=uuid,
        timestamp=timestamp,
        parsed_user_message=ParsedUserMessage(content=content),
    )


class PlainChatStrategy:
    id = "plain-chat"

    def should_absorb_into_previous(self, turn):
        return False

    def extract_timing_data(self, entries):
        return ClusterTimingData()


@pytest.fixture
def strategy():
    return ClaudeCodeStrategy()


class TestStrategyRegistry:
    def test_default_registry_has_claude_code(self):
        registry = create_default_registry()

        assert "claude-code" in registry.get_ids()
        assert registry.get("claude-code").id == "claude-code"

    def test_unknown_source_falls_back_to_default(self):
        registry = create_default_registry()

        assert registry.get("unknown-source").id == "claude-code"
        assert registry.get(None).id == "claude-code"
        assert registry.get("").id == "claude-code"

    def test_register_and_lookup(self):
        registry = create_default_registry()
        registry.register(PlainChatStrategy())

        assert registry.get("plain-chat").id == "plain-chat"
        assert registry.get_ids() == ["claude-code", "plain-chat"]
        assert "plain-chat" in registry

    def test_register_overwrites_same_id(self):
        registry = create_default_registry()
        replacement = PlainChatStrategy()
        replacement.id = "claude-code"
        registry.register(replacement)

        assert registry.get("claude-code") is replacement
        assert registry.get_ids() == ["claude-code"]

    def test_set_default_registers_and_switches_fallback(self):
        registry = StrategyRegistry(ClaudeCodeStrategy())
        plain = PlainChatStrategy()
        registry.set_default(plain)

        assert registry.get("nope") is plain
        assert registry.default is plain
        assert set(registry.get_ids()) == {"claude-code", "plain-chat"}

    def test_registries_are_independent(self):
        first = create_default_registry()
        second = create_default_registry()
        first.register(PlainChatStrategy())

        assert "plain-chat" not in second


class TestShouldAbsorbIntoPrevious:
    def test_tool_result_only_user_turn(self, strategy):
        turn = Turn(id="t", role="user", content=[ToolResultBlock(tool_use_id="x", content="Result")])

        assert strategy.should_absorb_into_previous(turn) is True

    def test_multiple_tool_results(self, strategy):
        turn = Turn(
            id="t",
            role="user",
            content=[
                ToolResultBlock(tool_use_id="a", content="1"),
                ToolResultBlock(tool_use_id="b", content="2"),
            ],
        )

        assert strategy.should_absorb_into_previous(turn) is True

    def test_text_user_turn(self, strategy):
        turn = Turn(id="t", role="user", content=[TextBlock(text="Hello")])

        assert strategy.should_absorb_into_previous(turn) is False

    def test_mixed_user_turn(self, strategy):
        turn = Turn(
            id="t",
            role="user",
            content=[TextBlock(text="Check this"), ToolResultBlock(tool_use_id="x", content="r")],
        )

        assert strategy.should_absorb_into_previous(turn) is False

    def test_assistant_turn(self, strategy):
        turn = Turn(id="t", role="assistant", content=[ToolResultBlock(tool_use_id="x", content="r")])

        assert strategy.should_absorb_into_previous(turn) is False

    def test_empty_user_turn(self, strategy):
        assert is_tool_result_only(Turn(id="t", role="user", content=[])) is False


class TestToEpochMs:
    def test_utc_suffix(self):
        assert to_epoch_ms("2024-01-01T12:00:00Z") == 1704110400000

    def test_fractional_seconds(self):
        assert to_epoch_ms("2024-01-01T12:00:00.250Z") == 1704110400250

    def test_offset(self):
        assert to_epoch_ms("2024-01-01T14:00:00+02:00") == 1704110400000

    def test_sub_millisecond_digits_are_truncated(self):
        assert to_epoch_ms("2024-01-01T12:00:00.000400Z") == 1704110400000
        assert to_epoch_ms("2024-01-01T12:00:00.000999Z") == 1704110400000
        assert to_epoch_ms("2024-01-01T12:00:00.001600Z") == 1704110400001

    def test_naive_is_utc(self):
        assert to_epoch_ms("2024-01-01T12:00:00") == 1704110400000

    @pytest.mark.parametrize("value", [None, "", "yesterday", "2024-13-45T99:00:00Z"])
    def test_invalid(self, value):
        assert to_epoch_ms(value) is None


class TestExtractTimingData:
    def test_no_entries(self, strategy):
        for entries in (None, []):
            timing = strategy.extract_timing_data(entries)
            assert timing.tool_use_timestamps == {}
            assert timing.tool_result_timestamps == {}
            assert timing.thinking_timings == []

    def test_tool_use_timestamp(self, strategy):
        timing = strategy.extract_timing_data(
            [assistant_entry("1", "2024-01-01T12:00:00Z", ToolUseBlock(id="tool-1", name="Read"))]
        )

        assert timing.tool_use_timestamps == {"tool-1": 1704110400000}

    def test_tool_result_timestamp(self, strategy):
        timing = strategy.extract_timing_data(
            [user_entry("1", "2024-01-01T12:00:05Z", [ToolResultBlock(tool_use_id="tool-1", content="data")])]
        )

        assert timing.tool_result_timestamps == {"tool-1": 1704110405000}

    def test_string_user_content_is_ignored(self, strategy):
        timing = strategy.extract_timing_data([user_entry("1", "2024-01-01T12:00:05Z", "plain prompt")])

        assert timing.tool_result_timestamps == {}

    def test_thinking_duration_until_next_entry(self, strategy):
        timing = strategy.extract_timing_data(
            [
                assistant_entry("1", "2024-01-01T12:00:00Z", ThinkingBlock(thinking="Let me think about this...")),
                assistant_entry("2", "2024-01-01T12:00:05Z", TextBlock(text="Here is my response")),
            ]
        )

        assert len(timing.thinking_timings) == 1
        assert timing.thinking_timings[0].text == "Let me think about this..."
        assert timing.thinking_timings[0].duration_ms == 5000

    def test_last_thinking_has_no_duration(self, strategy):
        timing = strategy.extract_timing_data(
            [assistant_entry("1", "2024-01-01T12:00:00Z", ThinkingBlock(thinking="final"))]
        )

        assert timing.thinking_timings[0].duration_ms is None

    def test_non_positive_duration_is_dropped(self, strategy):
        timing = strategy.extract_timing_data(
            [
                assistant_entry("1", "2024-01-01T12:00:05Z", ThinkingBlock(thinking="same time")),
                assistant_entry("2", "2024-01-01T12:00:05Z", ThinkingBlock(thinking="earlier")),
                assistant_entry("3", "2024-01-01T12:00:01Z", TextBlock(text="x")),
            ]
        )

        assert [t.duration_ms for t in timing.thinking_timings] == [None, None]

    def test_entries_within_one_millisecond_have_no_duration(self, strategy):
        timing = strategy.extract_timing_data(
            [
                assistant_entry("1", "2024-01-01T12:00:00.000400Z", ThinkingBlock(thinking="quick")),
                assistant_entry("2", "2024-01-01T12:00:00.000600Z", TextBlock(text="done")),
            ]
        )

        assert timing.thinking_timings[0].duration_ms is None

    def test_entries_without_timestamps_are_skipped(self, strategy):
        timing = strategy.extract_timing_data(
            [
                assistant_entry("1", None, ToolUseBlock(id="tool-1", name="Read")),
                assistant_entry("2", "not a date", ToolUseBlock(id="tool-2", name="Read")),
                assistant_entry("3", "2024-01-01T12:00:00Z", ToolUseBlock(id="tool-3", name="Read")),
            ]
        )

        assert timing.tool_use_timestamps == {"tool-3": 1704110400000}

    def test_next_entry_skips_untimed_entries(self, strategy):
        timing = strategy.extract_timing_data(
            [
                assistant_entry("1", "2024-01-01T12:00:00Z", ThinkingBlock(thinking="pondering")),
                assistant_entry("2", None, TextBlock(text="no time")),
                Entry(type="progress", uuid="3", timestamp="garbage"),
                Entry(type="system", uuid="4", timestamp="2024-01-01T12:00:03Z"),
            ]
        )

        assert timing.thinking_timings[0].duration_ms == 3000

    def test_tool_round_trip(self, strategy):
        timing = strategy.extract_timing_data(
            [
                assistant_entry("1", "2024-01-01T12:00:00Z", ToolUseBlock(id="a", name="Bash")),
                user_entry("2", "2024-01-01T12:00:02.500Z", [ToolResultBlock(tool_use_id="a", content="ok")]),
            ]
        )

        assert timing.tool_result_timestamps["a"] - timing.tool_use_timestamps["a"] == 2500
