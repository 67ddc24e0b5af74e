"""Shared fixtures: a small Claude Code conversation in its JSON wire form."""

import json

import pytest


@pytest.fixture
def conversation_data():
    thinking = {"type": "thinking", "thinking": "Need to read it"}
    read_call = {"type": "tool_use", "id": "toolu_1", "name": "Read", "input": {"file_path": "a.py"}}
    read_result = {"type": "tool_result", "tool_use_id": "toolu_1", "content": "print(1)"}
    return {
        "meta": {"title": "Demo Session", "source": "claude-code"},
        "turns": [
            {"id": "t1", "role": "user", "content": [{"type": "text", "text": "Read my file"}]},
            {
                "id": "t2",
                "role": "assistant",
                "content": [thinking, read_call],
                "usage": {"output_tokens": 40, "cache_read_input_tokens": 10},
            },
            {"id": "t3", "role": "user", "content": [read_result]},
            {
                "id": "t4",
                "role": "assistant",
                "content": [{"type": "text", "text": "Here is your file"}],
                "stopReason": "end_turn",
            },
            {"id": "t5", "role": "user", "content": [{"type": "text", "text": "Thanks"}], "isSidechain": True},
            {
                "id": "t6",
                "role": "assistant",
                "content": [{"type": "text", "text": "Welcome"}],
                "agentId": "agent-7",
                "stopReason": "max_tokens",
            },
        ],
        "entries": [
            {
                "type": "user",
                "uuid": "e1",
                "timestamp": "2024-01-01T12:00:00Z",
                "parsedUserMessage": {"role": "user", "content": "Read my file"},
            },
            {
                "type": "assistant",
                "uuid": "e2",
                "timestamp": "2024-01-01T12:00:01Z",
                "parsedAssistantMessage": {"role": "assistant", "content": [thinking, read_call]},
            },
            {
                "type": "user",
                "uuid": "e3",
                "timestamp": "2024-01-01T12:00:03Z",
                "parsedUserMessage": {"role": "user", "content": [read_result]},
            },
            {
                "type": "assistant",
                "uuid": "e4",
                "timestamp": "2024-01-01T12:00:04Z",
                "parsedAssistantMessage": {
                    "role": "assistant",
                    "content": [{"type": "text", "text": "Here is your file"}],
                },
            },
        ],
    }


@pytest.fixture
def conversation_file(tmp_path, conversation_data):
    path = tmp_path / "conversation.json"
    path.write_text(json.dumps(conversation_data), encoding="utf-8")
    return path
