"""Data models for turns, raw log entries, clusters and their projections."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    """Base for records whose wire names are camelCase (isSidechain, agentId, ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Content blocks -------------------------------------------------------


class _Block(BaseModel):
    model_config = ConfigDict(frozen=True)


class TextBlock(_Block):
    type: Literal["text"] = "text"
    text: str = ""


class ThinkingBlock(_Block):
    type: Literal["thinking"] = "thinking"
    thinking: str = ""
    redacted: bool | None = None
    signature: str | None = None


class ToolUseBlock(_Block):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = {}


class ToolResultBlock(_Block):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str | list[ContentBlock] = ""
    is_error: bool | None = None


class ImageSource(BaseModel):
    type: Literal["base64", "url"] = "base64"
    media_type: str | None = None
    data: str | None = None
    url: str | None = None


class DocumentSource(BaseModel):
    type: Literal["base64", "url", "file"] = "base64"
    media_type: str | None = None
    data: str | None = None
    url: str | None = None
    file_id: str | None = None


class ImageBlock(_Block):
    type: Literal["image"] = "image"
    source: ImageSource


class DocumentBlock(_Block):
    type: Literal["document"] = "document"
    source: DocumentSource
    title: str | None = None
    context: str | None = None


ContentBlock = Annotated[
    Union[TextBlock, ThinkingBlock, ToolUseBlock, ToolResultBlock, ImageBlock, DocumentBlock],
    Field(discriminator="type"),
]

ToolResultBlock.model_rebuild()


# --- Turns and raw entries -------------------------------------------------


class TokenUsage(BaseModel):
    input_tokens: int | None = None
    output_tokens: int | None = None
    thinking_tokens: int | None = None
    cache_read_input_tokens: int | None = None
    cache_creation_input_tokens: int | None = None


class Turn(_WireModel):
    """One role-tagged message unit as produced by a trace parser.

    ``role`` is kept as a free string: roles other than user/assistant are
    legal input and are skipped by the cluster builder.
    """

    id: str
    role: str
    content: list[ContentBlock] = []
    timestamp: str | None = None
    model: str | None = None
    usage: TokenUsage | None = None
    parent_id: str | None = None
    is_sidechain: bool | None = None
    agent_id: str | None = None
    error: str | None = None
    is_api_error_message: bool | None = None
    stop_reason: str | None = None


class ParsedUserMessage(_WireModel):
    role: Literal["user"] = "user"
    content: str | list[ContentBlock] = []


class ParsedAssistantMessage(_WireModel):
    role: Literal["assistant"] = "assistant"
    model: str | None = None
    content: list[ContentBlock] = []
    stop_reason: str | None = None
    usage: TokenUsage | None = None


class Entry(_WireModel):
    """A raw log line. Only used for timing correlation, never for grouping."""

    type: str
    uuid: str | None = None
    parent_uuid: str | None = None
    timestamp: str | None = None
    parsed_user_message: ParsedUserMessage | None = None
    parsed_assistant_message: ParsedAssistantMessage | None = None
    is_sidechain: bool | None = None
    agent_id: str | None = None
    error: str | None = None
    stop_reason: str | None = None


class ConversationMeta(BaseModel):
    id: str | None = None
    title: str | None = None
    source: str | None = None
    model: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    cwd: str | None = None
    git_branch: str | None = None
    duration_ms: int | None = None


class Conversation(BaseModel):
    meta: ConversationMeta = Field(default_factory=ConversationMeta)
    turns: list[Turn] = []
    entries: list[Entry] | None = None


# --- Engine output ---------------------------------------------------------


class TurnCluster(_WireModel):
    """One interaction round: a merged user turn and a merged assistant turn.

    ``user_turn_index`` / ``assistant_turn_index`` point at the first source
    turn absorbed into each side.
    """

    index: int
    user_turn: Turn | None = None
    assistant_turn: Turn | None = None
    user_turn_index: int | None = None
    assistant_turn_index: int | None = None
    expanded: bool = False
    thinking_count: int = 0
    tool_count: int = 0
    document_count: int = 0
    is_sidechain: bool | None = None
    agent_id: str | None = None
    has_error: bool | None = None
    stop_reason: str | None = None


class ThinkingBlockData(_WireModel):
    text: str
    duration_ms: int | None = None


class ClusterTimingData(BaseModel):
    # tool_use id -> epoch ms
    tool_use_timestamps: dict[str, int] = {}
    tool_result_timestamps: dict[str, int] = {}
    thinking_timings: list[ThinkingBlockData] = []


class ToolUseData(_WireModel):
    name: str
    input: str
    id: str | None = None


class ToolResultData(_WireModel):
    content: str
    is_error: bool = False
    duration_ms: int | None = None


class DocumentMeta(_WireModel):
    media_type: str
    source_type: Literal["url", "base64", "file"]
    size: int | None = None
    title: str | None = None
    url: str | None = None
    data: str | None = None
    file_id: str | None = None


class SearchableCluster(_WireModel):
    cluster_index: int
    user_text: str = ""
    assistant_text: str = ""
    thinking_blocks: list[ThinkingBlockData] = []
    tool_uses: list[ToolUseData] = []
    tool_results: list[ToolResultData] = []
    documents: list[DocumentMeta] = []
    is_sidechain: bool | None = None
    agent_id: str | None = None
    has_error: bool | None = None
    stop_reason: str | None = None
    error: str | None = None


class ClusterMetrics(_WireModel):
    index: int
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    thinking_count: int = 0
    tool_count: int = 0
    content_length: int = 0
