"""Display configuration for trace sources."""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_METADATA_FIELDS = ["model", "duration_ms"]


class SourceCapabilities(BaseModel):
    has_sub_agents: bool = False
    has_thinking: bool = False
    has_tool_use: bool = False
    has_summaries: bool = False


class SourceConfig(BaseModel):
    id: str
    name: str
    description: str = ""
    file_extensions: list[str] = []
    badges: dict[str, str] = {}
    metadata_fields: list[str] = []
    default_title: str = "Session"
    capabilities: SourceCapabilities = Field(default_factory=SourceCapabilities)


CLAUDE_CODE_SOURCE = SourceConfig(
    id="claude-code",
    name="Claude Code",
    description="Anthropic's official CLI for Claude - an AI coding assistant",
    file_extensions=[".jsonl", ".jsonl.gz", ".jsonl.zst", ".jsonl.zstd"],
    badges={
        "sidechain": "sidechain",
        "agent": "agent",
        "sub_agent": "Sub-agent",
        "main_conversation": "Main conversation",
    },
    metadata_fields=["model", "git_branch", "duration_ms", "cwd"],
    default_title="Claude Code Session",
    capabilities=SourceCapabilities(
        has_sub_agents=True,
        has_thinking=True,
        has_tool_use=True,
        has_summaries=True,
    ),
)


class SourceRegistry:
    """Source configurations keyed by source id."""

    def __init__(self):
        self._sources: dict[str, SourceConfig] = {}

    def register(self, config: SourceConfig) -> None:
        self._sources[config.id] = config

    def get(self, source_id: str | None) -> SourceConfig | None:
        if not source_id:
            return None
        return self._sources.get(source_id)

    def get_all(self) -> list[SourceConfig]:
        return list(self._sources.values())

    def get_ids(self) -> list[str]:
        return list(self._sources)

    def has(self, source_id: str | None) -> bool:
        return bool(source_id) and source_id in self._sources

    def get_badge(self, source_id: str | None, key: str, fallback: str) -> str:
        """Badge label for a source, or ``fallback`` if the source or key is unknown."""
        source = self.get(source_id)
        if source is None:
            return fallback
        return source.badges.get(key, fallback)

    def get_metadata_fields(self, source_id: str | None) -> list[str]:
        source = self.get(source_id)
        if source is None:
            return list(DEFAULT_METADATA_FIELDS)
        return list(source.metadata_fields)

    def has_capability(self, source_id: str | None, capability: str) -> bool:
        source = self.get(source_id)
        if source is None:
            return False
        return bool(getattr(source.capabilities, capability, False))


def create_source_registry() -> SourceRegistry:
    registry = SourceRegistry()
    registry.register(CLAUDE_CODE_SOURCE)
    return registry
