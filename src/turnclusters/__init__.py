"""turnclusters: group AI coding assistant traces into interaction rounds."""

__version__ = "0.1.0"

from .builder import build_clusters, build_conversation_clusters
from .metrics import calculate_cluster_metrics
from .searchable import extract_conversation_content, extract_searchable_content
from .strategies import (
    ClaudeCodeStrategy,
    ClusterStrategy,
    StrategyRegistry,
    create_default_registry,
    is_tool_result_only,
)

__all__ = [
    "ClaudeCodeStrategy",
    "ClusterStrategy",
    "StrategyRegistry",
    "build_clusters",
    "build_conversation_clusters",
    "calculate_cluster_metrics",
    "create_default_registry",
    "extract_conversation_content",
    "extract_searchable_content",
    "is_tool_result_only",
]
