"""Per-cluster token and content-length metrics."""

from __future__ import annotations

from .models import ClusterMetrics, TurnCluster


def calculate_cluster_metrics(clusters: list[TurnCluster]) -> list[ClusterMetrics]:
    """Compute token and content metrics for each cluster, preserving order.

    Input tokens are the user side's input tokens plus the assistant side's
    cache read and cache creation tokens. Content length counts user text
    and assistant text and thinking characters.
    """
    metrics: list[ClusterMetrics] = []

    for cluster in clusters:
        input_tokens = 0
        output_tokens = 0
        content_length = 0

        if cluster.user_turn is not None:
            usage = cluster.user_turn.usage
            if usage is not None:
                input_tokens += usage.input_tokens or 0
            for block in cluster.user_turn.content:
                if block.type == "text":
                    content_length += len(block.text)

        if cluster.assistant_turn is not None:
            usage = cluster.assistant_turn.usage
            if usage is not None:
                output_tokens += usage.output_tokens or 0
                input_tokens += (usage.cache_read_input_tokens or 0) + (usage.cache_creation_input_tokens or 0)
            for block in cluster.assistant_turn.content:
                if block.type == "text":
                    content_length += len(block.text)
                elif block.type == "thinking":
                    content_length += len(block.thinking)

        metrics.append(
            ClusterMetrics(
                index=cluster.index,
                total_tokens=input_tokens + output_tokens,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                thinking_count=cluster.thinking_count,
                tool_count=cluster.tool_count,
                content_length=content_length,
            )
        )

    return metrics
