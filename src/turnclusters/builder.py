"""Group a linear turn sequence into interaction clusters.

A cluster pairs a (merged) user turn with the (merged) assistant turn that
answers it. Consecutive turns of the same role are merged, and turns the
strategy marks as absorbable (tool outputs logged under the user role) are
folded into the assistant side together with the assistant turns that
follow them, so one cluster covers a whole tool-using round.
"""

from __future__ import annotations

import logging
from enum import Enum

from .config import CLUSTER_ROLES
from .models import ContentBlock, Conversation, Turn, TurnCluster
from .strategies import ClaudeCodeStrategy, ClusterStrategy, StrategyRegistry, create_default_registry

logger = logging.getLogger(__name__)

_DOCUMENT_TYPES = ("image", "document")


class _MergeState(Enum):
    EXPECTING = "expecting"
    MERGING_USER = "merging_user"
    MERGING_ASSISTANT = "merging_assistant"
    ABSORBING = "absorbing"


class _Side:
    """Merge buffer for one side of the open cluster."""

    def __init__(self, position: int, seed: Turn):
        self.position = position
        self.seed = seed
        self.content: list[ContentBlock] = list(seed.content)

    def extend(self, turn: Turn) -> None:
        self.content.extend(turn.content)

    def merged_turn(self) -> Turn:
        # The first turn's metadata carries over; content is the merged copy
        return self.seed.model_copy(deep=True, update={"content": list(self.content)})


class _ClusterFold:
    """Single forward pass over the turns, emitting one cluster per round."""

    def __init__(self, strategy: ClusterStrategy):
        self.strategy = strategy
        self.clusters: list[TurnCluster] = []
        self.state = _MergeState.EXPECTING
        self._user: _Side | None = None
        self._assistant: _Side | None = None

    def feed(self, position: int, turn: Turn) -> None:
        if self.state in (_MergeState.MERGING_ASSISTANT, _MergeState.ABSORBING):
            if turn.role == "assistant":
                self._assistant.extend(turn)
                return
            if self.strategy.should_absorb_into_previous(turn):
                self._assistant.extend(turn)
                self.state = _MergeState.ABSORBING
                return
            self._close()
        elif self.state is _MergeState.MERGING_USER:
            if turn.role == "user":
                self._user.extend(turn)
                return
            if turn.role == "assistant":
                self._assistant = _Side(position, turn)
                self.state = _MergeState.MERGING_ASSISTANT
                return
            self._close()

        self._start(position, turn)

    def finish(self) -> list[TurnCluster]:
        if self.state is not _MergeState.EXPECTING:
            self._close()
        return self.clusters

    def _start(self, position: int, turn: Turn) -> None:
        if turn.role not in CLUSTER_ROLES:
            logger.debug("Skipping turn %s with unsupported role %r", turn.id, turn.role)
            return

        if turn.role == "assistant":
            self._assistant = _Side(position, turn)
            self.state = _MergeState.MERGING_ASSISTANT
        elif self.strategy.should_absorb_into_previous(turn):
            # Nothing open to fold into: the turn seeds an assistant-side-only cluster
            logger.debug("Absorbable turn %s at position %d has no open cluster", turn.id, position)
            self._assistant = _Side(position, turn)
            self.state = _MergeState.ABSORBING
        else:
            self._user = _Side(position, turn)
            self.state = _MergeState.MERGING_USER

    def _close(self) -> None:
        cluster = TurnCluster(index=len(self.clusters))

        if self._user is not None:
            cluster.user_turn = self._user.merged_turn()
            cluster.user_turn_index = self._user.position
            cluster.document_count += _count_documents(self._user.content)

        if self._assistant is not None:
            cluster.assistant_turn = self._assistant.merged_turn()
            cluster.assistant_turn_index = self._assistant.position
            for block in self._assistant.content:
                if block.type == "thinking":
                    cluster.thinking_count += 1
                elif block.type == "tool_use":
                    cluster.tool_count += 1
            cluster.document_count += _count_documents(self._assistant.content)

        _enrich_cluster(cluster)
        self.clusters.append(cluster)

        self._user = None
        self._assistant = None
        self.state = _MergeState.EXPECTING


def _count_documents(content: list[ContentBlock]) -> int:
    return sum(1 for block in content if block.type in _DOCUMENT_TYPES)


def _enrich_cluster(cluster: TurnCluster) -> None:
    """Populate sidechain, agent, error and stop-reason fields from the merged turns."""
    user = cluster.user_turn
    assistant = cluster.assistant_turn

    if (user is not None and user.is_sidechain) or (assistant is not None and assistant.is_sidechain):
        cluster.is_sidechain = True

    # Prefer the assistant's agent id, fall back to the user's
    agent_id = (assistant.agent_id if assistant is not None else None) or (
        user.agent_id if user is not None else None
    )
    if agent_id:
        cluster.agent_id = agent_id

    if assistant is not None:
        if assistant.error or assistant.is_api_error_message:
            cluster.has_error = True
        if assistant.stop_reason:
            cluster.stop_reason = assistant.stop_reason


def build_clusters(turns: list[Turn], strategy: ClusterStrategy | None = None) -> list[TurnCluster]:
    """Build clusters from an ordered turn sequence.

    Cluster indexes are contiguous from 0. Every content block of the input
    lands in exactly one cluster, in input order. Turns with roles other than
    user/assistant are skipped. Without a strategy the Claude Code rules
    apply.
    """
    fold = _ClusterFold(strategy if strategy is not None else ClaudeCodeStrategy())
    for position, turn in enumerate(turns):
        fold.feed(position, turn)
    return fold.finish()


def build_conversation_clusters(
    conversation: Conversation | None,
    registry: StrategyRegistry | None = None,
) -> list[TurnCluster]:
    """Build clusters using the strategy registered for the conversation's source."""
    if conversation is None:
        return []
    if registry is None:
        registry = create_default_registry()
    strategy = registry.get(conversation.meta.source)
    return build_clusters(conversation.turns, strategy)
