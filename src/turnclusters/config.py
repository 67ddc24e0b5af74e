"""Central configuration constants."""

import os

# Source used when a conversation names no source, or an unregistered one
DEFAULT_SOURCE_ID = os.environ.get("TURNCLUSTERS_DEFAULT_SOURCE", "claude-code")

# CLI log level, override with TURNCLUSTERS_LOG_LEVEL env var
LOG_LEVEL = os.environ.get("TURNCLUSTERS_LOG_LEVEL", "WARNING").upper()

# Indentation used when serializing tool call arguments
TOOL_INPUT_INDENT = 2

# Stop reason of a normally completed assistant reply; not shown as a badge
NORMAL_STOP_REASON = "end_turn"

# Roles the cluster builder groups; anything else is skipped
CLUSTER_ROLES = {"user", "assistant"}
