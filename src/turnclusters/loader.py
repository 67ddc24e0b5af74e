"""Load a parsed conversation document from disk."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
from pydantic import ValidationError

from .models import Conversation

logger = logging.getLogger(__name__)


def load_conversation(path: str, source: str | None = None) -> Conversation:
    """Load a conversation JSON document (``meta``, ``turns``, optional ``entries``).

    ``source`` overrides the document's ``meta.source``.
    """
    conversation_file = Path(path)

    if not conversation_file.exists():
        raise click.ClickException(f"File not found: {path}")

    try:
        with conversation_file.open(encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Not valid JSON: {path} ({exc})") from exc

    # A bare list is accepted as the turn sequence
    if isinstance(data, list):
        data = {"turns": data}
    if not isinstance(data, dict):
        raise click.ClickException(f"{path} must contain a JSON object or an array of turns.")

    try:
        conversation = Conversation.model_validate(data)
    except ValidationError as exc:
        raise click.ClickException(
            f"{path} is not a valid conversation: {exc.error_count()} validation error(s)\n{exc}"
        ) from exc

    if source:
        conversation.meta.source = source

    logger.debug(
        "Loaded %d turns and %d entries from %s",
        len(conversation.turns),
        len(conversation.entries or []),
        conversation_file,
    )
    return conversation
