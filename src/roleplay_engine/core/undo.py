from __future__ import annotations

import logging
from typing import Sequence

from .ports import MessagingPort
from .turn_order import TurnOrderEngine
from .types import UNDO_MODES, MessageRef


def validate_mode(mode: str) -> str:
    if mode not in UNDO_MODES:
        raise ValueError(f"invalid undo mode {mode!r}, expected one of {', '.join(UNDO_MODES)}")
    return mode


async def retract_messages(
    messaging: MessagingPort,
    refs: Sequence[MessageRef],
    *,
    logger: logging.Logger | None = None,
) -> tuple[list[str | None], int]:
    """Read back and delete published chunks, in order.

    Returns the recovered chunk texts aligned with ``refs`` (``None`` for a
    message that could not be read) and the number of messages actually
    deleted.
    """
    log = logger or logging.getLogger(__name__)
    texts: list[str | None] = []
    deleted = 0
    for ref in refs:
        try:
            text = await messaging.fetch_message_text(ref)
        except Exception:
            log.debug("Failed to read message %s", ref.message_id, exc_info=True)
            text = None
        texts.append(text)
        try:
            if await messaging.delete_message(ref):
                deleted += 1
        except Exception:
            log.warning("UNDO DELETE FAILED channel=%s message=%s", ref.channel_id, ref.message_id)
    return texts, deleted


def reconstruct_content(
    texts: Sequence[str | None],
    separators: Sequence[str | None] = (),
    fallback: str = "",
) -> str:
    """Rejoin chunk texts with the separators their cuts consumed.

    Unreadable chunks are left out along with their separator. Posts stored
    without separators are rejoined with newlines.
    """
    parts: list[str] = []
    for index, text in enumerate(texts):
        if text is None:
            continue
        separator = separators[index] if index < len(separators) else None
        if separator is None:
            separator = "\n" if index < len(texts) - 1 else ""
        parts.append(text + separator)
    if not parts:
        return fallback
    return "".join(parts)


def restore_turn_order(turns: TurnOrderEngine, character_id: str, mode: str) -> None:
    """Re-queue the author of an undone post.

    Undoing a GM post steps the round back and clears the working order,
    whatever the mode.
    """
    validate_mode(mode)
    if character_id == turns.session.gm_character_id:
        turns.rewind_round()
    elif mode != "none":
        turns.requeue(character_id, mode)
    turns.turn_deadline()
