from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from .attachments import fetch_attachment_text, select_text_attachment
from .chunking import MAX_CHUNK_CHARS, join_lines, split_content
from .errors import AttachmentFetchFailed
from .players import characters_for
from .ports import CharacterSelectorPort, MessagingPort
from .types import (
    GM_SENTINEL,
    CharacterState,
    MessageRef,
    OutgoingMessage,
    PlayerState,
    SessionState,
)

SELECTING_CHARACTER = "selecting_character"
COLLECTING_CONTENT = "collecting_content"
CHUNKING = "chunking"
PUBLISHING = "publishing"
DONE = "done"
CANCELLED = "cancelled"
TIMED_OUT = "timed_out"
NO_CHARACTERS = "no_characters"


@dataclass(frozen=True)
class PostingConfig:
    max_chunk_chars: int = MAX_CHUNK_CHARS
    selection_timeout_seconds: float = 60.0
    reply_timeout_seconds: float = 600.0
    done_keyword: str = "done"
    cancel_keyword: str = "cancel"
    attachment_max_bytes: int = 500_000
    attachment_suffixes: tuple[str, ...] = (".txt",)


def eligible_characters(session: SessionState, player: PlayerState | str) -> list[CharacterState]:
    """Characters the requester may post as, in a stable order."""
    if player == GM_SENTINEL:
        gm = session.characters.get(session.gm_character_id)
        return [gm] if gm is not None else []
    if not isinstance(player, PlayerState):
        raise TypeError(f"expected a PlayerState or {GM_SENTINEL!r}, got {player!r}")
    return characters_for(session, player)


def build_chunk_messages(session: SessionState, character: CharacterState, chunks: Sequence[str]) -> list[OutgoingMessage]:
    footer = session.progress_footer()
    total = len(chunks)
    messages: list[OutgoingMessage] = []
    for index, chunk in enumerate(chunks, start=1):
        position = (index, total) if total > 1 else None
        messages.append(
            OutgoingMessage(
                text=chunk,
                author_name=character.name,
                color=character.color,
                footer=f"{footer} | {index} / {total}" if position else footer,
                position=position,
            )
        )
    return messages


class PostingAttempt:
    """One posting attempt, driven phase by phase.

    ``state`` moves through selecting_character, collecting_content,
    chunking and publishing. Each awaiting phase has its own deadline;
    running out of time moves the attempt to timed_out without touching the
    session.
    """

    def __init__(
        self,
        session: SessionState,
        member_id: str,
        candidates: Sequence[CharacterState],
        *,
        messaging: MessagingPort,
        selector: CharacterSelectorPort | None = None,
        config: PostingConfig | None = None,
        reply_channel_id: str | None = None,
        logger: logging.Logger | None = None,
    ):
        self.session = session
        self.member_id = member_id
        self.candidates = list(candidates)
        self._messaging = messaging
        self._selector = selector
        self._config = config or PostingConfig()
        self._reply_channel_id = reply_channel_id
        self._logger = logger or logging.getLogger(__name__)

        self.state = SELECTING_CHARACTER
        self.reason: str | None = None
        self.character: CharacterState | None = None
        self.lines: list[str] = []
        self.content: str | None = None
        self.from_attachment = False
        self.chunks: list[str] = []
        self.separators: list[str] = []
        self.message_refs: list[MessageRef] = []

    async def select_character(self) -> CharacterState | None:
        if not self.candidates:
            self.state = NO_CHARACTERS
            return None
        if len(self.candidates) == 1:
            self.character = self.candidates[0]
        else:
            if self._selector is None:
                self._finish(CANCELLED, "no_selector")
                return None
            timeout = self._config.selection_timeout_seconds
            try:
                chosen = await asyncio.wait_for(
                    self._selector.choose_character(
                        self.session,
                        self.member_id,
                        self.candidates,
                        timeout=timeout,
                    ),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                chosen = None
            if chosen is None:
                self._finish(TIMED_OUT, "selection_timeout")
                return None
            by_id = {character.id: character for character in self.candidates}
            if chosen not in by_id:
                self._finish(CANCELLED, "invalid_selection")
                return None
            self.character = by_id[chosen]
        self.state = COLLECTING_CONTENT
        return self.character

    async def collect_content(self) -> str | None:
        assert self.character is not None
        cfg = self._config
        await self._messaging.send_prompt(
            self.member_id,
            (
                f"Posting as {self.character.name}. Send your post as one or more messages, "
                f"or attach a text file. Say `{cfg.done_keyword}` to publish or "
                f"`{cfg.cancel_keyword}` to abort."
            ),
            channel_id=self._reply_channel_id,
        )
        while True:
            try:
                reply = await asyncio.wait_for(
                    self._messaging.wait_for_reply(
                        self.member_id,
                        channel_id=self._reply_channel_id,
                        timeout=cfg.reply_timeout_seconds,
                    ),
                    timeout=cfg.reply_timeout_seconds,
                )
            except asyncio.TimeoutError:
                reply = None
            if reply is None:
                self._finish(TIMED_OUT, "reply_timeout")
                return None

            attachment = select_text_attachment(reply.attachments, cfg.attachment_suffixes)
            if attachment is not None:
                try:
                    self.content = await fetch_attachment_text(
                        self._messaging,
                        attachment,
                        max_bytes=cfg.attachment_max_bytes,
                        logger=self._logger,
                    )
                except AttachmentFetchFailed as exc:
                    self._finish(CANCELLED, "attachment_fetch_failed")
                    self._logger.warning(
                        "POST ATTACHMENT FAILED session=%s member=%s reason=%s",
                        self.session.id,
                        self.member_id,
                        exc,
                    )
                    return None
                self.from_attachment = True
                break

            keyword = (reply.content or "").strip().lower()
            if not keyword:
                # image-only or blank replies carry no post text
                continue
            if keyword == cfg.cancel_keyword.lower():
                self._finish(CANCELLED, "user_cancelled")
                return None
            if keyword == cfg.done_keyword.lower():
                if not join_lines(self.lines).strip():
                    self._finish(CANCELLED, "empty_post")
                    return None
                self.content = join_lines(self.lines)
                break
            self.lines.append(reply.content or "")

        self.state = CHUNKING
        return self.content

    def chunk(self) -> list[str]:
        assert self.content is not None
        self.chunks, self.separators = split_content(self.content, self._config.max_chunk_chars)
        self.state = PUBLISHING
        return self.chunks

    async def publish(self, channel_id: str) -> list[MessageRef]:
        """Send every chunk in order. Partial output is retracted on failure."""
        assert self.character is not None
        messages = build_chunk_messages(self.session, self.character, self.chunks)
        try:
            for message in messages:
                ref = await self._messaging.send_message(channel_id, message)
                self.message_refs.append(ref)
        except Exception:
            self._logger.exception(
                "POST PUBLISH FAILED session=%s character=%s published=%s",
                self.session.id,
                self.character.id,
                len(self.message_refs),
            )
            for ref in self.message_refs:
                try:
                    await self._messaging.delete_message(ref)
                except Exception:
                    self._logger.debug("Failed to retract message %s", ref.message_id, exc_info=True)
            self.message_refs = []
            raise
        self.state = DONE
        return list(self.message_refs)

    def _finish(self, state: str, reason: str) -> None:
        self.state = state
        self.reason = reason
        self._logger.info(
            "POST %s session=%s member=%s reason=%s",
            state.upper(),
            self.session.id,
            self.member_id,
            reason,
        )
