from __future__ import annotations

import asyncio
import copy
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable

from .characters import CharacterRegistry, character_state_from_row
from .errors import CharacterNotFound, IdentityResolutionFailed, SessionNotFound
from .normalize import (
    dump_message_refs,
    dump_turn_order,
    normalize_color,
    normalize_name,
    parse_chunk_separators,
    parse_message_refs,
    parse_turn_order,
)
from .players import PlayerIdentityResolver, PlayerRegistry, resolve_member_id
from .ports import CharacterSelectorPort, IdentityResolverPort, MessagingPort
from .posting import PostingAttempt, PostingConfig, eligible_characters
from .turn_order import TurnOrderEngine
from .types import (
    GM_SENTINEL,
    CharacterState,
    OutgoingMessage,
    PlayerState,
    PostRecord,
    PostResult,
    SectionBreak,
    SessionState,
    TurnOrder,
    UndoResult,
)
from .undo import reconstruct_content, restore_turn_order, retract_messages, validate_mode

RefreshCallback = Callable[[SessionState], Awaitable[None] | None]


class RoleplayEngine:
    def __init__(
        self,
        uow_factory: Callable[[], Any],
        messaging: MessagingPort,
        identity: IdentityResolverPort | None = None,
        selector: CharacterSelectorPort | None = None,
        config: PostingConfig | None = None,
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ):
        self._uow_factory = uow_factory
        self._messaging = messaging
        self._selector = selector
        self._config = config or PostingConfig()
        self._clock = clock or datetime.utcnow
        self._logger = logger or logging.getLogger(__name__)
        self.players = PlayerRegistry(uow_factory, logger=self._logger)
        self.characters = CharacterRegistry(uow_factory, logger=self._logger)
        self._identity = identity or PlayerIdentityResolver(self.players)
        self._sessions: dict[str, SessionState] = {}
        self._refresh_callbacks: list[RefreshCallback] = []

    # -- lifecycle -------------------------------------------------------

    def load_sessions(self, guild_id: str | None = None) -> int:
        loaded = 0
        with self._uow_factory() as uow:
            for row in uow.sessions.list_all(guild_id):
                if row.id in self._sessions:
                    # the live aggregate owns busy and may be mid-post
                    continue
                try:
                    state = self._build_session_state(uow, row)
                except CharacterNotFound:
                    self._logger.error("Skipping session %s: GM character missing", row.id)
                    continue
                self._sessions[state.id] = state
                loaded += 1
        self._logger.info("Loaded %s roleplay sessions", loaded)
        return loaded

    def create_session(
        self,
        guild_id: str,
        name: str,
        gm_member_id: str,
        color: str = "#FFFFFF",
        description: str = "",
        turn_duration_ms: int | None = None,
    ) -> SessionState:
        name = normalize_name(name)
        if not name:
            raise ValueError("session name is required")
        color = normalize_color(color)
        if turn_duration_ms is not None and int(turn_duration_ms) <= 0:
            raise ValueError("turn_duration_ms must be positive")
        with self._uow_factory() as uow:
            row = uow.sessions.create(
                guild_id=guild_id,
                name=name,
                gm_member_id=gm_member_id,
                color=color,
                description=description or "",
                turn_duration_ms=turn_duration_ms,
            )
            gm_row = uow.characters.create(session_id=row.id, name="GM", color=color, is_gm=True)
            uow.sessions.apply_update(row.id, {"gm_character_id": gm_row.id})
            uow.commit()
            gm = CharacterState(id=gm_row.id, name=gm_row.name, color=gm_row.color, is_gm=True)
            state = SessionState(
                id=row.id,
                guild_id=guild_id,
                name=name,
                gm_member_id=gm_member_id,
                gm_character_id=gm.id,
                description=description or "",
                color=color,
                turn_duration_ms=turn_duration_ms,
                characters={gm.id: gm},
            )
        self._sessions[state.id] = state
        self._logger.info("SESSION CREATED guild=%s session=%s name=%s", guild_id, state.id, name)
        return state

    def get_session(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if state is None:
            raise SessionNotFound(session_id)
        return state

    def list_sessions(self, guild_id: str | None = None) -> list[SessionState]:
        return [s for s in self._sessions.values() if guild_id is None or s.guild_id == guild_id]

    def turns(self, session_id: str) -> TurnOrderEngine:
        return TurnOrderEngine(self.get_session(session_id), clock=self._clock)

    async def attach_channels(
        self,
        session_id: str,
        channel_id: str,
        category_id: str | None = None,
    ) -> SessionState:
        session = self.get_session(session_id)
        snapshot = _snapshot(session)
        session.channel_id = channel_id
        if category_id is not None:
            session.category_id = category_id
        self._persist(session, rollback_to=snapshot)
        return session

    async def set_turn_duration(self, session_id: str, turn_duration_ms: int | None) -> datetime | None:
        if turn_duration_ms is not None and int(turn_duration_ms) <= 0:
            raise ValueError("turn_duration_ms must be positive")
        turns = self.turns(session_id)
        snapshot = _snapshot(turns.session)
        turns.session.turn_duration_ms = None if turn_duration_ms is None else int(turn_duration_ms)
        deadline = turns.turn_deadline()
        self._persist(turns.session, rollback_to=snapshot)
        await self._refresh(turns.session)
        return deadline

    # -- registries ------------------------------------------------------

    def create_character(
        self,
        session_id: str,
        name: str,
        color: str = "#FFFFFF",
        *,
        member_id: str | None = None,
    ) -> CharacterState:
        session = self.get_session(session_id)
        player_id = None
        if member_id is not None:
            player_id = self.players.get_or_create_player(session.guild_id, member_id).id
        return self.characters.create_character(session, name, color, player_id)

    def get_player(self, guild_id: str, member_id: str) -> PlayerState:
        return self.players.get_or_create_player(guild_id, member_id)

    def players_in(self, session_id: str) -> list[str]:
        return self.players.members_in(self.get_session(session_id))

    # -- turn order ------------------------------------------------------

    def current_turn(self, session_id: str) -> list[str] | None:
        head = self.turns(session_id).current_turn()
        return list(head) if head is not None else None

    def is_turn(self, session_id: str, character_id: str) -> bool:
        return self.turns(session_id).is_turn(character_id)

    async def who_may_post(self, session_id: str) -> list[str]:
        return await self.turns(session_id).who_may_post(self._identity)

    async def set_turn_order(self, session_id: str, groups: Iterable[Iterable[str]]) -> TurnOrder:
        turns = self.turns(session_id)
        snapshot = _snapshot(turns.session)
        turns.set_turn_order(groups)
        self._persist(turns.session, rollback_to=snapshot)
        self._logger.info("TURN ORDER SET session=%s groups=%s", session_id, len(turns.session.turn_order))
        await self._refresh(turns.session)
        return copy.deepcopy(turns.session.turn_order)

    async def increment_chapter(self, session_id: str, title: str | None = None) -> SectionBreak:
        turns = self.turns(session_id)
        snapshot = _snapshot(turns.session)
        section = turns.increment_chapter(title)
        self._persist(turns.session, rollback_to=snapshot)
        await self._publish_section_break(turns.session, section)
        await self._refresh(turns.session)
        return section

    async def increment_act(self, session_id: str, title: str | None = None) -> SectionBreak:
        turns = self.turns(session_id)
        snapshot = _snapshot(turns.session)
        section = turns.increment_act(title)
        self._persist(turns.session, rollback_to=snapshot)
        await self._publish_section_break(turns.session, section)
        await self._refresh(turns.session)
        return section

    # -- posting ---------------------------------------------------------

    async def handle_post_request(
        self,
        session_id: str,
        player: PlayerState | str,
        *,
        reply_channel_id: str | None = None,
    ) -> PostResult:
        session = self.get_session(session_id)
        if session.busy:
            return PostResult(status="busy", reason="post_in_progress")
        if not session.channel_id:
            return PostResult(status="error", reason="no_channel")
        candidates = eligible_characters(session, player)
        member_id = session.gm_member_id if player == GM_SENTINEL else player.member_id

        session.busy = True
        try:
            return await self._run_post(session, candidates, member_id, reply_channel_id)
        finally:
            session.busy = False

    async def _run_post(
        self,
        session: SessionState,
        candidates: list[CharacterState],
        member_id: str,
        reply_channel_id: str | None,
    ) -> PostResult:
        attempt = PostingAttempt(
            session,
            member_id,
            candidates,
            messaging=self._messaging,
            selector=self._selector,
            config=self._config,
            reply_channel_id=reply_channel_id,
            logger=self._logger,
        )
        character = await attempt.select_character()
        if character is None:
            return PostResult(status=attempt.state, reason=attempt.reason)

        turns = TurnOrderEngine(session, clock=self._clock)
        off_turn = not turns.is_turn(character.id)
        if off_turn:
            self._logger.warning(
                "POST OFF TURN session=%s character=%s head=%s",
                session.id,
                character.id,
                turns.current_turn(),
            )
            await self._messaging.send_prompt(
                member_id,
                f"It is not {character.name}'s turn. Your post will still be published.",
                channel_id=reply_channel_id,
            )

        content = await attempt.collect_content()
        if content is None:
            return PostResult(
                status=attempt.state,
                character_id=character.id,
                off_turn=off_turn,
                reason=attempt.reason,
            )

        chunks = attempt.chunk()
        try:
            refs = await attempt.publish(session.channel_id)
        except Exception as exc:
            return PostResult(
                status="error",
                character_id=character.id,
                off_turn=off_turn,
                reason=f"publish_failed:{exc}",
            )

        snapshot = _snapshot(session)
        try:
            with self._uow_factory() as uow:
                uow.posts.add(
                    session_id=session.id,
                    character_id=character.id,
                    act=session.act,
                    chapter=session.chapter,
                    round=session.round,
                    content=content,
                    message_refs_json=dump_message_refs(refs, attempt.separators),
                )
                if character.id == session.gm_character_id:
                    turns.new_round()
                else:
                    turns.advance(character.id)
                turns.turn_deadline()
                uow.sessions.apply_update(session.id, _session_values(session))
                uow.commit()
        except Exception as exc:
            _restore(session, snapshot)
            self._logger.exception(
                "POST RECORD FAILED session=%s character=%s messages=%s",
                session.id,
                character.id,
                len(refs),
            )
            return PostResult(
                status="record_failed",
                character_id=character.id,
                message_refs=refs,
                off_turn=off_turn,
                reason=str(exc),
            )

        self._logger.info(
            "POST DONE session=%s character=%s chunks=%s round=%s",
            session.id,
            character.id,
            len(chunks),
            session.round,
        )
        await self._refresh(session)
        return PostResult(status="done", character_id=character.id, message_refs=refs, off_turn=off_turn)

    # -- undo ------------------------------------------------------------

    async def handle_undo_request(self, session_id: str, mode: str = "none") -> UndoResult:
        validate_mode(mode)
        session = self.get_session(session_id)
        if session.busy:
            return UndoResult(status="busy")
        session.busy = True
        try:
            return await self._run_undo(session, mode)
        finally:
            session.busy = False

    async def _run_undo(self, session: SessionState, mode: str) -> UndoResult:
        with self._uow_factory() as uow:
            row = uow.posts.latest_for_session(session.id)
            if row is None:
                return UndoResult(status="nothing_to_undo")
            post = PostRecord(
                id=row.id,
                session_id=row.session_id,
                character_id=row.character_id,
                act=row.act,
                chapter=row.chapter,
                round=row.round,
                content=row.content,
                message_refs=parse_message_refs(row.message_refs_json),
                separators=parse_chunk_separators(row.message_refs_json),
                created_at=row.created_at,
            )

        character = session.characters.get(post.character_id)
        if character is None:
            raise IdentityResolutionFailed(post.character_id, "unknown_character")
        author_member_id = await resolve_member_id(self._identity, session, character)

        texts, deleted = await retract_messages(self._messaging, post.message_refs, logger=self._logger)
        content = reconstruct_content(texts, post.separators, fallback=post.content)
        try:
            await self._messaging.send_private(author_member_id, content)
        except Exception:
            self._logger.warning(
                "UNDO DELIVERY FAILED session=%s post=%s member=%s",
                session.id,
                post.id,
                author_member_id,
                exc_info=True,
            )

        snapshot = _snapshot(session)
        restore_turn_order(TurnOrderEngine(session, clock=self._clock), post.character_id, mode)
        try:
            with self._uow_factory() as uow:
                uow.posts.delete(post.id)
                uow.sessions.apply_update(session.id, _session_values(session))
                uow.commit()
        except Exception:
            _restore(session, snapshot)
            raise

        self._logger.info(
            "UNDO DONE session=%s post=%s character=%s mode=%s deleted=%s",
            session.id,
            post.id,
            post.character_id,
            mode,
            deleted,
        )
        await self._refresh(session)
        return UndoResult(
            status="ok",
            post_id=post.id,
            character_id=post.character_id,
            deleted_messages=deleted,
            content=content,
        )

    # -- notifications ---------------------------------------------------

    def subscribe_refresh(self, callback: RefreshCallback) -> None:
        self._refresh_callbacks.append(callback)

    def unsubscribe_refresh(self, callback: RefreshCallback) -> None:
        if callback in self._refresh_callbacks:
            self._refresh_callbacks.remove(callback)

    async def _refresh(self, session: SessionState) -> None:
        for callback in list(self._refresh_callbacks):
            try:
                maybe = callback(session)
                if asyncio.iscoroutine(maybe):
                    await maybe
            except Exception:
                self._logger.warning("Panel refresh failed for session %s", session.id, exc_info=True)

    async def _publish_section_break(self, session: SessionState, section: SectionBreak) -> None:
        if not session.channel_id:
            return
        try:
            await self._messaging.send_message(
                session.channel_id,
                OutgoingMessage(
                    text=section.title or "",
                    color=session.color,
                    footer=session.progress_footer(),
                    heading=section.heading(),
                ),
            )
        except Exception:
            self._logger.warning(
                "Section break publish failed session=%s %s",
                session.id,
                section.heading(),
                exc_info=True,
            )

    # -- persistence -----------------------------------------------------

    def _persist(self, session: SessionState, rollback_to: dict[str, Any] | None = None) -> None:
        try:
            with self._uow_factory() as uow:
                uow.sessions.apply_update(session.id, _session_values(session))
                uow.commit()
        except Exception:
            if rollback_to is not None:
                _restore(session, rollback_to)
            raise

    def _build_session_state(self, uow: Any, row: Any) -> SessionState:
        characters = {
            char_row.id: character_state_from_row(uow, char_row)
            for char_row in uow.characters.list_by_session(row.id)
        }
        gm_character_id = row.gm_character_id
        if not gm_character_id:
            gm_character_id = next((c.id for c in characters.values() if c.is_gm), None)
        if not gm_character_id or gm_character_id not in characters:
            raise CharacterNotFound(f"gm:{row.id}")
        return SessionState(
            id=row.id,
            guild_id=row.guild_id,
            name=row.name,
            gm_member_id=row.gm_member_id,
            gm_character_id=gm_character_id,
            description=row.description or "",
            color=row.color,
            channel_id=row.channel_id,
            category_id=row.category_id,
            act=row.act,
            chapter=row.chapter,
            round=row.round,
            turn_order=parse_turn_order(row.turn_order_json),
            current_turn_order=parse_turn_order(row.current_turn_order_json),
            turn_duration_ms=row.turn_duration_ms,
            turn_time=row.turn_time,
            characters=characters,
        )


_SNAPSHOT_FIELDS = (
    "act",
    "chapter",
    "round",
    "turn_order",
    "current_turn_order",
    "turn_duration_ms",
    "turn_time",
    "channel_id",
    "category_id",
)


def _snapshot(session: SessionState) -> dict[str, Any]:
    return {name: copy.deepcopy(getattr(session, name)) for name in _SNAPSHOT_FIELDS}


def _restore(session: SessionState, snapshot: dict[str, Any]) -> None:
    for name, value in snapshot.items():
        setattr(session, name, value)


def _session_values(session: SessionState) -> dict[str, object]:
    return {
        "name": session.name,
        "description": session.description,
        "color": session.color,
        "channel_id": session.channel_id,
        "category_id": session.category_id,
        "act": session.act,
        "chapter": session.chapter,
        "round": session.round,
        "turn_order_json": dump_turn_order(session.turn_order),
        "current_turn_order_json": dump_turn_order(session.current_turn_order),
        "turn_duration_ms": session.turn_duration_ms,
        "turn_time": session.turn_time,
    }
