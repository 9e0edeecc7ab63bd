from __future__ import annotations

import copy
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from .errors import IdentityResolutionFailed, InvalidTurnOrder
from .normalize import normalize_turn_order
from .players import resolve_member_id
from .ports import IdentityResolverPort
from .types import SectionBreak, SessionState, TurnGroup


class TurnOrderEngine:
    """Round/turn state machine over a single session aggregate.

    Every mutation runs to completion without awaiting, so callers on the
    event loop always observe a consistent state.
    """

    def __init__(self, session: SessionState, clock: Callable[[], datetime] | None = None):
        self.session = session
        self._clock = clock or datetime.utcnow

    def set_turn_order(self, groups: Iterable[Iterable[str]]) -> None:
        order = normalize_turn_order(groups)
        session = self.session
        for group in order:
            for character_id in group:
                if character_id == session.gm_character_id:
                    raise InvalidTurnOrder("gm_character_in_turn_order")
                if character_id not in session.characters:
                    raise InvalidTurnOrder(f"unknown_character:{character_id}")
        session.turn_order = order
        session.current_turn_order = []
        self.turn_deadline()

    def current_turn(self) -> Optional[TurnGroup]:
        if not self.session.current_turn_order:
            return None
        return self.session.current_turn_order[0]

    def is_turn(self, character_id: str) -> bool:
        head = self.current_turn()
        if head is None:
            return character_id == self.session.gm_character_id
        return character_id in head

    def may_post_character_ids(self) -> list[str]:
        head = self.current_turn()
        if head is None:
            return [self.session.gm_character_id]
        return list(head)

    async def who_may_post(self, identity: IdentityResolverPort) -> list[str]:
        """Resolve the characters on turn to their owning member ids.

        Resolution failures propagate; a character that resolves to nothing
        raises ``IdentityResolutionFailed``.
        """
        members: list[str] = []
        for character_id in self.may_post_character_ids():
            character = self.session.characters.get(character_id)
            if character is None:
                raise IdentityResolutionFailed(character_id, "unknown_character")
            member_id = await resolve_member_id(identity, self.session, character)
            if member_id not in members:
                members.append(member_id)
        return members

    def advance(self, character_id: str) -> bool:
        """Remove ``character_id`` from the head group. Returns whether it was there."""
        order = self.session.current_turn_order
        if not order or character_id not in order[0]:
            return False
        head = [member for member in order[0] if member != character_id]
        if head:
            order[0] = head
        else:
            order.pop(0)
        return True

    def new_round(self) -> None:
        self.session.round += 1
        self.session.current_turn_order = copy.deepcopy(self.session.turn_order)

    def increment_chapter(self, title: str | None = None) -> SectionBreak:
        self.session.chapter += 1
        self.session.round = 0
        return SectionBreak(kind="chapter", number=self.session.chapter, title=title or None)

    def increment_act(self, title: str | None = None) -> SectionBreak:
        self.session.act += 1
        self.session.chapter = 0
        self.session.round = 0
        return SectionBreak(kind="act", number=self.session.act, title=title or None)

    def requeue(self, character_id: str, mode: str) -> None:
        order = self.session.current_turn_order
        if mode == "append":
            if order:
                if character_id not in order[0]:
                    order[0] = order[0] + [character_id]
            else:
                order.append([character_id])
        elif mode == "front":
            order.insert(0, [character_id])

    def rewind_round(self) -> None:
        self.session.round = max(0, self.session.round - 1)
        self.session.current_turn_order = []

    def turn_deadline(self) -> Optional[datetime]:
        duration = self.session.turn_duration_ms
        if duration is None:
            self.session.turn_time = None
        else:
            self.session.turn_time = self._clock() + timedelta(milliseconds=int(duration))
        return self.session.turn_time
