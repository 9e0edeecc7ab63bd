from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from .errors import IdentityResolutionFailed
from .types import CharacterState, PlayerState, SessionState


class PlayerRegistry:
    """Maps community members to the characters they control."""

    def __init__(self, uow_factory: Callable[[], Any], logger: logging.Logger | None = None):
        self._uow_factory = uow_factory
        self._logger = logger or logging.getLogger(__name__)

    def get_or_create_player(self, guild_id: str, member_id: str) -> PlayerState:
        with self._uow_factory() as uow:
            row = uow.players.get_by_guild_member(guild_id, member_id)
            if row is None:
                row = uow.players.create(guild_id, member_id)
                self._logger.info("PLAYER CREATED guild=%s member=%s player=%s", guild_id, member_id, row.id)
            character_ids = [character.id for character in uow.characters.list_by_player(row.id)]
            uow.commit()
            return PlayerState(
                id=row.id,
                guild_id=row.guild_id,
                member_id=row.member_id,
                character_ids=character_ids,
            )

    def get_player(self, player_id: str) -> PlayerState | None:
        with self._uow_factory() as uow:
            row = uow.players.get(player_id)
            if row is None:
                return None
            character_ids = [character.id for character in uow.characters.list_by_player(row.id)]
            return PlayerState(
                id=row.id,
                guild_id=row.guild_id,
                member_id=row.member_id,
                character_ids=character_ids,
            )

    def members_in(self, session: SessionState) -> list[str]:
        """Distinct member ids owning characters in ``session``, GM excluded."""
        members: list[str] = []
        with self._uow_factory() as uow:
            for player_id in player_ids_in(session):
                row = uow.players.get(player_id)
                if row is not None and row.member_id not in members:
                    members.append(row.member_id)
        return members


def characters_for(session: SessionState, player: PlayerState) -> list[CharacterState]:
    return [
        character
        for character in session.characters.values()
        if character.player_id == player.id and character.id != session.gm_character_id
    ]


def player_ids_in(session: SessionState) -> list[str]:
    seen: list[str] = []
    for character in session.characters.values():
        if character.player_id and character.player_id not in seen:
            seen.append(character.player_id)
    return seen


class PlayerIdentityResolver:
    """Resolve characters to member ids through stored player ownership.

    The GM character resolves to the session's GM member.
    """

    def __init__(self, players: PlayerRegistry):
        self._players = players

    def resolve_member(self, session: SessionState, character: CharacterState) -> str | None:
        if character.id == session.gm_character_id:
            return session.gm_member_id
        if not character.player_id:
            return None
        player = self._players.get_player(character.player_id)
        return player.member_id if player is not None else None


async def resolve_member_id(identity: Any, session: SessionState, character: CharacterState) -> str:
    """Ask ``identity`` for the member behind ``character``; never returns empty."""
    try:
        maybe = identity.resolve_member(session, character)
        member_id = await maybe if asyncio.iscoroutine(maybe) else maybe
    except IdentityResolutionFailed:
        raise
    except Exception as exc:
        raise IdentityResolutionFailed(character.id, str(exc)) from exc
    if not member_id:
        raise IdentityResolutionFailed(character.id)
    return str(member_id)
