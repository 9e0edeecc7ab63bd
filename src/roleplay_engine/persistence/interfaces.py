from __future__ import annotations

from typing import Protocol


class SessionRepo(Protocol):
    def get(self, session_id: str): ...
    def list_all(self, guild_id: str | None = None): ...
    def create(
        self,
        guild_id: str,
        name: str,
        gm_member_id: str,
        color: str,
        description: str = "",
        turn_duration_ms: int | None = None,
    ): ...
    def apply_update(self, session_id: str, values: dict[str, object]) -> bool: ...


class PlayerRepo(Protocol):
    def get(self, player_id: str): ...
    def get_by_guild_member(self, guild_id: str, member_id: str): ...
    def create(self, guild_id: str, member_id: str): ...


class CharacterRepo(Protocol):
    def get(self, character_id: str): ...
    def list_by_session(self, session_id: str): ...
    def list_by_player(self, player_id: str): ...
    def create(
        self,
        session_id: str,
        name: str,
        color: str,
        player_id: str | None = None,
        is_gm: bool = False,
    ): ...
    def apply_update(self, character_id: str, values: dict[str, object]) -> bool: ...


class InformationRepo(Protocol):
    def get(self, information_id: str): ...
    def list_by_character(self, character_id: str): ...
    def create(self, character_id: str, name: str, type: str, value: str): ...
    def delete(self, information_id: str) -> int: ...


class PostRepo(Protocol):
    def add(
        self,
        session_id: str,
        character_id: str,
        act: int,
        chapter: int,
        round: int,
        content: str,
        message_refs_json: str = "[]",
    ): ...
    def latest_for_session(self, session_id: str): ...
    def delete(self, post_id: int) -> int: ...


class UnitOfWork(Protocol):
    sessions: SessionRepo
    players: PlayerRepo
    characters: CharacterRepo
    information: InformationRepo
    posts: PostRepo

    def commit(self) -> None: ...
    def rollback(self) -> None: ...

    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
