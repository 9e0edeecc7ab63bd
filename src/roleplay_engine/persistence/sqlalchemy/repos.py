from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from .models import Character, Information, Player, Post, RoleplaySession


class SessionRepo:
    def __init__(self, session: Session):
        self.session = session

    def get(self, session_id: str) -> RoleplaySession | None:
        return self.session.get(RoleplaySession, session_id)

    def list_all(self, guild_id: str | None = None) -> list[RoleplaySession]:
        stmt = select(RoleplaySession).order_by(RoleplaySession.created_at.asc())
        if guild_id is not None:
            stmt = stmt.where(RoleplaySession.guild_id == guild_id)
        return list(self.session.execute(stmt).scalars().all())

    def create(
        self,
        guild_id: str,
        name: str,
        gm_member_id: str,
        color: str,
        description: str = "",
        turn_duration_ms: int | None = None,
    ) -> RoleplaySession:
        row = RoleplaySession(
            guild_id=guild_id,
            name=name,
            gm_member_id=gm_member_id,
            color=color,
            description=description,
            turn_duration_ms=turn_duration_ms,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def apply_update(self, session_id: str, values: dict[str, object]) -> bool:
        update_values = dict(values)
        update_values["updated_at"] = datetime.utcnow()
        stmt = (
            update(RoleplaySession)
            .where(RoleplaySession.id == session_id)
            .values(**update_values)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1


class PlayerRepo:
    def __init__(self, session: Session):
        self.session = session

    def get(self, player_id: str) -> Player | None:
        return self.session.get(Player, player_id)

    def get_by_guild_member(self, guild_id: str, member_id: str) -> Player | None:
        stmt = (
            select(Player)
            .where(Player.guild_id == guild_id)
            .where(Player.member_id == member_id)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def create(self, guild_id: str, member_id: str) -> Player:
        row = Player(guild_id=guild_id, member_id=member_id)
        self.session.add(row)
        self.session.flush()
        return row


class CharacterRepo:
    def __init__(self, session: Session):
        self.session = session

    def get(self, character_id: str) -> Character | None:
        return self.session.get(Character, character_id)

    def list_by_session(self, session_id: str) -> list[Character]:
        stmt = (
            select(Character)
            .where(Character.session_id == session_id)
            .order_by(Character.created_at.asc(), Character.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_by_player(self, player_id: str) -> list[Character]:
        stmt = select(Character).where(Character.player_id == player_id)
        return list(self.session.execute(stmt).scalars().all())

    def create(
        self,
        session_id: str,
        name: str,
        color: str,
        player_id: str | None = None,
        is_gm: bool = False,
    ) -> Character:
        row = Character(
            session_id=session_id,
            player_id=player_id,
            name=name,
            color=color,
            is_gm=is_gm,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def apply_update(self, character_id: str, values: dict[str, object]) -> bool:
        update_values = dict(values)
        update_values["updated_at"] = datetime.utcnow()
        stmt = update(Character).where(Character.id == character_id).values(**update_values)
        return (self.session.execute(stmt).rowcount or 0) == 1


class InformationRepo:
    def __init__(self, session: Session):
        self.session = session

    def get(self, information_id: str) -> Information | None:
        return self.session.get(Information, information_id)

    def list_by_character(self, character_id: str) -> list[Information]:
        stmt = select(Information).where(Information.character_id == character_id)
        return list(self.session.execute(stmt).scalars().all())

    def create(self, character_id: str, name: str, type: str, value: str) -> Information:
        row = Information(character_id=character_id, name=name, type=type, value=value)
        self.session.add(row)
        self.session.flush()
        return row

    def delete(self, information_id: str) -> int:
        stmt = delete(Information).where(Information.id == information_id)
        return self.session.execute(stmt).rowcount or 0


class PostRepo:
    def __init__(self, session: Session):
        self.session = session

    def add(
        self,
        session_id: str,
        character_id: str,
        act: int,
        chapter: int,
        round: int,
        content: str,
        message_refs_json: str = "[]",
    ) -> Post:
        row = Post(
            session_id=session_id,
            character_id=character_id,
            act=act,
            chapter=chapter,
            round=round,
            content=content,
            message_refs_json=message_refs_json,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def latest_for_session(self, session_id: str) -> Post | None:
        stmt = (
            select(Post)
            .where(Post.session_id == session_id)
            .order_by(Post.id.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def delete(self, post_id: int) -> int:
        stmt = delete(Post).where(Post.id == post_id)
        return self.session.execute(stmt).rowcount or 0
