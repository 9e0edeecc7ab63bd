from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


PostIDType = BigInteger().with_variant(Integer, "sqlite")


def _uuid() -> str:
    return str(uuid.uuid4())


class RoleplaySession(TimestampMixin, Base):
    __tablename__ = "rp_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    guild_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    color: Mapped[str] = mapped_column(String(7), nullable=False, default="#FFFFFF")
    gm_member_id: Mapped[str] = mapped_column(String(64), nullable=False)
    # Plain column: the GM character row references this session.
    gm_character_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    channel_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    category_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    act: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    chapter: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    round: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    turn_order_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    current_turn_order_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    turn_duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    turn_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("act >= 0 AND chapter >= 0 AND round >= 0", name="rp_session_counters_non_negative"),
    )


Index("ix_rp_session_guild", RoleplaySession.guild_id)


class Player(TimestampMixin, Base):
    __tablename__ = "rp_players"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    guild_id: Mapped[str] = mapped_column(String(64), nullable=False)
    member_id: Mapped[str] = mapped_column(String(64), nullable=False)

    __table_args__ = (
        UniqueConstraint("guild_id", "member_id", name="uq_rp_player_guild_member"),
    )


class Character(TimestampMixin, Base):
    __tablename__ = "rp_characters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    session_id: Mapped[str] = mapped_column(String(36), ForeignKey("rp_sessions.id"), nullable=False)
    player_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("rp_players.id"), nullable=True)

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False, default="#FFFFFF")
    is_gm: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    knowledge_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    public_information_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    private_information_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    gm_information_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")


Index("ix_rp_character_session", Character.session_id)
Index("ix_rp_character_player", Character.player_id)


class Information(TimestampMixin, Base):
    __tablename__ = "rp_information"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    character_id: Mapped[str] = mapped_column(String(36), ForeignKey("rp_characters.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="generic")
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Post(Base):
    __tablename__ = "rp_posts"

    id: Mapped[int] = mapped_column(PostIDType, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(36), ForeignKey("rp_sessions.id"), nullable=False)
    character_id: Mapped[str] = mapped_column(String(36), ForeignKey("rp_characters.id"), nullable=False)

    act: Mapped[int] = mapped_column(Integer, nullable=False)
    chapter: Mapped[int] = mapped_column(Integer, nullable=False)
    round: Mapped[int] = mapped_column(Integer, nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    message_refs_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


Index("ix_rp_post_session_id_desc", Post.session_id, Post.id.desc())
