from __future__ import annotations

import asyncio
from datetime import datetime

import pytest
from sqlalchemy import text

from roleplay_engine.core.engine import RoleplayEngine
from roleplay_engine.core.posting import PostingConfig
from roleplay_engine.core.types import MemberProfile, MessageRef, Reply
from roleplay_engine.persistence.sqlalchemy.db import build_engine, build_session_factory, create_schema
from roleplay_engine.persistence.sqlalchemy.uow import SQLAlchemyUnitOfWork

HANG = object()
FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0)


class StubMessaging:
    """Scripted messaging surface.

    ``replies`` is consumed in order by ``wait_for_reply``; an exhausted
    script behaves like a timeout, and ``HANG`` blocks until cancelled.
    """

    def __init__(self, replies=None, attachments=None):
        self.replies = list(replies or [])
        self.attachments = dict(attachments or {})
        self.sent: list[tuple[str, object]] = []
        self.texts: dict[str, str] = {}
        self.deleted: list[str] = []
        self.prompts: list[tuple[str, str]] = []
        self.private: list[tuple[str, str]] = []
        self.attachment_fetches: list[str] = []
        self.fail_send_after: int | None = None
        self._next_id = 0

    async def send_message(self, channel_id, message):
        if self.fail_send_after is not None and len(self.sent) >= self.fail_send_after:
            raise RuntimeError("send failed")
        self._next_id += 1
        ref = MessageRef(channel_id=channel_id, message_id=f"msg-{self._next_id}")
        self.sent.append((channel_id, message))
        self.texts[ref.message_id] = message.text
        return ref

    async def edit_message(self, ref, message):
        self.texts[ref.message_id] = message.text

    async def delete_message(self, ref):
        self.deleted.append(ref.message_id)
        return self.texts.pop(ref.message_id, None) is not None

    async def fetch_message_text(self, ref):
        return self.texts.get(ref.message_id)

    async def send_prompt(self, member_id, text, *, channel_id=None):
        self.prompts.append((member_id, text))

    async def wait_for_reply(self, member_id, *, channel_id=None, timeout):
        if not self.replies:
            return None
        reply = self.replies.pop(0)
        if reply is HANG:
            await asyncio.sleep(3600)
        if isinstance(reply, str):
            return Reply(content=reply)
        return reply

    async def fetch_attachment(self, url):
        self.attachment_fetches.append(url)
        data = self.attachments[url]
        if isinstance(data, Exception):
            raise data
        return data

    async def send_private(self, member_id, text):
        self.private.append((member_id, text))

    async def resolve_profile(self, member_id):
        return MemberProfile(member_id=member_id, display_name=f"member {member_id}")


class StubSelector:
    def __init__(self, choice=None, hang=False):
        self.choice = choice
        self.hang = hang
        self.calls = 0

    async def choose_character(self, session, member_id, candidates, *, timeout):
        self.calls += 1
        if self.hang:
            await asyncio.sleep(3600)
        return self.choice


@pytest.fixture()
def session_factory():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    create_schema(engine)
    sf = build_session_factory(engine)
    with sf() as session:
        session.execute(text("PRAGMA foreign_keys=ON"))
        session.commit()
    return sf


@pytest.fixture()
def uow_factory(session_factory):
    def _factory():
        return SQLAlchemyUnitOfWork(session_factory)

    return _factory


@pytest.fixture()
def messaging():
    return StubMessaging()


@pytest.fixture()
def selector():
    return StubSelector()


@pytest.fixture()
def make_engine(uow_factory, messaging, selector):
    def _make(config=None, identity=None):
        return RoleplayEngine(
            uow_factory=uow_factory,
            messaging=messaging,
            identity=identity,
            selector=selector,
            config=config or PostingConfig(selection_timeout_seconds=0.05, reply_timeout_seconds=0.05),
            clock=lambda: FIXED_NOW,
        )

    return _make


@pytest.fixture()
def seeded(make_engine):
    """A session with channel attached, a GM, and characters A, B (alice) and C (bob)."""
    engine = make_engine()
    session = engine.create_session("guild-1", "The Long Night", "gm-member", "#112233")
    asyncio.run(engine.attach_channels(session.id, "chan-posts", "cat-1"))
    a = engine.create_character(session.id, "Aria", "#AA0000", member_id="alice")
    b = engine.create_character(session.id, "Bram", "#00AA00", member_id="alice")
    c = engine.create_character(session.id, "Cole", "#0000AA", member_id="bob")
    asyncio.run(engine.set_turn_order(session.id, [[a.id, b.id], [c.id]]))
    return {
        "engine": engine,
        "session": session,
        "a": a.id,
        "b": b.id,
        "c": c.id,
        "alice": engine.get_player("guild-1", "alice"),
        "bob": engine.get_player("guild-1", "bob"),
    }
