from __future__ import annotations

import asyncio
import logging

from roleplay_engine import RoleplayEngine
from roleplay_engine.core.types import MemberProfile, MessageRef, Reply
from roleplay_engine.persistence.sqlalchemy import (
    SQLAlchemyUnitOfWork,
    build_engine,
    build_session_factory,
    create_schema,
)


class ConsoleMessaging:
    """Prints outgoing messages and replays a fixed script of replies."""

    def __init__(self, replies):
        self._replies = list(replies)
        self._texts: dict[str, str] = {}

    async def send_message(self, channel_id, message):
        ref = MessageRef(channel_id=channel_id, message_id=str(len(self._texts) + 1))
        self._texts[ref.message_id] = message.text
        if message.heading:
            print(f"[{channel_id}] == {message.heading} ==")
        print(f"[{channel_id}] {message.author_name}: {message.text}  ({message.footer})")
        return ref

    async def edit_message(self, ref, message):
        self._texts[ref.message_id] = message.text

    async def delete_message(self, ref):
        return self._texts.pop(ref.message_id, None) is not None

    async def fetch_message_text(self, ref):
        return self._texts.get(ref.message_id)

    async def send_prompt(self, member_id, text, *, channel_id=None):
        print(f"  (to {member_id}) {text}")

    async def wait_for_reply(self, member_id, *, channel_id=None, timeout):
        if not self._replies:
            return None
        return Reply(content=self._replies.pop(0))

    async def fetch_attachment(self, url):
        raise RuntimeError("attachments are not available in the demo")

    async def send_private(self, member_id, text):
        print(f"  (dm {member_id}) {text}")

    async def resolve_profile(self, member_id):
        return MemberProfile(member_id=member_id, display_name=member_id)


def make_uow_factory():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    create_schema(engine)
    session_factory = build_session_factory(engine)

    def _uow_factory():
        return SQLAlchemyUnitOfWork(session_factory)

    return _uow_factory


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    messaging = ConsoleMessaging(
        [
            "Rain hammers the harbour.", "done",
            "Mira ducks under the awning.", "done",
            "Mira ducks under the awning.", "done",
        ]
    )
    engine = RoleplayEngine(uow_factory=make_uow_factory(), messaging=messaging)

    session = engine.create_session("guild-1", "Harbour Lights", "gm-member", "#336699")
    await engine.attach_channels(session.id, "posts")
    mira = engine.create_character(session.id, "Mira", "#CC8800", member_id="player-1")
    await engine.set_turn_order(session.id, [[mira.id]])

    result = await engine.handle_post_request(session.id, "gm")
    print("gm post:", result.status, "round:", session.round)
    print("who may post:", await engine.who_may_post(session.id))

    player = engine.get_player("guild-1", "player-1")
    result = await engine.handle_post_request(session.id, player)
    print("player post:", result.status, "order:", session.current_turn_order)

    undo = await engine.handle_undo_request(session.id, "front")
    print("undo:", undo.status, "order:", session.current_turn_order)

    result = await engine.handle_post_request(session.id, player)
    print("repost:", result.status)

    await engine.increment_chapter(session.id, "Low Tide")


if __name__ == "__main__":
    asyncio.run(main())
