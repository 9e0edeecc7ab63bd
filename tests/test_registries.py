from __future__ import annotations

import asyncio

import pytest

from roleplay_engine.core.errors import (
    CharacterNotFound,
    InvalidClassification,
    InvalidColor,
    InvalidTurnOrder,
    SessionNotFound,
)
from roleplay_engine.core.players import player_ids_in


def test_create_session_provisions_gm_character(make_engine):
    engine = make_engine()
    session = engine.create_session("guild-1", "  Ashes   of Dawn ", "gm-member", "#abcdef", description="A siege.")

    assert session.name == "Ashes of Dawn"
    assert session.color == "#ABCDEF"
    assert session.gm_character.is_gm is True
    assert session.gm_character.player_id is None
    assert list(session.characters) == [session.gm_character_id]
    assert (session.act, session.chapter, session.round) == (0, 0, 0)


def test_create_session_rejects_bad_color(make_engine):
    engine = make_engine()
    with pytest.raises(InvalidColor):
        engine.create_session("guild-1", "Bad", "gm-member", "red")


def test_unknown_session_raises(make_engine):
    engine = make_engine()
    with pytest.raises(SessionNotFound):
        engine.get_session("missing")


def test_player_registry_is_idempotent(make_engine):
    engine = make_engine()
    first = engine.get_player("guild-1", "alice")
    second = engine.get_player("guild-1", "alice")
    other_guild = engine.get_player("guild-2", "alice")
    assert first.id == second.id
    assert other_guild.id != first.id


def test_player_characters_are_tracked(seeded):
    alice = seeded["alice"]
    assert sorted(alice.character_ids) == sorted([seeded["a"], seeded["b"]])
    assert sorted(player_ids_in(seeded["session"])) == sorted([alice.id, seeded["bob"].id])
    assert sorted(seeded["engine"].players_in(seeded["session"].id)) == ["alice", "bob"]


def test_edit_character_validates_before_writing(seeded):
    engine, session = seeded["engine"], seeded["session"]
    character = engine.characters.edit_character(session, seeded["a"], name="Aria the Bold", color="#ff00ff")
    assert character.name == "Aria the Bold"
    assert character.color == "#FF00FF"

    with pytest.raises(InvalidColor):
        engine.characters.edit_character(session, seeded["a"], name="Renamed", color="purple")
    assert session.characters[seeded["a"]].name == "Aria the Bold"

    with pytest.raises(CharacterNotFound):
        engine.characters.edit_character(session, "nobody", name="Ghost")


def test_information_tiers_persist_and_reload(seeded, make_engine):
    engine, session = seeded["engine"], seeded["session"]
    strength = engine.characters.add_information(session, seeded["a"], "public", "Strength", "attribute", "14")
    secret = engine.characters.add_information(session, seeded["a"], "gm", "Secret", "generic", "Is a spy")
    engine.characters.add_knowledge(session, seeded["a"], "fact-17")
    assert engine.characters.set_information_classification(session, seeded["a"], secret.id, "private") is True

    with pytest.raises(InvalidClassification):
        engine.characters.add_information(session, seeded["a"], "top-secret", "X", "generic", "y")

    reloaded = make_engine()
    assert reloaded.load_sessions("guild-1") == 1
    character = reloaded.get_session(session.id).characters[seeded["a"]]
    assert character.information.classification_of(strength.id) == "public"
    assert character.information.get(strength.id).value == 14
    assert character.information.classification_of(secret.id) == "private"
    assert character.knowledge == ["fact-17"]

    assert engine.characters.remove_information(session, seeded["a"], strength.id) is True
    assert engine.characters.remove_information(session, seeded["a"], strength.id) is False


def test_session_state_round_trips_through_storage(seeded, messaging, make_engine):
    engine, session = seeded["engine"], seeded["session"]
    messaging.replies = ["Opening.", "done"]
    asyncio.run(engine.handle_post_request(session.id, "gm"))
    asyncio.run(engine.set_turn_duration(session.id, 30_000))

    reloaded = make_engine()
    reloaded.load_sessions()
    state = reloaded.get_session(session.id)
    assert state.round == 1
    assert state.turn_order == session.turn_order
    assert state.current_turn_order == session.current_turn_order
    assert state.turn_duration_ms == 30_000
    assert state.turn_time == session.turn_time
    assert state.channel_id == "chan-posts"
    assert state.gm_character_id == session.gm_character_id
    assert state.busy is False


def test_set_turn_order_via_engine_rejects_gm(seeded, make_engine):
    engine, session = seeded["engine"], seeded["session"]
    before = [list(group) for group in session.turn_order]
    with pytest.raises(InvalidTurnOrder):
        asyncio.run(engine.set_turn_order(session.id, [[session.gm_character_id]]))
    assert session.turn_order == before

    reloaded = make_engine()
    reloaded.load_sessions()
    assert reloaded.get_session(session.id).turn_order == before


def test_increment_act_publishes_section_break(seeded, messaging):
    engine, session = seeded["engine"], seeded["session"]
    refreshed = []
    engine.subscribe_refresh(lambda state: refreshed.append(state.act))

    section = asyncio.run(engine.increment_act(session.id, "Finale"))

    assert (session.act, session.chapter, session.round) == (1, 0, 0)
    assert section.title == "Finale"
    channel_id, message = messaging.sent[-1]
    assert channel_id == "chan-posts"
    assert message.heading == "Act 1: Finale"
    assert refreshed == [1]


def test_increment_chapter_after_rounds(seeded, messaging):
    engine, session = seeded["engine"], seeded["session"]
    messaging.replies = ["Opening.", "done"]
    asyncio.run(engine.handle_post_request(session.id, "gm"))

    asyncio.run(engine.increment_chapter(session.id))

    assert (session.chapter, session.round) == (1, 0)
    assert messaging.sent[-1][1].heading == "Chapter 1"


def test_who_may_post_through_engine(seeded, messaging):
    engine, session = seeded["engine"], seeded["session"]
    assert asyncio.run(engine.who_may_post(session.id)) == ["gm-member"]

    messaging.replies = ["Opening.", "done"]
    asyncio.run(engine.handle_post_request(session.id, "gm"))
    assert asyncio.run(engine.who_may_post(session.id)) == ["alice"]


def test_reload_keeps_live_sessions(seeded):
    engine, session = seeded["engine"], seeded["session"]
    session.busy = True

    assert engine.load_sessions() == 0

    assert engine.get_session(session.id) is session
    assert engine.get_session(session.id).busy is True
