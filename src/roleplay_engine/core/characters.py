from __future__ import annotations

import logging
from typing import Any, Callable

from .errors import CharacterNotFound, InvalidInformation
from .information import CLASSIFICATIONS, GM, PRIVATE, PUBLIC, InformationEntry, InformationStore
from .normalize import dump_json, normalize_color, normalize_name, parse_json_list
from .types import CharacterState, SessionState

_TIER_COLUMNS = {
    PUBLIC: "public_information_json",
    PRIVATE: "private_information_json",
    GM: "gm_information_json",
}


def character_state_from_row(uow: Any, row: Any) -> CharacterState:
    """Build a live character, with its information tiers, from storage."""
    info_rows = {info.id: info for info in uow.information.list_by_character(row.id)}
    store = InformationStore()
    for classification in CLASSIFICATIONS:
        for info_id in parse_json_list(getattr(row, _TIER_COLUMNS[classification])):
            info = info_rows.get(str(info_id))
            if info is None:
                continue
            try:
                entry = InformationEntry.build(info.id, info.name, info.type, info.value)
            except InvalidInformation:
                entry = InformationEntry(id=info.id, name=info.name, type=info.type, value=info.value)
            store.add(classification, entry)
    return CharacterState(
        id=row.id,
        name=row.name,
        color=row.color,
        player_id=row.player_id,
        is_gm=bool(row.is_gm),
        information=store,
        knowledge=[str(ref) for ref in parse_json_list(row.knowledge_json)],
    )


def information_values(store: InformationStore) -> dict[str, object]:
    return {_TIER_COLUMNS[name]: dump_json(store.ids(name)) for name in CLASSIFICATIONS}


class CharacterRegistry:
    """Named actors of a session, persisted one row per character."""

    def __init__(self, uow_factory: Callable[[], Any], logger: logging.Logger | None = None):
        self._uow_factory = uow_factory
        self._logger = logger or logging.getLogger(__name__)

    def get(self, session: SessionState, character_id: str) -> CharacterState:
        character = session.characters.get(character_id)
        if character is None:
            raise CharacterNotFound(character_id)
        return character

    def create_character(
        self,
        session: SessionState,
        name: str,
        color: str = "#FFFFFF",
        player_id: str | None = None,
    ) -> CharacterState:
        name = normalize_name(name)
        if not name:
            raise ValueError("character name is required")
        color = normalize_color(color)
        with self._uow_factory() as uow:
            row = uow.characters.create(
                session_id=session.id,
                name=name,
                color=color,
                player_id=player_id,
            )
            uow.commit()
            character = CharacterState(id=row.id, name=name, color=color, player_id=player_id)
        session.characters[character.id] = character
        self._logger.info("CHARACTER CREATED session=%s character=%s player=%s", session.id, character.id, player_id)
        return character

    def edit_character(
        self,
        session: SessionState,
        character_id: str,
        *,
        name: str | None = None,
        color: str | None = None,
    ) -> CharacterState:
        character = self.get(session, character_id)
        values: dict[str, object] = {}
        if name is not None:
            new_name = normalize_name(name)
            if not new_name:
                raise ValueError("character name is required")
            values["name"] = new_name
        if color is not None:
            values["color"] = normalize_color(color)
        if not values:
            return character
        with self._uow_factory() as uow:
            if not uow.characters.apply_update(character_id, values):
                raise CharacterNotFound(character_id)
            uow.commit()
        character.name = str(values.get("name", character.name))
        character.color = str(values.get("color", character.color))
        return character

    def add_knowledge(self, session: SessionState, character_id: str, ref: str) -> list[str]:
        character = self.get(session, character_id)
        knowledge = character.knowledge + [str(ref)]
        with self._uow_factory() as uow:
            uow.characters.apply_update(character_id, {"knowledge_json": dump_json(knowledge)})
            uow.commit()
        character.knowledge = knowledge
        return list(knowledge)

    def add_information(
        self,
        session: SessionState,
        character_id: str,
        classification: str,
        name: str,
        info_type: str,
        value: object,
    ) -> InformationEntry:
        character = self.get(session, character_id)
        entry = InformationEntry.build("", name, info_type, value)
        store = character.information.copy()
        with self._uow_factory() as uow:
            row = uow.information.create(
                character_id=character_id,
                name=entry.name,
                type=entry.type,
                value=str(entry.value),
            )
            entry.id = row.id
            store.add(classification, entry)
            uow.characters.apply_update(character_id, information_values(store))
            uow.commit()
        character.information = store
        return entry

    def remove_information(self, session: SessionState, character_id: str, information_id: str) -> bool:
        character = self.get(session, character_id)
        store = character.information.copy()
        if not store.remove(information_id):
            return False
        with self._uow_factory() as uow:
            uow.characters.apply_update(character_id, information_values(store))
            uow.information.delete(information_id)
            uow.commit()
        character.information = store
        return True

    def set_information_classification(
        self,
        session: SessionState,
        character_id: str,
        information_id: str,
        classification: str,
    ) -> bool:
        character = self.get(session, character_id)
        store = character.information.copy()
        if not store.set_classification(information_id, classification):
            return False
        with self._uow_factory() as uow:
            uow.characters.apply_update(character_id, information_values(store))
            uow.commit()
        character.information = store
        return True
