from __future__ import annotations

import pytest

from roleplay_engine.core.errors import InvalidClassification, InvalidInformation
from roleplay_engine.core.information import InformationEntry, InformationStore, coerce_value


def entry(info_id: str, name: str = "Strength", info_type: str = "attribute", value: object = 12) -> InformationEntry:
    return InformationEntry.build(info_id, name, info_type, value)


def test_numeric_types_are_coerced():
    assert coerce_value("attribute", "14") == 14
    assert coerce_value("skill", 2.5) == 2.5
    assert coerce_value("generic", 7) == "7"
    assert coerce_value("lore", "old maps") == "old maps"


def test_numeric_types_reject_text():
    with pytest.raises(InvalidInformation):
        coerce_value("skill", "very good")
    with pytest.raises(InvalidInformation):
        coerce_value("attribute", True)


def test_entry_requires_name():
    with pytest.raises(InvalidInformation):
        InformationEntry.build("i1", "   ", "generic", "x")


def test_ids_are_unique_across_tiers():
    store = InformationStore()
    store.add("public", entry("i1"))
    store.add("gm", entry("i1"))
    assert store.classification_of("i1") == "gm"
    assert len(store) == 1


def test_set_classification_moves_entry():
    store = InformationStore()
    store.add("private", entry("i1"))
    assert store.set_classification("i1", "public") is True
    assert store.ids("public") == ["i1"]
    assert store.ids("private") == []
    assert store.set_classification("missing", "public") is False


def test_invalid_classification_is_rejected():
    store = InformationStore()
    with pytest.raises(InvalidClassification):
        store.add("secret", entry("i1"))
    store.add("public", entry("i1"))
    with pytest.raises(InvalidClassification):
        store.set_classification("i1", "secret")
    assert store.classification_of("i1") == "public"


def test_visibility_by_audience():
    store = InformationStore()
    store.add("public", entry("pub", name="Title", info_type="generic", value="Knight"))
    store.add("private", entry("priv", name="Debt", info_type="generic", value="200 crowns"))
    store.add("gm", entry("gm", name="Curse", info_type="generic", value="Werewolf"))

    assert [e.id for e in store.visible_to("others")] == ["pub"]
    assert [e.id for e in store.visible_to("owner")] == ["pub", "priv"]
    assert [e.id for e in store.visible_to("gm")] == ["pub", "priv", "gm"]


def test_copy_is_independent():
    store = InformationStore()
    store.add("public", entry("i1"))
    clone = store.copy()
    clone.remove("i1")
    assert "i1" in store
    assert "i1" not in clone
