from __future__ import annotations

import json
import re
from typing import Any, Iterable

from .errors import InvalidColor
from .types import MessageRef, TurnOrder

_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


def normalize_name(value: str, max_len: int = 128) -> str:
    value = (value or "").strip()
    value = re.sub(r"\s+", " ", value)
    return value[:max_len]


def normalize_color(value: str) -> str:
    value = (value or "").strip()
    if not _COLOR_RE.match(value):
        raise InvalidColor(f"invalid color {value!r}, expected #RRGGBB")
    return value.upper()


def parse_json_list(text: str | None) -> list[Any]:
    if not text:
        return []
    try:
        data = json.loads(text)
    except Exception:
        return []
    return data if isinstance(data, list) else []


def dump_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=True, separators=(",", ":"))


def normalize_turn_order(groups: Iterable[Iterable[Any]]) -> TurnOrder:
    """Copy groups into fresh lists of string ids, dropping duplicates and empty groups."""
    out: TurnOrder = []
    for group in groups:
        seen: list[str] = []
        for member in group:
            member_id = str(member)
            if member_id not in seen:
                seen.append(member_id)
        if seen:
            out.append(seen)
    return out


def parse_turn_order(text: str | None) -> TurnOrder:
    groups = [group for group in parse_json_list(text) if isinstance(group, list)]
    return normalize_turn_order(groups)


def dump_turn_order(order: TurnOrder) -> str:
    return dump_json([list(group) for group in order])


def _ref_items(text: str | None) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    for item in parse_json_list(text):
        if not isinstance(item, dict):
            continue
        if item.get("channel_id") is None or item.get("message_id") is None:
            continue
        items.append(item)
    return items


def parse_message_refs(text: str | None) -> list[MessageRef]:
    return [
        MessageRef(channel_id=str(item["channel_id"]), message_id=str(item["message_id"]))
        for item in _ref_items(text)
    ]


def parse_chunk_separators(text: str | None) -> list[str | None]:
    """Separators stored next to each message ref; ``None`` where unrecorded."""
    out: list[str | None] = []
    for item in _ref_items(text):
        separator = item.get("separator")
        out.append(separator if isinstance(separator, str) else None)
    return out


def dump_message_refs(refs: Iterable[MessageRef], separators: Iterable[str] | None = None) -> str:
    refs = list(refs)
    seps = list(separators) if separators is not None else []
    items: list[dict[str, str]] = []
    for index, ref in enumerate(refs):
        item = {"channel_id": ref.channel_id, "message_id": ref.message_id}
        if index < len(seps):
            item["separator"] = seps[index]
        items.append(item)
    return dump_json(items)
