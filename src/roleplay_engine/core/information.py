from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Union

from .errors import InvalidClassification, InvalidInformation

PUBLIC = "public"
PRIVATE = "private"
GM = "gm"
CLASSIFICATIONS = (PUBLIC, PRIVATE, GM)

NUMERIC_TYPES = ("attribute", "skill")

InformationValue = Union[int, float, str]


def coerce_value(info_type: str, raw: object) -> InformationValue:
    """Normalize a raw value for its information type.

    Attributes and skills are numeric; anything else is kept as text.
    """
    info_type = str(info_type or "").strip().lower()
    if not info_type:
        raise InvalidInformation("missing_type")
    if info_type not in NUMERIC_TYPES:
        return "" if raw is None else str(raw)
    if isinstance(raw, bool):
        raise InvalidInformation(f"{info_type} value must be numeric")
    if isinstance(raw, (int, float)):
        number = float(raw)
    else:
        try:
            number = float(str(raw).strip())
        except (TypeError, ValueError):
            raise InvalidInformation(f"{info_type} value must be numeric") from None
    return int(number) if number.is_integer() else number


@dataclass
class InformationEntry:
    id: str
    name: str
    type: str
    value: InformationValue

    @classmethod
    def build(cls, id: str, name: str, type: str, value: object) -> "InformationEntry":
        name = str(name or "").strip()
        if not name:
            raise InvalidInformation("missing_name")
        info_type = str(type or "").strip().lower()
        return cls(id=id, name=name, type=info_type, value=coerce_value(info_type, value))


class InformationStore:
    """Classified facts owned by one character.

    Three disjoint tiers keyed by information id; an id lives in at most one
    tier at a time.
    """

    def __init__(self):
        self._tiers: dict[str, dict[str, InformationEntry]] = {name: {} for name in CLASSIFICATIONS}

    def add(self, classification: str, info: InformationEntry) -> None:
        tier = self._tier(classification)
        self.remove(info.id)
        tier[info.id] = info

    def remove(self, info_id: str) -> bool:
        removed = False
        for tier in self._tiers.values():
            if tier.pop(info_id, None) is not None:
                removed = True
        return removed

    def get(self, info_id: str) -> InformationEntry | None:
        for tier in self._tiers.values():
            if info_id in tier:
                return tier[info_id]
        return None

    def classification_of(self, info_id: str) -> str | None:
        for name, tier in self._tiers.items():
            if info_id in tier:
                return name
        return None

    def set_classification(self, info_id: str, classification: str) -> bool:
        target = self._tier(classification)
        info = self.get(info_id)
        if info is None:
            return False
        self.remove(info_id)
        target[info_id] = info
        return True

    def tier(self, classification: str) -> dict[str, InformationEntry]:
        return dict(self._tier(classification))

    def ids(self, classification: str) -> list[str]:
        return list(self._tier(classification).keys())

    def visible_to(self, audience: str) -> list[InformationEntry]:
        if audience == GM:
            names = CLASSIFICATIONS
        elif audience == "owner":
            names = (PUBLIC, PRIVATE)
        else:
            names = (PUBLIC,)
        out: list[InformationEntry] = []
        for name in names:
            out.extend(self._tiers[name].values())
        return out

    def copy(self) -> "InformationStore":
        clone = InformationStore()
        for name, tier in self._tiers.items():
            clone._tiers[name] = dict(tier)
        return clone

    def __iter__(self) -> Iterator[InformationEntry]:
        for tier in self._tiers.values():
            yield from tier.values()

    def __len__(self) -> int:
        return sum(len(tier) for tier in self._tiers.values())

    def __contains__(self, info_id: object) -> bool:
        return any(info_id in tier for tier in self._tiers.values())

    def _tier(self, classification: str) -> dict[str, InformationEntry]:
        try:
            return self._tiers[classification]
        except KeyError:
            raise InvalidClassification(f"invalid classification: {classification!r}") from None
