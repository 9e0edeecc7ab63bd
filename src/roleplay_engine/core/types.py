from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

from .information import InformationStore

GM_SENTINEL = "gm"

TurnGroup = list[str]
TurnOrder = list[TurnGroup]
UndoMode = Literal["none", "append", "front"]
UNDO_MODES = ("none", "append", "front")


@dataclass
class CharacterState:
    id: str
    name: str
    color: str = "#FFFFFF"
    player_id: Optional[str] = None
    is_gm: bool = False
    information: InformationStore = field(default_factory=InformationStore)
    knowledge: list[str] = field(default_factory=list)


@dataclass
class PlayerState:
    id: str
    guild_id: str
    member_id: str
    character_ids: list[str] = field(default_factory=list)


@dataclass
class SessionState:
    id: str
    guild_id: str
    name: str
    gm_member_id: str
    gm_character_id: str
    description: str = ""
    color: str = "#FFFFFF"
    channel_id: Optional[str] = None
    category_id: Optional[str] = None
    act: int = 0
    chapter: int = 0
    round: int = 0
    turn_order: TurnOrder = field(default_factory=list)
    current_turn_order: TurnOrder = field(default_factory=list)
    turn_duration_ms: Optional[int] = None
    turn_time: Optional[datetime] = None
    busy: bool = False
    characters: dict[str, CharacterState] = field(default_factory=dict)

    @property
    def gm_character(self) -> CharacterState:
        return self.characters[self.gm_character_id]

    def progress_footer(self) -> str:
        return f"Act {self.act} | Chapter {self.chapter} | Round {self.round}"


@dataclass
class MessageRef:
    channel_id: str
    message_id: str


@dataclass
class OutgoingMessage:
    text: str
    author_name: Optional[str] = None
    color: Optional[str] = None
    footer: Optional[str] = None
    position: Optional[tuple[int, int]] = None
    heading: Optional[str] = None


@dataclass
class AttachmentRef:
    filename: Optional[str]
    url: str
    size: Optional[int] = None


@dataclass
class Reply:
    content: str
    attachments: list[AttachmentRef] = field(default_factory=list)


@dataclass
class MemberProfile:
    member_id: str
    display_name: str
    avatar_url: Optional[str] = None


@dataclass
class SectionBreak:
    kind: Literal["act", "chapter"]
    number: int
    title: Optional[str] = None

    def heading(self) -> str:
        base = f"{self.kind.capitalize()} {self.number}"
        if self.title:
            return f"{base}: {self.title}"
        return base


@dataclass
class PostRecord:
    id: int
    session_id: str
    character_id: str
    act: int
    chapter: int
    round: int
    content: str
    message_refs: list[MessageRef] = field(default_factory=list)
    separators: list[Optional[str]] = field(default_factory=list)
    created_at: Optional[datetime] = None


@dataclass
class PostResult:
    status: str
    character_id: Optional[str] = None
    message_refs: list[MessageRef] = field(default_factory=list)
    off_turn: bool = False
    reason: Optional[str] = None


@dataclass
class UndoResult:
    status: str
    post_id: Optional[int] = None
    character_id: Optional[str] = None
    deleted_messages: int = 0
    content: Optional[str] = None

    def __bool__(self) -> bool:
        return self.status == "ok"
