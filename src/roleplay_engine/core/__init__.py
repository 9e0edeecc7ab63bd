from .engine import RoleplayEngine
from .attachments import fetch_attachment_text, select_text_attachment
from .characters import CharacterRegistry
from .chunking import MAX_CHUNK_CHARS, chunk_content
from .errors import (
    AttachmentFetchFailed,
    CharacterNotFound,
    IdentityResolutionFailed,
    InvalidClassification,
    InvalidColor,
    InvalidInformation,
    InvalidTurnOrder,
    RoleplayError,
    SessionNotFound,
)
from .information import InformationEntry, InformationStore
from .players import PlayerIdentityResolver, PlayerRegistry
from .ports import CharacterSelectorPort, IdentityResolverPort, MessagingPort
from .posting import PostingAttempt, PostingConfig
from .turn_order import TurnOrderEngine
from .types import (
    GM_SENTINEL,
    AttachmentRef,
    CharacterState,
    MemberProfile,
    MessageRef,
    OutgoingMessage,
    PlayerState,
    PostRecord,
    PostResult,
    Reply,
    SectionBreak,
    SessionState,
    UndoResult,
)

__all__ = [
    "RoleplayEngine",
    "TurnOrderEngine",
    "PostingAttempt",
    "PostingConfig",
    "CharacterRegistry",
    "PlayerRegistry",
    "PlayerIdentityResolver",
    "InformationEntry",
    "InformationStore",
    "MessagingPort",
    "IdentityResolverPort",
    "CharacterSelectorPort",
    "chunk_content",
    "MAX_CHUNK_CHARS",
    "fetch_attachment_text",
    "select_text_attachment",
    "RoleplayError",
    "InvalidTurnOrder",
    "AttachmentFetchFailed",
    "IdentityResolutionFailed",
    "SessionNotFound",
    "CharacterNotFound",
    "InvalidClassification",
    "InvalidInformation",
    "InvalidColor",
    "GM_SENTINEL",
    "AttachmentRef",
    "CharacterState",
    "MemberProfile",
    "MessageRef",
    "OutgoingMessage",
    "PlayerState",
    "PostRecord",
    "PostResult",
    "Reply",
    "SectionBreak",
    "SessionState",
    "UndoResult",
]
