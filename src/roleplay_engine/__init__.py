from .core.chunking import chunk_content
from .core.engine import RoleplayEngine
from .core.posting import PostingConfig
from .core.turn_order import TurnOrderEngine
from .core.types import GM_SENTINEL, PostResult, SectionBreak, SessionState, UndoResult

__all__ = [
    "RoleplayEngine",
    "TurnOrderEngine",
    "PostingConfig",
    "chunk_content",
    "GM_SENTINEL",
    "PostResult",
    "SectionBreak",
    "SessionState",
    "UndoResult",
]
