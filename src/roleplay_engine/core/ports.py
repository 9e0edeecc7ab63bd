from __future__ import annotations

from typing import Awaitable, Protocol, Sequence

from .types import (
    CharacterState,
    MemberProfile,
    MessageRef,
    OutgoingMessage,
    Reply,
    SessionState,
)


class MessagingPort(Protocol):
    async def send_message(self, channel_id: str, message: OutgoingMessage) -> MessageRef:
        ...

    async def edit_message(self, ref: MessageRef, message: OutgoingMessage) -> None:
        ...

    async def delete_message(self, ref: MessageRef) -> bool:
        ...

    async def fetch_message_text(self, ref: MessageRef) -> str | None:
        ...

    async def send_prompt(self, member_id: str, text: str, *, channel_id: str | None = None) -> None:
        ...

    async def wait_for_reply(
        self,
        member_id: str,
        *,
        channel_id: str | None = None,
        timeout: float,
    ) -> Reply | None:
        ...

    async def fetch_attachment(self, url: str) -> bytes:
        ...

    async def send_private(self, member_id: str, text: str) -> None:
        ...

    async def resolve_profile(self, member_id: str) -> MemberProfile:
        ...


class IdentityResolverPort(Protocol):
    def resolve_member(self, session: SessionState, character: CharacterState) -> Awaitable[str | None] | str | None:
        ...


class CharacterSelectorPort(Protocol):
    async def choose_character(
        self,
        session: SessionState,
        member_id: str,
        candidates: Sequence[CharacterState],
        *,
        timeout: float,
    ) -> str | None:
        ...
