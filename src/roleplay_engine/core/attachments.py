from __future__ import annotations

import logging
from typing import Protocol, Sequence

from .errors import AttachmentFetchFailed
from .types import AttachmentRef


class AttachmentFetcher(Protocol):
    async def fetch_attachment(self, url: str) -> bytes:
        ...


def select_text_attachment(
    attachments: Sequence[AttachmentRef] | None,
    suffixes: Sequence[str] = (".txt",),
) -> AttachmentRef | None:
    """Return the first attachment whose filename ends with a text suffix."""
    if not attachments:
        return None
    lowered = tuple(suffix.lower() for suffix in suffixes)
    for att in attachments:
        if att.filename and att.filename.lower().endswith(lowered):
            return att
    return None


async def fetch_attachment_text(
    fetcher: AttachmentFetcher,
    attachment: AttachmentRef,
    *,
    max_bytes: int = 500_000,
    logger: logging.Logger | None = None,
) -> str:
    """Download and decode a text attachment.

    Raises ``AttachmentFetchFailed`` when the file is too large, the download
    fails, or the decoded text is empty.
    """
    log = logger or logging.getLogger(__name__)

    if attachment.size and attachment.size > max_bytes:
        size_kb = attachment.size // 1024
        limit_kb = max_bytes // 1024
        raise AttachmentFetchFailed(f"File too large ({size_kb}KB, limit {limit_kb}KB)")

    try:
        raw = await fetcher.fetch_attachment(attachment.url)
    except Exception as exc:
        log.warning("Attachment read failed: %s", exc)
        raise AttachmentFetchFailed(str(exc)) from exc
    if not raw:
        raise AttachmentFetchFailed("empty_attachment")
    if len(raw) > max_bytes:
        raise AttachmentFetchFailed(f"File too large ({len(raw) // 1024}KB, limit {max_bytes // 1024}KB)")

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        text = raw.decode("latin-1")
    if not text.strip():
        raise AttachmentFetchFailed("empty_attachment")
    return text
