from __future__ import annotations

import re

MAX_CHUNK_CHARS = 4096

_WHITESPACE_RE = re.compile(r"\s")


def _last_whitespace(window: str) -> int:
    last = -1
    for match in _WHITESPACE_RE.finditer(window):
        last = match.start()
    return last


def split_content(content: str, limit: int = MAX_CHUNK_CHARS) -> tuple[list[str], list[str]]:
    """Split ``content`` into chunks of at most ``limit`` characters.

    Cuts land on the last whitespace at or before the limit and consume that
    one whitespace character. Without such whitespace the chunk is cut at
    exactly ``limit``. Content that already fits is returned as one chunk.

    Also returns, per chunk, the text consumed by the cut after it (``""``
    after a hard cut or at the end), so that
    ``"".join(c + s for c, s in zip(chunks, separators)) == content``.
    """
    if limit <= 0:
        raise ValueError("limit must be positive")
    chunks: list[str] = []
    separators: list[str] = []
    rest = content
    while len(rest) > limit:
        cut = _last_whitespace(rest[: limit + 1])
        if cut <= 0:
            chunks.append(rest[:limit])
            separators.append("")
            rest = rest[limit:]
            continue
        chunks.append(rest[:cut])
        separators.append(rest[cut])
        rest = rest[cut + 1 :]
    if rest or not chunks:
        chunks.append(rest)
        separators.append("")
    return chunks, separators


def chunk_content(content: str, limit: int = MAX_CHUNK_CHARS) -> list[str]:
    return split_content(content, limit)[0]


def join_lines(lines: list[str]) -> str:
    return "\n".join(lines)
