from __future__ import annotations

import asyncio

import pytest

from roleplay_engine.core.attachments import fetch_attachment_text, select_text_attachment
from roleplay_engine.core.errors import AttachmentFetchFailed
from roleplay_engine.core.types import AttachmentRef


class StubFetcher:
    def __init__(self, data):
        self.data = data
        self.urls: list[str] = []

    async def fetch_attachment(self, url: str) -> bytes:
        self.urls.append(url)
        if isinstance(self.data, Exception):
            raise self.data
        return self.data


def _ref(filename="notes.txt", size=None):
    return AttachmentRef(filename=filename, url=f"https://files/{filename}", size=size)


def test_select_text_attachment_matches_suffix_case_insensitively():
    picked = select_text_attachment([_ref("map.png"), _ref("POST.TXT"), _ref("other.txt")])
    assert picked.filename == "POST.TXT"
    assert select_text_attachment([_ref("map.png")]) is None
    assert select_text_attachment(None) is None


def test_fetch_attachment_text_happy_path_utf8():
    async def run_test():
        out = await fetch_attachment_text(StubFetcher("hello world\n".encode("utf-8")), _ref())
        assert out == "hello world\n"

    asyncio.run(run_test())


def test_fetch_attachment_text_latin1_fallback():
    async def run_test():
        raw = "cafe\xe9".encode("latin-1")
        out = await fetch_attachment_text(StubFetcher(raw), _ref("story.txt"))
        assert out == "cafe\xe9"

    asyncio.run(run_test())


def test_declared_size_over_limit_skips_download():
    async def run_test():
        fetcher = StubFetcher(b"unused")
        with pytest.raises(AttachmentFetchFailed, match="File too large"):
            await fetch_attachment_text(fetcher, _ref(size=2048), max_bytes=1024)
        assert fetcher.urls == []

    asyncio.run(run_test())


def test_downloaded_size_over_limit():
    async def run_test():
        with pytest.raises(AttachmentFetchFailed, match="File too large"):
            await fetch_attachment_text(StubFetcher(b"0123456789ab"), _ref(), max_bytes=10)

    asyncio.run(run_test())


def test_fetch_error_and_blank_file_raise():
    async def run_test():
        with pytest.raises(AttachmentFetchFailed):
            await fetch_attachment_text(StubFetcher(ConnectionError("reset")), _ref())
        with pytest.raises(AttachmentFetchFailed, match="empty_attachment"):
            await fetch_attachment_text(StubFetcher(b"  \n "), _ref())

    asyncio.run(run_test())
