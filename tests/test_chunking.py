from __future__ import annotations

from roleplay_engine.core.chunking import MAX_CHUNK_CHARS, chunk_content, split_content


def test_short_content_is_a_single_chunk():
    text = "The lantern gutters.\nSomething moves in the dark."
    assert chunk_content(text) == [text]


def test_content_at_limit_is_not_split():
    text = "x" * MAX_CHUNK_CHARS
    assert chunk_content(text) == [text]


def test_unbroken_run_is_hard_cut_at_limit():
    text = "a" * 5000 + " ending"
    chunks = chunk_content(text)
    assert len(chunks) >= 2
    assert all(len(chunk) <= MAX_CHUNK_CHARS for chunk in chunks)
    assert chunks[0] == "a" * MAX_CHUNK_CHARS
    assert "".join(chunks) == text


def test_split_prefers_last_whitespace_before_limit():
    words = ["word%04d" % i for i in range(1000)]
    text = " ".join(words)
    chunks = chunk_content(text, limit=100)
    assert all(len(chunk) <= 100 for chunk in chunks)
    assert " ".join(chunks) == text
    for chunk in chunks:
        assert not chunk.startswith(" ")
        assert not chunk.endswith(" ")


def test_whitespace_exactly_at_limit_is_a_valid_cut():
    text = "a" * 10 + " " + "b" * 5
    assert chunk_content(text, limit=10) == ["a" * 10, "b" * 5]


def test_rechunking_valid_chunks_is_identity():
    text = ("lorem ipsum dolor sit amet " * 400).strip()
    chunks = chunk_content(text)
    for chunk in chunks:
        assert chunk_content(chunk) == [chunk]


def test_newline_boundaries_count_as_whitespace():
    text = "first line\nsecond line"
    assert chunk_content(text, limit=12) == ["first line", "second line"]


def test_split_reports_what_each_cut_consumed():
    text = "a" * 12 + " tail\nend"
    chunks, separators = split_content(text, limit=10)
    assert chunks == ["a" * 10, "aa tail", "end"]
    assert separators == ["", "\n", ""]
    assert "".join(c + s for c, s in zip(chunks, separators)) == text
