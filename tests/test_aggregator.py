from pathlib import Path

import pytest

from press import aggregator
from press.aggregator import aggregate, chunk_sources, read_sources, split_files
from press.types import SourceFile
from press.walker import WalkedPath


def _src(path: str, n_lines: int) -> SourceFile:
    content = "".join(f"{path} line {i}\n" for i in range(n_lines))
    return SourceFile(path=path, content=content, disk_path=Path(path))


def _sources():
    return [_src("a.py", 3), _src("src/b.rs", 12), _src("c.txt", 1), _src("d.md", 0)]


def test_single_chunk_when_limit_covers_everything():
    sources = _sources()
    total = len(aggregate(sources).splitlines())
    for limit in (total, total + 1, 10_000):
        chunks = chunk_sources(sources, limit)
        assert len(chunks) == 1
        assert chunks[0].content == aggregate(sources)
        assert (chunks[0].index, chunks[0].total_chunks) == (1, 1)


@pytest.mark.parametrize("limit", [1, 2, 3, 5, 7, 15, 20])
def test_chunks_reconstruct_the_aggregated_text(limit):
    sources = _sources()
    chunks = chunk_sources(sources, limit)
    assert len(chunks) > 1
    assert "".join(c.content for c in chunks) == aggregate(sources)
    assert all(len(c.content.splitlines()) <= limit for c in chunks)
    assert [c.index for c in chunks] == list(range(1, len(chunks) + 1))
    assert {c.total_chunks for c in chunks} == {len(chunks)}


def test_small_files_are_not_split_across_chunks():
    sources = [_src("a.py", 2), _src("b.py", 2), _src("c.py", 2)]
    # each block is 5 lines: open, 2 content, blank, close
    chunks = chunk_sources(sources, 10)
    assert len(chunks) == 2
    assert chunks[0].content.count("@@@ FILE") == 2
    assert chunks[1].content.startswith("@@@ FILE c.py\n")


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        chunk_sources(_sources(), 0)


def test_unreadable_files_are_skipped(tmp_path):
    good = tmp_path / "good.txt"
    good.write_text("ok\n", encoding="utf-8")
    binary = tmp_path / "bad.txt"
    binary.write_bytes(b"\xff\xfe\x00\x81")

    walked = [
        WalkedPath(disk_path=good, marker_path="good.txt"),
        WalkedPath(disk_path=binary, marker_path="bad.txt"),
        WalkedPath(disk_path=tmp_path / "gone.txt", marker_path="gone.txt"),
    ]
    sources = read_sources(walked)

    assert [s.path for s in sources] == ["good.txt"]
    assert sources[0].content == "ok\n"


def test_oversized_file_is_skipped(tmp_path, monkeypatch):
    big = tmp_path / "big.txt"
    big.write_text("0123456789\n", encoding="utf-8")
    monkeypatch.setattr(aggregator, "MAX_FILE_SIZE", 5)

    assert read_sources([WalkedPath(disk_path=big, marker_path="big.txt")]) == []


def test_crlf_content_is_preserved(tmp_path):
    f = tmp_path / "w.txt"
    f.write_bytes(b"a\r\nb\r\n")
    [src] = read_sources([WalkedPath(disk_path=f, marker_path="w.txt")])
    assert src.content == "a\r\nb\r\n"


def test_oversized_file_pieces_are_described():
    big = SourceFile(path="big.py", content="".join(f"l{i}\n" for i in range(60)), disk_path=Path("big.py"))
    chunks = chunk_sources([big], 50)

    assert "".join(c.content for c in chunks) == aggregate([big])
    parts = split_files(chunks)["big.py"]
    assert [(p.number, p.count, p.first_line, p.last_line) for p in parts] == [(1, 2, 1, 49), (2, 2, 50, 60)]
    assert "".join(p.original for p in parts) == big.content
    assert chunks[1].parts[0].original.startswith("l49\n")


def test_whole_blocks_carry_no_parts():
    chunks = chunk_sources([_src("a.py", 2), _src("b.py", 2), _src("c.py", 2)], 10)
    assert split_files(chunks) == {}
