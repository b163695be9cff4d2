from __future__ import annotations

from typing import Iterable

from press import markers
from press.errors import FileReadError
from press.log import get_logger
from press.types import ChunkPart, PromptChunk, SourceFile
from press.walker import WalkedPath

log = get_logger("aggregator")

MAX_FILE_SIZE = 10 * 1024 * 1024


def read_source(walked: WalkedPath) -> SourceFile:
    path = walked.disk_path
    try:
        size = path.stat().st_size
        if size > MAX_FILE_SIZE:
            raise FileReadError(walked.marker_path, f"file too large ({size} bytes, max {MAX_FILE_SIZE})")
        # newline="" keeps CRLF intact so write-back does not change line endings
        with open(path, "r", encoding="utf-8", newline="") as f:
            content = f.read()
    except UnicodeDecodeError:
        raise FileReadError(walked.marker_path, "not valid UTF-8 text") from None
    except OSError as e:
        raise FileReadError(walked.marker_path, e.strerror or str(e)) from e
    return SourceFile(path=walked.marker_path, content=content, disk_path=path)


def read_sources(walked: Iterable[WalkedPath]) -> list[SourceFile]:
    """Read every file, skipping (and logging) the ones that cannot be read."""
    sources: list[SourceFile] = []
    for w in walked:
        try:
            sources.append(read_source(w))
        except FileReadError as e:
            log.warning("Skipping: %s", e)
    return sources


def aggregate(sources: Iterable[SourceFile]) -> str:
    return "".join(markers.wrap(s.path, s.content) for s in sources)


def _line_count(text: str) -> int:
    return len(text.splitlines(keepends=True))


def _split_spans(content: str, block_lines: int, chunk_size: int) -> list[tuple[int, int] | None]:
    """
    Content-line range ``[lo, hi)`` covered by each ``chunk_size`` slice of a
    block. Block line 0 is the open marker, so block line j is content line
    j - 1. Slices holding only marker lines get None.
    """
    n_content = _line_count(content)
    spans: list[tuple[int, int] | None] = []
    for start in range(0, block_lines, chunk_size):
        lo = max(start, 1) - 1
        hi = min(start + chunk_size, n_content + 1) - 1
        spans.append((lo, hi) if hi > lo else None)
    return spans


def chunk_sources(sources: list[SourceFile], chunk_size: int) -> list[PromptChunk]:
    """
    Split the marker-wrapped text into chunks of at most ``chunk_size`` lines.

    Whole file blocks are packed greedily; a single block longer than the
    limit is cut on line boundaries, and each cut piece is described by a
    ``ChunkPart`` on the chunk that holds it. Joining the chunk contents in
    order gives back ``aggregate(sources)`` exactly.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")

    blocks = [markers.wrap(s.path, s.content) for s in sources]
    full = "".join(blocks)
    if _line_count(full) <= chunk_size:
        return [PromptChunk(index=1, content=full, total_chunks=1)]

    pieces: list[tuple[str, list[ChunkPart]]] = []
    current: list[str] = []
    current_parts: list[ChunkPart] = []
    current_lines = 0

    def flush():
        nonlocal current, current_parts, current_lines
        if current:
            pieces.append(("".join(current), current_parts))
        current = []
        current_parts = []
        current_lines = 0

    for source, block in zip(sources, blocks):
        lines = block.splitlines(keepends=True)
        if current_lines + len(lines) <= chunk_size:
            current.append(block)
            current_lines += len(lines)
            continue

        flush()
        if len(lines) <= chunk_size:
            current.append(block)
            current_lines = len(lines)
            continue

        content_lines = source.content.splitlines(keepends=True)
        spans = _split_spans(source.content, len(lines), chunk_size)
        count = sum(1 for span in spans if span)
        number = 0
        for span, start in zip(spans, range(0, len(lines), chunk_size)):
            part_lines = lines[start:start + chunk_size]
            parts: list[ChunkPart] = []
            if span:
                number += 1
                lo, hi = span
                parts.append(ChunkPart(
                    path=source.path,
                    number=number,
                    count=count,
                    first_line=lo + 1,
                    last_line=hi,
                    original="".join(content_lines[lo:hi]),
                ))
            if len(part_lines) == chunk_size:
                pieces.append(("".join(part_lines), parts))
            else:
                # tail of an oversized block can share a chunk with what follows
                current = ["".join(part_lines)]
                current_parts = parts
                current_lines = len(part_lines)
    flush()

    total = len(pieces)
    return [
        PromptChunk(index=i, content=c, total_chunks=total, parts=tuple(parts))
        for i, (c, parts) in enumerate(pieces, start=1)
    ]


def split_files(chunks: Iterable[PromptChunk]) -> dict[str, list[ChunkPart]]:
    """Pieces of every file that was cut across chunks, in order, by marker path."""
    out: dict[str, list[ChunkPart]] = {}
    for chunk in chunks:
        for part in chunk.parts:
            out.setdefault(part.path, []).append(part)
    return out
