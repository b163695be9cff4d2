"""Split a model completion into per-file outputs.

Parsing never fails. Anything the grammar cannot place (text outside file
blocks, blocks with unsafe paths) ends up in a single untagged
``response.txt`` entry, and every oddity is recorded in
``ParseResult.warnings``. When a path is sent twice, the later block wins.

Chunk responses are parsed one at a time, so a block left open at the end of
one response never swallows the text of the next.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath, PureWindowsPath
from typing import Iterable, Optional, Sequence

from press import markers
from press.log import get_logger
from press.types import ChunkPart, ParsedFile, ParseResult

log = get_logger("parser")

UNTAGGED_NAME = "response.txt"
UNTAGGED_FALLBACK_NAME = "response.untagged.txt"

_FENCE_OPEN_RE = re.compile(r"^```[\w+.-]*[ \t]*\r?\n")
_FENCE_CLOSE_RE = re.compile(r"\r?\n```[ \t]*\r?\n?$")


def is_safe_relative_path(path: str) -> bool:
    """Non-empty, relative, and never climbing out of the output root."""
    if not path or not path.strip() or "\x00" in path:
        return False
    normalized = path.replace("\\", "/")
    if normalized.startswith("/") or PureWindowsPath(path).drive:
        return False
    parts = PurePosixPath(normalized).parts
    if not parts or ".." in parts:
        return False
    return any(p not in (".", "") for p in parts)


def normalize_relative_path(path: str) -> str:
    parts = [p for p in PurePosixPath(path.replace("\\", "/")).parts if p != "."]
    return "/".join(parts)


def strip_code_fence(content: str) -> str:
    """
    Remove a ``` fence that wraps the whole block, if there is one.
    Fences written by ``markers.wrap`` are escaped and never match.
    """
    m_open = _FENCE_OPEN_RE.match(content)
    if not m_open:
        return content
    m_close = _FENCE_CLOSE_RE.search(content, m_open.end() - 1)
    if not m_close:
        return content
    if m_close.start() < m_open.end():
        return ""
    return content[m_open.end():m_close.start()] + "\n"


def _drop_final_break(text: str) -> str:
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


def _as_text_block(content: str) -> str:
    return content + "\n" if content and not content.endswith("\n") else content


@dataclass
class _Block:
    header: str
    path: str
    part: Optional[tuple[int, int]] = None
    lines: list[str] = field(default_factory=list)


def _match_block_open(line: str) -> _Block | None:
    path = markers.match_open(line)
    if path is not None:
        return _Block(header=line, path=path)
    part = markers.match_part(line)
    if part is not None:
        path, number, count = part
        return _Block(header=line, path=path, part=(number, count))
    return None


def _describe(block: _Block) -> str:
    if block.part:
        return f"part {block.part[0]}/{block.part[1]} of {block.path!r}"
    return f"file {block.path!r}"


class _Collector:
    """Accumulates blocks and untagged text over one or more responses."""

    def __init__(self):
        self.files: dict[tuple[str, Optional[tuple[int, int]]], ParsedFile] = {}
        self.leftovers: list[str] = []
        self.warnings: list[str] = []

    def warn(self, msg: str):
        self.warnings.append(msg)
        log.warning("%s", msg)

    def close_block(self, block: _Block, untagged: list[str]):
        body = _drop_final_break("".join(block.lines))
        body = markers.unescape_content(strip_code_fence(body)) if body else body
        if not is_safe_relative_path(block.path):
            self.warn(f"Unsafe file path {block.path!r} in response; keeping its content as untagged text.")
            untagged.append(_as_text_block(body))
            return
        path = normalize_relative_path(block.path)
        key = (path, block.part)
        if key in self.files:
            what = f"Part {block.part[0]}/{block.part[1]} of {path}" if block.part else f"File {path}"
            self.warn(f"{what} appears more than once in the response; keeping the later version.")
        self.files[key] = ParsedFile(relative_path=path, content=body, part=block.part)

    def feed(self, text: str, *, truncated: bool = False):
        untagged: list[str] = []
        current: _Block | None = None

        for line in text.splitlines(keepends=True):
            if current is None:
                current = _match_block_open(line)
                if current is None:
                    if markers.is_close(line):
                        self.warn("Closing marker without an opening marker; treating it as untagged text.")
                    untagged.append(line)
                continue

            if markers.is_close(line):
                self.close_block(current, untagged)
                current = None
                continue
            opened = _match_block_open(line)
            if opened is not None:
                # a new block starts before the previous one was closed
                self.warn(f"The {_describe(current)} was not closed before the next block began.")
                self.close_block(current, untagged)
                current = opened
            else:
                current.lines.append(line)

        if current is not None:
            if truncated:
                self.warn(
                    f"The response was cut off inside the {_describe(current)}; "
                    "keeping that block as untagged text."
                )
                untagged.append(current.header + "".join(current.lines))
            else:
                self.warn(f"The {_describe(current)} was not closed; using everything up to the end of the response.")
                current.lines.append("\n")
                self.close_block(current, untagged)

        self.leftovers.append("".join(untagged))

    def result(self, *, had_text: bool) -> ParseResult:
        result = ParseResult(files=list(self.files.values()), warnings=self.warnings)
        leftover = "\n".join(self.leftovers)
        taken = {f.relative_path for f in result.files if f.part is None}
        name = UNTAGGED_NAME if UNTAGGED_NAME not in taken else UNTAGGED_FALLBACK_NAME
        if not self.files:
            if had_text:
                result.files.append(ParsedFile(relative_path=name, content=leftover, untagged=True))
        elif leftover.strip():
            # blank lines between blocks are not worth keeping
            result.files.append(
                ParsedFile(relative_path=name, content=leftover.strip("\n") + "\n", untagged=True)
            )
        return result


def parse_response(text: str, *, truncated: bool = False) -> ParseResult:
    """
    ``truncated`` means the model stopped at its token limit, so a block
    still open at the end is incomplete and is not returned as a file.
    """
    collector = _Collector()
    collector.feed(text, truncated=truncated)
    return collector.result(had_text=bool(text))


def parse_responses(texts: Iterable[str], *, truncated: Sequence[bool] | None = None) -> ParseResult:
    """Parse chunk responses in order; blocks never span two responses."""
    texts = list(texts)
    flags = list(truncated) if truncated is not None else [False] * len(texts)
    collector = _Collector()
    for text, cut in zip(texts, flags):
        collector.feed(text, truncated=cut)
    return collector.result(had_text=any(texts))


def _fit_piece(new: str | None, part: ChunkPart) -> str:
    if new is None:
        return part.original
    if new and not new.endswith("\n"):
        if part.original.endswith("\r\n"):
            new += "\r\n"
        elif part.original.endswith("\n"):
            new += "\n"
    return new


def merge_split_files(result: ParseResult, split: dict[str, list[ChunkPart]]) -> ParseResult:
    """
    Rebuild files that were sent to the model in several pieces.

    Returned part blocks replace their piece; pieces the model left out keep
    their original text. A whole-file block for a split file could only hold
    a fragment, so it is kept as untagged text, as is any part block that
    matches no split file.
    """
    if not split and not any(f.part for f in result.files):
        return result

    merged = ParseResult(warnings=list(result.warnings))

    def warn(msg: str):
        merged.warnings.append(msg)
        log.warning("%s", msg)

    slots: list[ParsedFile | str] = []
    returned: dict[str, dict[int, str]] = {}
    untagged_file: ParsedFile | None = None
    extra_untagged: list[str] = []

    for f in result.files:
        if f.untagged:
            untagged_file = f
            continue
        pieces = split.get(f.relative_path)
        if f.part is None:
            if pieces:
                warn(
                    f"File {f.relative_path} was sent in {len(pieces)} parts but came back as a whole file; "
                    "keeping that block as untagged text."
                )
                extra_untagged.append(_as_text_block(f.content))
            else:
                slots.append(f)
            continue

        number, count = f.part
        if not pieces or count != len(pieces) or not 1 <= number <= count:
            warn(f"Part {number}/{count} of {f.relative_path} does not match the input; keeping it as untagged text.")
            extra_untagged.append(_as_text_block(f.content))
            continue
        if f.relative_path not in returned:
            returned[f.relative_path] = {}
            slots.append(f.relative_path)
        returned[f.relative_path][number] = f.content

    for slot in slots:
        if isinstance(slot, ParsedFile):
            merged.files.append(slot)
            continue
        new_pieces = returned[slot]
        content = "".join(_fit_piece(new_pieces.get(p.number), p) for p in split[slot])
        merged.files.append(ParsedFile(relative_path=slot, content=content))

    untagged_text = (untagged_file.content if untagged_file else "") + "".join(extra_untagged)
    if untagged_text:
        taken = {f.relative_path for f in merged.files}
        if untagged_file is not None:
            name = untagged_file.relative_path
        else:
            name = UNTAGGED_NAME if UNTAGGED_NAME not in taken else UNTAGGED_FALLBACK_NAME
        merged.files.append(ParsedFile(relative_path=name, content=untagged_text, untagged=True))
    return merged
