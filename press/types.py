from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

@dataclass(frozen=True)
class SourceFile:
    path: str          # marker path, POSIX and relative
    content: str
    disk_path: Path

@dataclass(frozen=True)
class ChunkPart:
    """One piece of a source file that was too long for a single chunk."""
    path: str
    number: int        # 1-based
    count: int
    first_line: int    # 1-based, inclusive
    last_line: int
    original: str

@dataclass(frozen=True)
class PromptChunk:
    index: int         # 1-based
    content: str
    total_chunks: int
    parts: tuple[ChunkPart, ...] = ()

@dataclass
class RetryState:
    attempt_count: int = 0
    max_retries: int = 0

    @property
    def exhausted(self) -> bool:
        return self.attempt_count >= self.max_retries

@dataclass
class Completion:
    text: str
    latency_ms: int
    raw: Any = None
    usage: Optional[dict] = None
    truncated: bool = False    # stopped by the token limit

@dataclass
class AiResponse:
    raw_text: str
    chunk_index: int
    retry_state: RetryState
    latency_ms: int = 0
    usage: Optional[dict] = None
    truncated: bool = False

@dataclass
class ChunkResult:
    chunk: PromptChunk
    response: Optional[AiResponse] = None
    error: Optional[str] = None

@dataclass(frozen=True)
class ParsedFile:
    relative_path: str
    content: str
    untagged: bool = False
    part: Optional[tuple[int, int]] = None    # (number, count) for a PART block

@dataclass
class ParseResult:
    files: list[ParsedFile] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

@dataclass
class WriteReport:
    written: list[Path] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    new_files: list[Path] = field(default_factory=list)
    backups: list[tuple[Path, Path]] = field(default_factory=list)
