# press/app.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from press.aggregator import chunk_sources, read_sources, split_files
from press.clients.base import LLMClient
from press.errors import FileReadError, PathNotFound
from press.log import get_logger
from press.parser import merge_split_files, parse_responses
from press.submitter import DEFAULT_RETRY_DELAY_S, submit_chunks
from press.types import ChunkResult, ParseResult, PromptChunk, SourceFile, WriteReport
from press.walker import collect_source_paths
from press.writer import save_raw_response, write_outputs

log = get_logger("app")

EXIT_OK = 0
EXIT_NO_INPUT = 2
EXIT_CHUNK_FAILED = 3
EXIT_WRITE_FAILED = 4


@dataclass(frozen=True)
class RunOptions:
    paths: list[str]
    prompt: str
    output_directory: str = "./"
    system_prompt: str = "You are a helpful assistant"
    auto: bool = False
    retries: int = 3
    chunk_size: int = 50
    ignore: list[str] = field(default_factory=list)
    console_output: str | None = None
    retry_delay_s: float = DEFAULT_RETRY_DELAY_S


@dataclass(frozen=True)
class RunCallbacks:
    """
    Progress hooks for the CLI.
    Every hook is optional; the run behaves the same without them.
    """
    on_phase_start: Optional[Callable[[str], None]] = None
    on_phase_end: Optional[Callable[[str], None]] = None

    on_sources: Optional[Callable[[list[SourceFile]], None]] = None
    on_chunks: Optional[Callable[[list[PromptChunk]], None]] = None
    on_chunk: Optional[Callable[[ChunkResult], None]] = None


@dataclass
class RunOutcome:
    sources: list[SourceFile] = field(default_factory=list)
    chunks: list[PromptChunk] = field(default_factory=list)
    chunk_results: list[ChunkResult] = field(default_factory=list)
    parsed: ParseResult | None = None
    report: WriteReport | None = None
    exit_code: int = EXIT_OK
    error: str | None = None

    @property
    def failed_chunks(self) -> list[ChunkResult]:
        return [r for r in self.chunk_results if r.error]


async def run_press(
    options: RunOptions,
    *,
    client: LLMClient,
    callbacks: RunCallbacks | None = None,
) -> RunOutcome:
    """
    Walk, aggregate, submit, parse and write, strictly in that order.
    Chunks that fail are reported and skipped; the rest are still written.
    """
    cb = callbacks or RunCallbacks()
    outcome = RunOutcome()

    def phase_start(name: str):
        if cb.on_phase_start:
            cb.on_phase_start(name)

    def phase_end(name: str):
        if cb.on_phase_end:
            cb.on_phase_end(name)

    phase_start("collect_files")
    try:
        walked = collect_source_paths(options.paths, options.ignore)
    except PathNotFound as e:
        log.error("%s", e)
        outcome.exit_code = EXIT_NO_INPUT
        outcome.error = str(e)
        return outcome

    outcome.sources = read_sources(walked)
    if not outcome.sources:
        err = FileReadError(", ".join(w.marker_path for w in walked), "none of the files could be read")
        log.error("%s", err)
        outcome.exit_code = EXIT_NO_INPUT
        outcome.error = str(err)
        return outcome
    if cb.on_sources:
        cb.on_sources(outcome.sources)
    phase_end("collect_files")

    outcome.chunks = chunk_sources(outcome.sources, options.chunk_size)
    if cb.on_chunks:
        cb.on_chunks(outcome.chunks)

    phase_start("query_api")
    outcome.chunk_results = await submit_chunks(
        client,
        outcome.chunks,
        user_prompt=options.prompt,
        system_prompt=options.system_prompt,
        max_retries=options.retries,
        console_output=options.console_output,
        retry_delay_s=options.retry_delay_s,
        on_chunk=cb.on_chunk,
    )
    phase_end("query_api")

    responses = [r.response for r in outcome.chunk_results if r.response is not None]
    texts = [r.raw_text for r in responses]
    if not texts:
        outcome.exit_code = EXIT_CHUNK_FAILED
        outcome.error = "Every chunk failed; nothing to write."
        log.error("%s", outcome.error)
        return outcome

    phase_start("save_results")
    outcome.parsed = merge_split_files(
        parse_responses(texts, truncated=[r.truncated for r in responses]),
        split_files(outcome.chunks),
    )
    out_dir = Path(options.output_directory)
    outcome.report = write_outputs(
        outcome.parsed.files,
        sources=outcome.sources,
        output_directory=out_dir,
        auto=options.auto,
    )
    try:
        save_raw_response(out_dir, "\n".join(texts))
    except OSError as e:
        log.warning("Could not save the raw response log: %s", e)
    phase_end("save_results")

    if outcome.failed_chunks:
        outcome.exit_code = EXIT_CHUNK_FAILED
        outcome.error = "; ".join(r.error for r in outcome.failed_chunks)
    elif outcome.report.failed:
        outcome.exit_code = EXIT_WRITE_FAILED
        outcome.error = "; ".join(f"{p}: {why}" for p, why in outcome.report.failed.items())
    return outcome
