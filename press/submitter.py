from __future__ import annotations

import asyncio
from typing import Callable, Optional

from press.clients.base import LLMClient
from press.errors import ApiError, ApiFatalError, ApiTransientError
from press.log import get_logger
from press.prompts import build_system_prompt, build_user_prompt
from press.types import AiResponse, ChunkResult, PromptChunk, RetryState

log = get_logger("submitter")

DEFAULT_RETRY_DELAY_S = 1.0


def _chunk_label(chunk: PromptChunk) -> str:
    return f"chunk {chunk.index}/{chunk.total_chunks}"


async def submit_with_retries(
    client: LLMClient,
    chunk: PromptChunk,
    *,
    user_prompt: str,
    system_prompt: str,
    max_retries: int,
    console_output: str | None = None,
    retry_delay_s: float = DEFAULT_RETRY_DELAY_S,
) -> AiResponse:
    """
    Send one chunk, re-sending the same payload after transient failures.

    Gives up after ``max_retries`` retries (so at most ``max_retries + 1``
    attempts). Fatal errors are raised straight away. The returned
    response's ``retry_state.attempt_count`` is the number of retries used.
    """
    sys_p = build_system_prompt(system_prompt)
    user_p = build_user_prompt(chunk, user_prompt, console_output=console_output)
    state = RetryState(attempt_count=0, max_retries=max_retries)
    label = _chunk_label(chunk)

    while True:
        try:
            completion = await client.complete(user_p, system_prompt=sys_p)
        except ApiFatalError as e:
            e.chunk_index = chunk.index
            raise
        except ApiTransientError as e:
            if state.exhausted:
                raise ApiTransientError(
                    f"{label}: giving up after {state.attempt_count} retries ({e})",
                    status_code=e.status_code,
                    chunk_index=chunk.index,
                ) from e
            state.attempt_count += 1
            log.warning(
                "%s: API call failed, retry %d of %d (%s)",
                label, state.attempt_count, state.max_retries, e,
            )
            if retry_delay_s > 0:
                await asyncio.sleep(retry_delay_s)
            continue

        log.debug("%s: response received in %d ms", label, completion.latency_ms)
        if completion.truncated:
            log.warning("%s: response was cut off by the token limit", label)
        return AiResponse(
            raw_text=completion.text,
            chunk_index=chunk.index,
            retry_state=state,
            latency_ms=completion.latency_ms,
            usage=completion.usage,
            truncated=completion.truncated,
        )


async def submit_chunks(
    client: LLMClient,
    chunks: list[PromptChunk],
    *,
    user_prompt: str,
    system_prompt: str,
    max_retries: int,
    console_output: str | None = None,
    retry_delay_s: float = DEFAULT_RETRY_DELAY_S,
    on_chunk: Optional[Callable[[ChunkResult], None]] = None,
) -> list[ChunkResult]:
    """
    Submit chunks one after another, in order.

    A chunk that fails (retries exhausted or fatal status) is recorded with
    its error and the remaining chunks are still submitted.
    """
    results: list[ChunkResult] = []
    for chunk in chunks:
        try:
            resp = await submit_with_retries(
                client,
                chunk,
                user_prompt=user_prompt,
                system_prompt=system_prompt,
                max_retries=max_retries,
                console_output=console_output,
                retry_delay_s=retry_delay_s,
            )
            result = ChunkResult(chunk=chunk, response=resp)
        except ApiError as e:
            msg = str(e)
            if not msg.startswith("chunk "):
                msg = f"{_chunk_label(chunk)}: {msg}"
            log.error("%s", msg)
            result = ChunkResult(chunk=chunk, error=msg)

        results.append(result)
        if on_chunk:
            on_chunk(result)
    return results
