import json
import time
import httpx
from press.types import Completion
from press.clients.base import LLMClient
from press.errors import ApiFatalError, ApiTransientError

RETRYABLE_STATUS = frozenset({408, 409, 429})

def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS or status_code >= 500

def _clip(text: str, n: int = 300) -> str:
    text = text or ""
    return text[:n] + ("..." if len(text) > n else "")

def _extract_chat_text(resp_json: dict) -> str:
    choices = resp_json.get("choices") or []
    if not choices:
        return ""
    message = (choices[0] or {}).get("message") or {}
    content = message.get("content")
    return content if isinstance(content, str) else ""

def _was_truncated(resp_json: dict) -> bool:
    choices = resp_json.get("choices") or []
    return bool(choices) and (choices[0] or {}).get("finish_reason") == "length"

class ChatCompletionsClient(LLMClient):
    """OpenAI-compatible /chat/completions client (DeepSeek by default)."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str,
        timeout_s: float = 300.0,
        max_tokens: int = 8192,
        temperature: float = 0.0,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def complete(self, user_prompt: str, *, system_prompt: str | None = None) -> Completion:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        payload: dict = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        t0 = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                r = await client.post(f"{self.base_url}/chat/completions", headers=headers, json=payload)
        except httpx.TransportError as e:
            raise ApiTransientError(f"Request failed: {e.__class__.__name__}: {e}") from e

        if r.status_code >= 400:
            msg = f"API returned HTTP {r.status_code}: {_clip(r.text)}"
            if is_retryable_status(r.status_code):
                raise ApiTransientError(msg, status_code=r.status_code)
            raise ApiFatalError(msg, status_code=r.status_code)

        try:
            data = r.json()
        except json.JSONDecodeError as e:
            raise ApiFatalError(f"API returned a non-JSON body: {_clip(r.text)}", status_code=r.status_code) from e

        if not isinstance(data, dict):
            raise ApiFatalError("API returned an unexpected JSON body.", status_code=r.status_code)
        if data.get("error"):
            raise ApiFatalError(f"API returned an error: {data['error']}", status_code=r.status_code)

        latency_ms = int((time.perf_counter() - t0) * 1000)
        return Completion(
            text=_extract_chat_text(data),
            latency_ms=latency_ms,
            raw=data,
            usage=data.get("usage"),
            truncated=_was_truncated(data),
        )
