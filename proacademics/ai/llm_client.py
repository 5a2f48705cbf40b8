"""
OpenAI chat-completions over plain HTTP
"""

import json
import logging
from typing import AsyncIterator, Dict, List, Optional

import httpx

from proacademics import config
from proacademics.errors import LLMUnavailableError

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    return bool(config.OPENAI_API_KEY)


def _headers() -> Dict[str, str]:
    if not is_configured():
        raise LLMUnavailableError("OpenAI API key not configured")
    return {
        "Authorization": f"Bearer {config.OPENAI_API_KEY}",
        "Content-Type": "application/json",
    }


def _payload(messages: List[dict], system: Optional[str], temperature: float, max_tokens: int, stream: bool) -> dict:
    full = [{"role": "system", "content": system.strip()}] if system else []
    full.extend(messages)
    return {
        "model": config.OPENAI_MODEL,
        "messages": full,
        "temperature": temperature,
        "max_tokens": max_tokens,
        "stream": stream,
    }


async def chat_completion(
    messages: List[dict],
    system: Optional[str] = None,
    temperature: float = 0.7,
    max_tokens: int = 1000,
) -> str:
    """Single completion, returns the assistant text"""
    headers = _headers()
    async with httpx.AsyncClient(timeout=config.LLM_TIMEOUT_SECONDS) as client:
        response = await client.post(
            f"{config.OPENAI_BASE_URL}/chat/completions",
            headers=headers,
            json=_payload(messages, system, temperature, max_tokens, stream=False),
        )

    if response.status_code == 401:
        raise LLMUnavailableError("OpenAI rejected the API key")
    response.raise_for_status()

    data = response.json()
    return data["choices"][0]["message"].get("content") or ""


async def stream_chat_completion(
    messages: List[dict],
    system: Optional[str] = None,
    temperature: float = 0.7,
    max_tokens: int = 1000,
) -> AsyncIterator[str]:
    """Yields content deltas from a server-sent-events completion"""
    headers = _headers()
    async with httpx.AsyncClient(timeout=config.LLM_TIMEOUT_SECONDS) as client:
        async with client.stream(
            "POST",
            f"{config.OPENAI_BASE_URL}/chat/completions",
            headers=headers,
            json=_payload(messages, system, temperature, max_tokens, stream=True),
        ) as response:
            if response.status_code == 401:
                raise LLMUnavailableError("OpenAI rejected the API key")
            response.raise_for_status()

            async for line in response.aiter_lines():
                if not line.startswith("data: "):
                    continue
                data = line[len("data: "):].strip()
                if data == "[DONE]":
                    break
                try:
                    chunk = json.loads(data)
                except json.JSONDecodeError:
                    logger.warning("Skipping malformed stream chunk: %s", data[:100])
                    continue
                delta = chunk["choices"][0].get("delta", {}).get("content")
                if delta:
                    yield delta
