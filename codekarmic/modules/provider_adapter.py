from __future__ import annotations

import asyncio
import os
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from loguru import logger

from .schemas import TOKENS_PER_CHAR, LLMConfig, RetryPolicy


def estimate_tokens(text: str, tokens_per_char: float = TOKENS_PER_CHAR) -> int:
    # Heuristic: ~4 chars/token.
    return max(0, int(len(text or "") * tokens_per_char))


class ModelInvocationError(RuntimeError):
    pass


@runtime_checkable
class ContentGenerator(Protocol):
    """Model abstraction: prompt in, response text out. May be slow, may fail."""

    async def generate_content(
        self,
        prompt: str,
        *,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str: ...


ProviderCall = Callable[[List[Dict[str, str]]], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


def build_messages_with_stable_prefix(*, stable_prefix: str, variable_suffix: str) -> List[Dict[str, str]]:
    stable = (stable_prefix or "").strip()
    variable = variable_suffix or ""
    # Cache-friendly layout: stable instructions in system, variable in user.
    messages: List[Dict[str, str]] = []
    if stable:
        messages.append({"role": "system", "content": stable})
    messages.append({"role": "user", "content": variable})
    return messages


def extract_completion_text(resp: Any) -> str:
    """Pull the first choice's message content out of a LiteLLM-style response."""
    if resp is None:
        return ""
    if isinstance(resp, str):
        return resp
    if isinstance(resp, dict):
        choices = resp.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return message.get("content") or ""
    try:
        return resp.choices[0].message.content or ""
    except (AttributeError, IndexError, TypeError):
        return ""


def is_retryable_error(error: BaseException, patterns: Sequence[str]) -> bool:
    """Empty ``patterns`` means every error is retryable."""
    if not patterns:
        return True
    text = f"{type(error).__name__}: {error}"
    for pattern in patterns:
        if pattern in text:
            return True
        try:
            if re.search(pattern, text):
                return True
        except re.error:
            continue
    return False


async def acompletion_with_retry(
    *,
    model: str,
    messages: List[Dict[str, str]],
    timeout_seconds: int,
    retry: Optional[RetryPolicy] = None,
    provider_call: Optional[ProviderCall] = None,
    max_tokens: Optional[int] = None,
    temperature: float = 0,
    api_base: Optional[str] = None,
    api_key: Optional[str] = None,
    sleep: Sleep = asyncio.sleep,
) -> Tuple[Any, int]:
    """One completion with latency measurement and exponential backoff.

    If provider_call is provided, it is used (for tests); otherwise expects LiteLLM-like call.
    Errors that do not match ``retry.retryable_errors`` propagate immediately. When
    retries run out, ModelInvocationError is raised from the last error.
    """

    retry = retry or RetryPolicy()
    attempts = retry.max_retries + 1
    last_error: Optional[Exception] = None

    for attempt in range(1, attempts + 1):
        start = time.time()
        try:
            if provider_call is None:
                import litellm  # local import for testability

                kwargs: Dict[str, Any] = {"model": model, "messages": messages, "temperature": temperature}
                if max_tokens:
                    kwargs["max_tokens"] = max_tokens
                if api_base:
                    kwargs["api_base"] = api_base
                if api_key:
                    kwargs["api_key"] = api_key

                resp = await asyncio.wait_for(litellm.acompletion(**kwargs), timeout=timeout_seconds)
            else:
                resp = await asyncio.wait_for(provider_call(messages), timeout=timeout_seconds)

            latency_ms = int((time.time() - start) * 1000)
            return resp, latency_ms

        except Exception as e:
            last_error = e
            if not is_retryable_error(e, retry.retryable_errors):
                raise

            if attempt < attempts:
                delay = retry.delay_for(attempt)
                logger.warning(f"LLM error ({type(e).__name__}) on {model} (attempt {attempt}/{attempts}): {str(e)[:100]}")
                logger.info(f"Retrying in {delay:.1f}s")
                await sleep(delay)

    logger.error(f"All {attempts} attempts to {model} failed. Last error: {last_error}")
    raise ModelInvocationError(f"{model} failed after {attempts} attempts: {last_error}") from last_error


class LiteLLMContentGenerator:
    """ContentGenerator backed by LiteLLM.

    The model string selects the provider (e.g. "deepseek/deepseek-chat",
    "openai/gpt-4o-mini"); the API key is read from ``config.api_key_env`` when set.
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        retry: Optional[RetryPolicy] = None,
        system_prompt: str = "",
        provider_call: Optional[ProviderCall] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config or LLMConfig()
        self.retry = retry or RetryPolicy()
        self.system_prompt = system_prompt
        self._provider_call = provider_call
        self._sleep = sleep

    def _api_key(self) -> Optional[str]:
        if not self.config.api_key_env:
            return None
        return os.getenv(self.config.api_key_env) or None

    async def generate_content(
        self,
        prompt: str,
        *,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        messages = build_messages_with_stable_prefix(stable_prefix=self.system_prompt, variable_suffix=prompt)

        resp, latency_ms = await acompletion_with_retry(
            model=self.config.model,
            messages=messages,
            timeout_seconds=self.config.timeout_seconds,
            retry=self.retry,
            provider_call=self._provider_call,
            max_tokens=max_tokens or self.config.max_tokens,
            temperature=self.config.temperature if temperature is None else temperature,
            api_base=self.config.api_base,
            api_key=self._api_key(),
            sleep=self._sleep,
        )

        text = extract_completion_text(resp)
        if not text.strip():
            raise ModelInvocationError(f"Empty completion from {self.config.model}")

        logger.debug(f"LLM call to {self.config.model} took {latency_ms}ms ({estimate_tokens(prompt)} prompt tokens est.)")
        return text
