from __future__ import annotations

import pytest

from codekarmic.modules.provider_adapter import (
    ContentGenerator,
    LiteLLMContentGenerator,
    ModelInvocationError,
    acompletion_with_retry,
    build_messages_with_stable_prefix,
    estimate_tokens,
    extract_completion_text,
    is_retryable_error,
)
from codekarmic.modules.schemas import LLMConfig, RetryPolicy


def _completion(text: str) -> dict:
    return {"choices": [{"message": {"content": text}}]}


class FlakyProvider:
    """Fails ``failures`` times, then answers."""

    def __init__(self, failures: int, error: Exception = None, text: str = "- Consider it"):
        self.failures = failures
        self.error = error or ConnectionError("rate limited")
        self.text = text
        self.calls = []

    async def __call__(self, messages):
        self.calls.append(messages)
        if len(self.calls) <= self.failures:
            raise self.error
        return _completion(self.text)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def test_estimate_tokens():
    assert estimate_tokens("x" * 400) == 100
    assert estimate_tokens("") == 0
    assert estimate_tokens(None) == 0


def test_stable_prefix_messages():
    msgs = build_messages_with_stable_prefix(stable_prefix="  SYSTEM  ", variable_suffix="USER")
    assert msgs == [{"role": "system", "content": "SYSTEM"}, {"role": "user", "content": "USER"}]
    assert build_messages_with_stable_prefix(stable_prefix="", variable_suffix="U") == [
        {"role": "user", "content": "U"}
    ]


class TestExtractCompletionText:
    def test_dict_response(self):
        assert extract_completion_text(_completion("hi")) == "hi"

    def test_object_response(self):
        class Message:
            content = "obj"

        class Choice:
            message = Message()

        class Resp:
            choices = [Choice()]

        assert extract_completion_text(Resp()) == "obj"

    def test_degenerate_responses(self):
        assert extract_completion_text(None) == ""
        assert extract_completion_text("raw") == "raw"
        assert extract_completion_text({"choices": []}) == ""
        assert extract_completion_text(object()) == ""


def test_is_retryable_error_patterns():
    err = ConnectionError("429 rate limited")
    assert is_retryable_error(err, [])
    assert is_retryable_error(err, ["rate limited"])
    assert is_retryable_error(err, [r"\b429\b"])
    assert is_retryable_error(err, ["ConnectionError"])
    assert not is_retryable_error(err, ["timeout"])
    # invalid regex falls back to substring only
    assert not is_retryable_error(err, ["[unclosed"])


def test_delay_schedule():
    policy = RetryPolicy()
    assert policy.delay_for(1) == 0.5
    assert policy.delay_for(2) == pytest.approx(0.75)
    assert RetryPolicy(initial_delay_seconds=10, backoff_factor=4, max_delay_seconds=30).delay_for(3) == 30


class TestAcompletionWithRetry:
    @pytest.mark.anyio
    async def test_retries_then_succeeds(self):
        provider = FlakyProvider(failures=2)
        sleep = RecordingSleep()

        resp, latency_ms = await acompletion_with_retry(
            model="test/model",
            messages=[{"role": "user", "content": "hi"}],
            timeout_seconds=5,
            provider_call=provider,
            sleep=sleep,
        )

        assert extract_completion_text(resp) == "- Consider it"
        assert latency_ms >= 0
        assert len(provider.calls) == 3
        assert sleep.delays == [pytest.approx(0.5), pytest.approx(0.75)]

    @pytest.mark.anyio
    async def test_exhausted_retries_raise_model_invocation_error(self):
        provider = FlakyProvider(failures=10)
        sleep = RecordingSleep()

        with pytest.raises(ModelInvocationError) as exc_info:
            await acompletion_with_retry(
                model="test/model",
                messages=[],
                timeout_seconds=5,
                retry=RetryPolicy(max_retries=1),
                provider_call=provider,
                sleep=sleep,
            )

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert len(provider.calls) == 2
        assert len(sleep.delays) == 1

    @pytest.mark.anyio
    async def test_non_retryable_error_propagates_immediately(self):
        provider = FlakyProvider(failures=1, error=ValueError("bad request"))
        sleep = RecordingSleep()

        with pytest.raises(ValueError):
            await acompletion_with_retry(
                model="test/model",
                messages=[],
                timeout_seconds=5,
                retry=RetryPolicy(retryable_errors=["rate limit"]),
                provider_call=provider,
                sleep=sleep,
            )

        assert len(provider.calls) == 1
        assert sleep.delays == []


class TestLiteLLMContentGenerator:
    def test_satisfies_protocol(self):
        assert isinstance(LiteLLMContentGenerator(), ContentGenerator)

    @pytest.mark.anyio
    async def test_generate_content_builds_messages(self):
        provider = FlakyProvider(failures=0, text="- Use a set")
        generator = LiteLLMContentGenerator(system_prompt="You review code.", provider_call=provider)

        text = await generator.generate_content("PROMPT", max_tokens=100, temperature=0.2)

        assert text == "- Use a set"
        assert provider.calls[0] == [
            {"role": "system", "content": "You review code."},
            {"role": "user", "content": "PROMPT"},
        ]

    @pytest.mark.anyio
    async def test_empty_completion_is_an_error(self):
        provider = FlakyProvider(failures=0, text="   ")
        generator = LiteLLMContentGenerator(provider_call=provider)

        with pytest.raises(ModelInvocationError):
            await generator.generate_content("PROMPT")

    @pytest.mark.anyio
    async def test_litellm_is_called_with_config(self, monkeypatch):
        import litellm

        captured = {}

        async def fake_acompletion(**kwargs):
            captured.update(kwargs)
            return _completion("- Rename variable")

        monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
        monkeypatch.setenv("TEST_KARMIC_KEY", "sk-test")

        config = LLMConfig(
            model="openai/gpt-4o-mini",
            api_base="http://localhost:9999",
            api_key_env="TEST_KARMIC_KEY",
            max_tokens=512,
            temperature=0.0,
        )
        text = await LiteLLMContentGenerator(config=config).generate_content("PROMPT")

        assert text == "- Rename variable"
        assert captured["model"] == "openai/gpt-4o-mini"
        assert captured["api_base"] == "http://localhost:9999"
        assert captured["api_key"] == "sk-test"
        assert captured["max_tokens"] == 512
        assert captured["temperature"] == 0.0
        assert captured["messages"][-1] == {"role": "user", "content": "PROMPT"}
