"""
Tests for the large-file review coordinator: single-file review, batch
planning under a token ceiling, and per-file failure isolation.
"""

from __future__ import annotations

import asyncio

import pytest

from codekarmic.modules.compression import (
    COMPRESSED_SECTION_MARKER,
    FileBatch,
    LargeFileProcessor,
    NotLargeFileError,
    content_hash,
)
from codekarmic.modules.prompts import CHINESE
from codekarmic.modules.schemas import BatchingConfig, LargeFileOptions, LargeFileRequest


def _path_from_prompt(prompt: str) -> str:
    for line in prompt.split("\n"):
        if line.startswith("File: "):
            return line[len("File: "):].split(" ")[0]
    return ""


class EchoModel:
    """Answers with a suggestion naming the file it was asked about."""

    async def generate_content(self, prompt, *, max_tokens=None, temperature=None) -> str:
        await asyncio.sleep(0)
        return f"- Consider refactoring {_path_from_prompt(prompt)}"


# ---------------------------------------------------------------------------
# Single file
# ---------------------------------------------------------------------------


class TestIsLargeFile:
    def test_threshold_is_exclusive(self, fake_model, request_factory):
        processor = LargeFileProcessor(model=fake_model)
        assert not processor.is_large_file(request_factory("a.ts", 20000))
        assert processor.is_large_file(request_factory("a.ts", 20001))

    def test_disabled_means_never_large(self, fake_model, request_factory):
        processor = LargeFileProcessor(model=fake_model, options=LargeFileOptions(enabled=False))
        assert not processor.is_large_file(request_factory("a.ts", 50000))


class TestProcessLargeFile:
    @pytest.mark.anyio
    async def test_small_file_is_a_caller_error(self, fake_model, request_factory):
        processor = LargeFileProcessor(model=fake_model)
        with pytest.raises(NotLargeFileError):
            await processor.process_large_file(request_factory("small.ts", 100))
        assert fake_model.prompts == []

    @pytest.mark.anyio
    async def test_review_uses_compressed_prompt(self, model_factory, request_factory):
        model = model_factory(response="- Consider extracting helpers\nGeneral notes follow")
        processor = LargeFileProcessor(model=model, max_tokens=1234, temperature=0.3)

        result = await processor.process_large_file(request_factory("src/app.ts", 30000))

        assert result.suggestions == ["- Consider extracting helpers"]
        assert result.score == 1

        prompt = model.prompts[0]
        assert "File: src/app.ts ts" in prompt
        assert "Code Summary:" in prompt
        assert COMPRESSED_SECTION_MARKER in prompt
        assert len(prompt) < 30000
        assert model.calls[0] == {"max_tokens": 1234, "temperature": 0.3}

    @pytest.mark.anyio
    async def test_unstructured_response_falls_back_to_leading_lines(self, model_factory, request_factory):
        model = model_factory(response="Looks fine overall.\nNo major issues.\nGood naming.\nExtra line")
        processor = LargeFileProcessor(model=model)

        result = await processor.process_large_file(request_factory("a.py", 25000))

        assert result.suggestions == ["Looks fine overall.", "No major issues.", "Good naming."]
        assert result.score == 1

    @pytest.mark.anyio
    async def test_empty_response_scores_zero(self, model_factory, request_factory):
        processor = LargeFileProcessor(model=model_factory(response="  \n\n"))
        result = await processor.process_large_file(request_factory("a.py", 25000))
        assert result.suggestions == []
        assert result.score == 0

    @pytest.mark.anyio
    async def test_model_failure_becomes_error_result(self, model_factory, request_factory):
        model = model_factory(fail_on=["BROKEN"])
        processor = LargeFileProcessor(model=model)

        result = await processor.process_large_file(request_factory("bad.ts", 25000, marker="BROKEN"))

        assert result.score == 0
        assert len(result.suggestions) == 1
        assert result.suggestions[0].startswith("Error processing large file bad.ts:")
        assert "model unavailable" in result.suggestions[0]

    @pytest.mark.anyio
    async def test_request_language_hint_reaches_compressor(self, fake_model, request_factory):
        processor = LargeFileProcessor(model=fake_model)
        request = request_factory("main.go", 25000)
        request = request.model_copy(update={"language": "go"})

        await processor.process_large_file(request)

        assert "Detected Language: go" in fake_model.prompts[0]

    @pytest.mark.anyio
    async def test_chinese_prompts(self, fake_model, request_factory):
        processor = LargeFileProcessor(model=fake_model, prompts=CHINESE)
        await processor.process_large_file(request_factory("a.ts", 25000))
        assert "代码摘要" in fake_model.prompts[0]


def test_calculate_fingerprint_is_content_hash(fake_model):
    processor = LargeFileProcessor(model=fake_model)
    assert processor.calculate_fingerprint("abc") == content_hash("abc")


def test_update_options_merges_nested_compression(fake_model):
    processor = LargeFileProcessor(model=fake_model)

    processor.update_options({"compression": {"sample_rate": 0.5}})
    assert processor.options.compression.sample_rate == 0.5
    assert processor.options.compression.header_lines == 30
    assert processor.options.size_threshold == 20000

    processor.update_options(size_threshold=100)
    assert processor.options.size_threshold == 100
    assert processor.options.compression.sample_rate == 0.5


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------


def _processor_with_ceiling(model, request_factory, files_per_batch: float, **batching):
    sizer = LargeFileProcessor(model=model)
    tokens = sizer.estimate_request_tokens(request_factory("sizing.ts", 25000))
    ceiling = max(1, int(tokens * files_per_batch))
    return LargeFileProcessor(model=model, batching=BatchingConfig(max_batch_tokens=ceiling, **batching))


class TestPlanBatches:
    def test_token_estimate_uses_compressed_size(self, fake_model, request_factory):
        processor = LargeFileProcessor(model=fake_model)
        request = request_factory("a.ts", 25000)
        compressed, _ = processor.compress(request)
        assert processor.estimate_request_tokens(request) == len(compressed) * 0.25

    def test_greedy_grouping_respects_ceiling(self, fake_model, request_factory):
        processor = _processor_with_ceiling(fake_model, request_factory, 2.5)
        requests = [request_factory(f"f{i}.ts", 25000) for i in range(5)]

        batches = processor.plan_batches(requests)

        assert [b.file_paths for b in batches] == [
            ["f0.ts", "f1.ts"],
            ["f2.ts", "f3.ts"],
            ["f4.ts"],
        ]
        for batch in batches:
            assert batch.estimated_tokens <= processor.batching.max_batch_tokens

    def test_oversized_file_gets_its_own_batch(self, fake_model, request_factory):
        processor = LargeFileProcessor(model=fake_model, batching=BatchingConfig(max_batch_tokens=1))
        requests = [request_factory(f"f{i}.ts", 25000) for i in range(3)]

        batches = processor.plan_batches(requests)

        assert [len(b) for b in batches] == [1, 1, 1]
        assert all(b.requests for b in batches)

    def test_small_files_are_skipped(self, fake_model, request_factory):
        processor = LargeFileProcessor(model=fake_model)
        requests = [request_factory("small.ts", 500), request_factory("big.ts", 25000)]

        batches = processor.plan_batches(requests)

        assert [b.file_paths for b in batches] == [["big.ts"]]

    def test_no_large_files_means_no_batches(self, fake_model, request_factory):
        processor = LargeFileProcessor(model=fake_model)
        assert processor.plan_batches([request_factory("small.ts", 500)]) == []
        assert processor.plan_batches([]) == []


class TestBatchProcessing:
    @pytest.mark.anyio
    async def test_failing_model_call_is_isolated(self, model_factory, request_factory):
        model = model_factory(response="- Consider renaming", fail_on=["FILE3"])
        processor = _processor_with_ceiling(model, request_factory, 2.5)
        requests = [request_factory(f"f{i}.ts", 25000, marker=f"FILE{i}") for i in range(1, 6)]

        results = await processor.batch_process_large_files(requests)

        assert list(results) == ["f1.ts", "f2.ts", "f3.ts", "f4.ts", "f5.ts"]
        assert results["f3.ts"].score == 0
        assert results["f3.ts"].suggestions[0].startswith("Error processing large file f3.ts")
        for path in ("f1.ts", "f2.ts", "f4.ts", "f5.ts"):
            assert results[path].score == 1
            assert results[path].suggestions == ["- Consider renaming"]

    @pytest.mark.anyio
    async def test_unexpected_processing_error_is_isolated(self, fake_model, request_factory):
        class FlakyProcessor(LargeFileProcessor):
            def compress(self, request: LargeFileRequest):
                if request.file_path == "f3.ts":
                    raise RuntimeError("compression exploded")
                return super().compress(request)

        processor = FlakyProcessor(model=fake_model)
        requests = [request_factory(f"f{i}.ts", 25000) for i in range(1, 6)]
        batches = [FileBatch(requests=requests[:3]), FileBatch(requests=requests[3:])]

        results = await processor.process_batches(batches)

        assert len(results) == 5
        assert results["f3.ts"].score == 0
        assert results["f3.ts"].suggestions == ["Error processing file f3.ts: compression exploded"]
        assert all(results[f"f{i}.ts"].score == 1 for i in (1, 2, 4, 5))

    @pytest.mark.anyio
    async def test_small_files_are_not_in_results(self, fake_model, request_factory):
        processor = LargeFileProcessor(model=fake_model)
        results = await processor.batch_process_large_files(
            [request_factory("small.ts", 500), request_factory("big.ts", 25000)]
        )
        assert list(results) == ["big.ts"]

    @pytest.mark.anyio
    async def test_concurrent_results_keyed_by_path(self, request_factory):
        processor = _processor_with_ceiling(EchoModel(), request_factory, 10, max_concurrency=4)
        requests = [request_factory(f"src/m{i}.ts", 25000) for i in range(6)]

        results = await processor.batch_process_large_files(requests)

        assert set(results) == {f"src/m{i}.ts" for i in range(6)}
        for path, result in results.items():
            assert result.suggestions == [f"- Consider refactoring {path}"]

    @pytest.mark.anyio
    async def test_cancellation_keeps_completed_results(self, request_factory):
        started = asyncio.Event()

        class BlockingModel:
            async def generate_content(self, prompt, *, max_tokens=None, temperature=None) -> str:
                if "BLOCK" in prompt:
                    started.set()
                    await asyncio.Event().wait()
                return "- Consider caching"

        processor = LargeFileProcessor(model=BlockingModel())
        requests = [
            request_factory("a.ts", 25000),
            request_factory("b.ts", 25000, marker="BLOCK"),
            request_factory("c.ts", 25000),
        ]
        batches = processor.plan_batches(requests)

        results = {}
        task = asyncio.create_task(processor.process_batches(batches, results))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert list(results) == ["a.ts"]
        assert results["a.ts"].score == 1
