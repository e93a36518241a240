"""
Large File Processor for code review.

Decides which files are "large", compresses them, builds the large-file review
prompt, calls the model and parses its answer into suggestions. For multi-file
workloads it groups large files into token-bounded batches and processes them
with per-file failure isolation: one file failing never aborts its batch or
the batches after it.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from ..prompts import ENGLISH, PromptTemplates, file_type_suffix
from ..provider_adapter import ContentGenerator
from ..response_parser import SuggestionParser
from ..schemas import BatchingConfig, LargeFileOptions, LargeFileRequest, LargeFileResult
from .content_compressor import CompressionStats, ContentCompressor
from .fingerprint import calculate_content_fingerprint


class NotLargeFileError(ValueError):
    """Raised when the large-file path is used for a file under the threshold."""


@dataclass
class FileBatch:
    """Requests whose summed token estimate fits one batch."""

    requests: List[LargeFileRequest] = field(default_factory=list)
    estimated_tokens: float = 0.0

    def add(self, request: LargeFileRequest, tokens: float) -> None:
        self.requests.append(request)
        self.estimated_tokens += tokens

    @property
    def file_paths(self) -> List[str]:
        return [r.file_path for r in self.requests]

    def __len__(self) -> int:
        return len(self.requests)


class LargeFileProcessor:
    """
    Review coordinator for files too big to submit verbatim.

    Stateless apart from its configuration; the host decides its lifetime.

    Usage:
        processor = LargeFileProcessor(model=LiteLLMContentGenerator())
        if processor.is_large_file(request):
            result = await processor.process_large_file(request)

        results = await processor.batch_process_large_files(requests)
    """

    def __init__(
        self,
        model: ContentGenerator,
        options: Optional[LargeFileOptions] = None,
        batching: Optional[BatchingConfig] = None,
        prompts: PromptTemplates = ENGLISH,
        parser: Optional[SuggestionParser] = None,
        max_tokens: int = 4096,
        temperature: float = 0.1,
    ):
        self.model = model
        self._options = options or LargeFileOptions()
        self.batching = batching or BatchingConfig()
        self.prompts = prompts
        self.parser = parser or SuggestionParser()
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    def options(self) -> LargeFileOptions:
        return self._options

    def update_options(self, changes: Optional[Dict[str, Any]] = None, **kwargs: Any) -> LargeFileOptions:
        """Merge partial option changes (nested compression settings merge too)."""
        self._options = self._options.merged({**(changes or {}), **kwargs})
        logger.info(f"Updated large file processor options: {self._options.model_dump()}")
        return self._options

    # -------------------------------------------------------------------------
    # Single file
    # -------------------------------------------------------------------------

    def is_large_file(self, request: LargeFileRequest) -> bool:
        if not self._options.enabled:
            return False
        return len(request.current_content) > self._options.size_threshold

    def compress(self, request: LargeFileRequest) -> Tuple[str, CompressionStats]:
        config = self._options.compression
        if request.language and config.language == "auto":
            config = config.model_copy(update={"language": request.language})
        return ContentCompressor(config).compress(request.current_content)

    async def process_large_file(self, request: LargeFileRequest) -> LargeFileResult:
        """
        Review one large file.

        Raises NotLargeFileError for files under the threshold (a caller bug).
        Prompt or model failures come back as an error result with score 0.
        """
        if not self.is_large_file(request):
            raise NotLargeFileError(
                f"{request.file_path} is not large enough for large-file processing "
                f"({len(request.current_content)} chars, threshold {self._options.size_threshold})"
            )

        logger.info(f"Processing large file: {request.file_path} ({len(request.current_content)} chars)")

        compressed, stats = self.compress(request)

        try:
            prompt = self._build_prompt(request.file_path, compressed, stats)
            response = await self.model.generate_content(
                prompt,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except Exception as e:
            logger.error(f"Large file processing failed for {request.file_path}: {e}")
            return LargeFileResult.from_error(f"Error processing large file {request.file_path}: {e}")

        return self._to_result(request.file_path, response)

    def _build_prompt(self, file_path: str, compressed: str, stats: CompressionStats) -> str:
        logger.debug(f"Building large file prompt for {file_path}: {stats.to_dict()}")
        return self.prompts.large_file_prompt(file_path, file_type_suffix(file_path), compressed)

    def _to_result(self, file_path: str, response: str) -> LargeFileResult:
        parsed = self.parser.parse(response)
        if parsed.strategy == "fallback":
            logger.debug(f"No suggestion markers in response for {file_path}; using leading lines")
        return LargeFileResult(
            suggestions=parsed.suggestions,
            score=1 if parsed.suggestions else 0,
        )

    def calculate_fingerprint(self, content: str) -> str:
        """Content hash used for caching and comparing file versions."""
        return str(calculate_content_fingerprint(content)["contentHash"])

    # -------------------------------------------------------------------------
    # Batches
    # -------------------------------------------------------------------------

    def estimate_request_tokens(self, request: LargeFileRequest) -> float:
        compressed, _ = self.compress(request)
        return len(compressed) * self.batching.tokens_per_char

    def plan_batches(self, requests: Iterable[LargeFileRequest]) -> List[FileBatch]:
        """
        Greedy single-pass grouping of large files, in input order.

        Non-large requests are skipped. A batch is closed when the next file
        would push it over ``max_batch_tokens``; a file that alone exceeds the
        ceiling still gets a batch of its own.
        """
        ceiling = self.batching.max_batch_tokens
        batches: List[FileBatch] = []
        current: Optional[FileBatch] = None
        seen = 0

        for request in requests:
            seen += 1
            if not self.is_large_file(request):
                continue

            tokens = self.estimate_request_tokens(request)

            if current is not None and current.requests and current.estimated_tokens + tokens > ceiling:
                current = None

            if current is None:
                current = FileBatch()
                batches.append(current)

            current.add(request, tokens)

        logger.info(
            f"Created {len(batches)} batch(es) for {sum(len(b) for b in batches)} large file(s) "
            f"out of {seen} request(s)"
        )
        return batches

    async def process_batches(
        self,
        batches: List[FileBatch],
        results: Optional[Dict[str, LargeFileResult]] = None,
    ) -> Dict[str, LargeFileResult]:
        """
        Process batches in order and return results keyed by file path.

        Pass ``results`` to keep access to completed entries if the call is
        cancelled part-way.
        """
        results = {} if results is None else results

        for i, batch in enumerate(batches, start=1):
            if not batch.requests:
                logger.warning(f"Batch {i} is empty, skipping")
                continue

            logger.info(f"Processing batch {i}/{len(batches)} with {len(batch)} file(s)")

            if self.batching.max_concurrency <= 1:
                for request in batch.requests:
                    results[request.file_path] = await self._process_isolated(request)
                continue

            sem = asyncio.Semaphore(self.batching.max_concurrency)

            async def _one(request: LargeFileRequest) -> None:
                async with sem:
                    results[request.file_path] = await self._process_isolated(request)

            await asyncio.gather(*(_one(r) for r in batch.requests))

        return results

    async def _process_isolated(self, request: LargeFileRequest) -> LargeFileResult:
        try:
            return await self.process_large_file(request)
        except Exception as e:
            logger.exception(f"Error processing file {request.file_path}: {e}")
            return LargeFileResult.from_error(f"Error processing file {request.file_path}: {e}")

    async def batch_process_large_files(self, requests: Iterable[LargeFileRequest]) -> Dict[str, LargeFileResult]:
        """plan_batches() followed by process_batches()."""
        requests = list(requests)
        logger.info(f"Batch processing {len(requests)} file(s)")
        return await self.process_batches(self.plan_batches(requests))
