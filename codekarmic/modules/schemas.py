"""
CodeKarmic - Core Data Structures (Pydantic Schemas)
Version: 1.0

Plain configuration, request and result models shared by the compression
engine and the large-file review coordinator:
- CompressionConfig: When and how much to shrink a file
- LargeFileOptions: Which files count as "large" and how they are compressed
- BatchingConfig: Token budget used to group large files into batches
- LLMConfig / RetryPolicy: Model invocation settings for the host wiring
- LargeFileRequest / LargeFileResult: One file in, one review result out

All models are plain data. The host application builds them (from YAML, env
or user preferences) and hands them to the engine explicitly.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_MAX_CONTENT_LENGTH = 20000
DEFAULT_HEADER_LINES = 30
DEFAULT_FOOTER_LINES = 20
DEFAULT_SAMPLE_RATE = 0.2
DEFAULT_SIZE_THRESHOLD = 20000

# Crude chars-per-token approximation, not a tokenizer.
TOKENS_PER_CHAR = 0.25
MAX_BATCH_TOKENS = 4000


# =============================================================================
# COMPRESSION
# =============================================================================


class CompressionConfig(BaseModel):
    """Settings for the content compressor."""

    model_config = ConfigDict(validate_assignment=True)

    max_content_length: int = Field(default=DEFAULT_MAX_CONTENT_LENGTH, gt=0)
    header_lines: int = Field(default=DEFAULT_HEADER_LINES, ge=0)
    footer_lines: int = Field(default=DEFAULT_FOOTER_LINES, ge=0)
    sample_rate: float = Field(default=DEFAULT_SAMPLE_RATE, gt=0.0, le=1.0)
    include_stats: bool = True
    language: str = "auto"

    @field_validator("language")
    @classmethod
    def _normalize_language(cls, v: Optional[str]) -> str:
        v = (v or "").strip()
        return v or "auto"


class LargeFileOptions(BaseModel):
    """Options for the large-file coordinator."""

    enabled: bool = True
    size_threshold: int = Field(default=DEFAULT_SIZE_THRESHOLD, ge=0)
    compression: CompressionConfig = Field(default_factory=CompressionConfig)

    def merged(self, changes: Dict[str, Any]) -> "LargeFileOptions":
        """Return a copy with ``changes`` applied.

        A nested ``compression`` mapping is merged into the current compression
        settings instead of replacing them wholesale.
        """
        data = self.model_dump()
        changes = dict(changes or {})

        compression_changes = changes.pop("compression", None)
        if isinstance(compression_changes, CompressionConfig):
            compression_changes = compression_changes.model_dump(exclude_unset=True)
        if compression_changes:
            data["compression"].update(compression_changes)

        data.update(changes)
        return LargeFileOptions.model_validate(data)


class BatchingConfig(BaseModel):
    """Token budget for grouping large files."""

    tokens_per_char: float = Field(default=TOKENS_PER_CHAR, gt=0.0)
    max_batch_tokens: int = Field(default=MAX_BATCH_TOKENS, gt=0)
    # 1 = strictly sequential within a batch
    max_concurrency: int = Field(default=1, ge=1)


# =============================================================================
# MODEL INVOCATION
# =============================================================================


class RetryPolicy(BaseModel):
    """Exponential backoff for model calls."""

    max_retries: int = Field(default=2, ge=0)
    initial_delay_seconds: float = Field(default=0.5, ge=0.0)
    backoff_factor: float = Field(default=1.5, ge=1.0)
    max_delay_seconds: float = Field(default=30.0, ge=0.0)
    # Substrings or regexes. Empty means every error is retryable.
    retryable_errors: List[str] = Field(default_factory=list)

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        delay = self.initial_delay_seconds * (self.backoff_factor ** (attempt - 1))
        return min(delay, self.max_delay_seconds)


class LLMConfig(BaseModel):
    """Model settings consumed by the LiteLLM content generator."""

    model: str = Field(default="deepseek/deepseek-chat", min_length=1)
    api_base: Optional[str] = None
    api_key_env: Optional[str] = "DEEPSEEK_API_KEY"
    max_tokens: int = Field(default=4096, gt=0)
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    timeout_seconds: int = Field(default=60, gt=0)


# =============================================================================
# REQUESTS & RESULTS
# =============================================================================


class LargeFileRequest(BaseModel):
    """A file submitted for review."""

    file_path: str = Field(..., min_length=1)
    current_content: str = ""
    # Prior version, for diff-aware callers.
    previous_content: Optional[str] = None
    language: Optional[str] = None


class LargeFileResult(BaseModel):
    """Review outcome for one file.

    ``score`` is a coarse binary proxy (1 when suggestions were extracted,
    0 otherwise), not a quality measure.
    """

    suggestions: List[str] = Field(default_factory=list)
    score: Optional[float] = None

    @classmethod
    def from_error(cls, message: str) -> "LargeFileResult":
        return cls(suggestions=[message], score=0)
