# CodeKarmic Modules
# Version: 1.0 - Large file compression and batched review

# Pydantic schemas
from .schemas import (
    BatchingConfig,
    CompressionConfig,
    LargeFileOptions,
    LargeFileRequest,
    LargeFileResult,
    LLMConfig,
    RetryPolicy,
)

# Compression engine and large-file coordinator
from .compression import (
    CompressionStats,
    ContentCompressor,
    FileBatch,
    LargeFileProcessor,
    NotLargeFileError,
    calculate_content_fingerprint,
    compress_content,
    detect_language,
    score_line,
    simple_content_fingerprint,
)

# Prompts and response parsing
from .prompts import CHINESE, ENGLISH, PromptTemplates, get_prompt_templates
from .response_parser import (
    ParsedSuggestions,
    SuggestionParser,
    estimate_quality_score,
    extract_suggestions,
)

# Model access
from .provider_adapter import (
    ContentGenerator,
    LiteLLMContentGenerator,
    ModelInvocationError,
    acompletion_with_retry,
)

# Host wiring
from .config import KarmicSettings, build_processor, load_config, load_settings

__all__ = [
    # Schemas
    "BatchingConfig",
    "CompressionConfig",
    "LargeFileOptions",
    "LargeFileRequest",
    "LargeFileResult",
    "LLMConfig",
    "RetryPolicy",
    # Compression
    "CompressionStats",
    "ContentCompressor",
    "FileBatch",
    "LargeFileProcessor",
    "NotLargeFileError",
    "calculate_content_fingerprint",
    "compress_content",
    "detect_language",
    "score_line",
    "simple_content_fingerprint",
    # Prompts
    "CHINESE",
    "ENGLISH",
    "PromptTemplates",
    "get_prompt_templates",
    # Parsing
    "ParsedSuggestions",
    "SuggestionParser",
    "estimate_quality_score",
    "extract_suggestions",
    # Model access
    "ContentGenerator",
    "LiteLLMContentGenerator",
    "ModelInvocationError",
    "acompletion_with_retry",
    # Settings
    "KarmicSettings",
    "build_processor",
    "load_config",
    "load_settings",
]
