"""
Content Compression Package for Large File Review.

Shrinks oversized source files into representative excerpts that fit a
model's input budget, fingerprints content for caching, and batches large
files under a token ceiling.

Components:
- detect_language: Ordered pattern-based language classification
- score_line: Per-line importance scoring from per-language signal tables
- ContentCompressor: Header/footer + importance-sampled middle excerpt
- calculate_content_fingerprint / simple_content_fingerprint: Full and fast fingerprints
- LargeFileProcessor: Large-file review and token-bounded batching
"""

from .language_detector import (
    AUTO,
    GENERIC,
    detect_language,
    known_languages,
)

from .importance_scorer import (
    LineSignal,
    ScoredLine,
    score_line,
    score_lines,
    signals_for,
)

from .content_compressor import (
    COMPRESSED_SECTION_MARKER,
    END_OF_FILE_MARKER,
    CompressionStats,
    ContentCompressor,
    boundary_line_counts,
    compress_content,
    select_middle_lines,
)

from .fingerprint import (
    ContentFingerprint,
    calculate_content_fingerprint,
    content_hash,
    simple_content_fingerprint,
)

from .large_file_processor import (
    FileBatch,
    LargeFileProcessor,
    NotLargeFileError,
)

__all__ = [
    # Language Detection
    "AUTO",
    "GENERIC",
    "detect_language",
    "known_languages",
    # Importance Scoring
    "LineSignal",
    "ScoredLine",
    "score_line",
    "score_lines",
    "signals_for",
    # Compression
    "COMPRESSED_SECTION_MARKER",
    "END_OF_FILE_MARKER",
    "CompressionStats",
    "ContentCompressor",
    "boundary_line_counts",
    "compress_content",
    "select_middle_lines",
    # Fingerprinting
    "ContentFingerprint",
    "calculate_content_fingerprint",
    "content_hash",
    "simple_content_fingerprint",
    # Large File Processing
    "FileBatch",
    "LargeFileProcessor",
    "NotLargeFileError",
]
