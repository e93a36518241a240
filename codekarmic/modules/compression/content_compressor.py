"""
Content Compressor for Large File Review.

Produces a reduced-but-representative excerpt of an oversized file:
header lines and footer lines are kept verbatim, and the middle is sampled by
line importance, then restored to reading order.

This is the assembly layer that produces the text sent to the model.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from ..schemas import CompressionConfig
from .importance_scorer import ScoredLine, score_lines
from .language_detector import detect_language


COMPRESSED_SECTION_MARKER = "// ... Compressed Section ..."
END_OF_FILE_MARKER = "// ... End of File ..."


@dataclass(frozen=True)
class CompressionStats:
    """Statistics for one compression call.

    ``kept_lines`` counts original lines retained (header, sampled middle and
    footer). Markers and the statistics block are not counted, so the retention
    rate drops below 1 as soon as any line is dropped. ``compressed_size`` is
    the length of the returned text, statistics block included, so a short
    over-threshold input can come out slightly larger than it went in.
    """

    original_size: int
    compressed_size: int
    compression_ratio: float
    total_lines: int
    kept_lines: int
    line_retention_rate: float

    @classmethod
    def unchanged(cls, content: str) -> "CompressionStats":
        total_lines = len(content.split("\n"))
        return cls(
            original_size=len(content),
            compressed_size=len(content),
            compression_ratio=1.0,
            total_lines=total_lines,
            kept_lines=total_lines,
            line_retention_rate=1.0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def boundary_line_counts(total_lines: int, config: CompressionConfig) -> Tuple[int, int]:
    """Effective (header, footer) counts, each capped at a third of the file."""
    third = total_lines // 3
    return min(config.header_lines, third), min(config.footer_lines, third)


def select_middle_lines(scored: List[ScoredLine], sample_rate: float) -> List[ScoredLine]:
    """
    Pick ``ceil(len(scored) * sample_rate)`` lines by descending score.

    Equal scores are broken by original index (earlier line first). The
    selection is returned in original order.
    """
    take = math.ceil(len(scored) * sample_rate)
    if take <= 0:
        return []
    ranked = sorted(scored, key=lambda sl: (-sl.score, sl.index))
    return sorted(ranked[:take], key=lambda sl: sl.index)


def _assemble(header: List[str], selected: List[ScoredLine], footer: List[str]) -> str:
    parts = ["\n".join(header), "\n\n", COMPRESSED_SECTION_MARKER]
    for sl in selected:
        parts.append("\n")
        parts.append(sl.text)
    parts.append("\n\n")
    parts.append(END_OF_FILE_MARKER)
    parts.append("\n")
    parts.append("\n".join(footer))
    return "".join(parts)


def _stats_block(total_lines: int, original_size: int, language: str, ratio: float) -> str:
    return "\n".join(
        [
            "",
            "--- File Statistics ---",
            f"Total Lines: {total_lines}",
            f"File Size: {original_size} characters",
            f"Detected Language: {language}",
            f"Compression Rate: {round((1 - ratio) * 100)}%",
            "",
        ]
    )


class ContentCompressor:
    """
    Shrinks oversized content for submission to a size-limited model.

    Usage:
        compressor = ContentCompressor(CompressionConfig(max_content_length=20000))
        text, stats = compressor.compress(content)
    """

    def __init__(self, config: Optional[CompressionConfig] = None):
        self.config = config or CompressionConfig()

    def compress(self, content: str) -> Tuple[str, CompressionStats]:
        """
        Compress ``content`` if it exceeds ``max_content_length``.

        Below the threshold the input is returned unchanged with a ratio of 1.
        Never raises on degenerate input.
        """
        config = self.config
        content = content or ""

        if len(content) <= config.max_content_length:
            return content, CompressionStats.unchanged(content)

        lines = content.split("\n")
        total_lines = len(lines)

        header_count, footer_count = boundary_line_counts(total_lines, config)
        middle_end = total_lines - footer_count

        language = detect_language(content, config.language)

        scored = score_lines(lines[header_count:middle_end], language, start_index=header_count)
        selected = select_middle_lines(scored, config.sample_rate)

        body = _assemble(lines[:header_count], selected, lines[middle_end:])
        text = body
        if config.include_stats:
            text = _stats_block(total_lines, len(content), language, len(body) / len(content)) + body

        kept_lines = header_count + len(selected) + footer_count
        stats = CompressionStats(
            original_size=len(content),
            compressed_size=len(text),
            compression_ratio=len(text) / len(content),
            total_lines=total_lines,
            kept_lines=kept_lines,
            line_retention_rate=kept_lines / total_lines,
        )

        logger.debug(
            f"Content compression: {total_lines} lines -> {kept_lines} lines "
            f"(retention: {round(stats.line_retention_rate * 100)}%, language: {language})"
        )

        return text, stats


def compress_content(
    content: str,
    config: Optional[CompressionConfig] = None,
) -> Tuple[str, CompressionStats]:
    """Convenience wrapper around ContentCompressor.compress()."""
    return ContentCompressor(config).compress(content)
