"""
CodeKarmic - Review Response Parser

Turns free-text model output into a list of suggestion lines.

Two strategies, tried in order:
1. Grammar: keep lines that start with a bullet / number / bracketed location
   tag / suggestion label, or that contain advisory vocabulary.
2. Fallback: the first few non-empty lines, so a response with content never
   produces an empty suggestion list.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple


# Accepted line prefixes.
SUGGESTION_PREFIXES: Tuple[str, ...] = (
    r"[-*•]",                                  # bullets
    r"\d+[.)]",                                # 1.  2)
    r"\[[^\]]+\]",                             # [12]  [12-14]  [section]
    r"(?:Suggestion|Consider|Recommendation):",
)

# Advisory vocabulary anywhere in the line.
ADVISORY_WORDS: Tuple[str, ...] = (
    r"\bconsider\b",
    r"\bshould\b",
    r"\bmight\b",
    r"\bcould\b",
    r"\brecommend\b",
    r"\bbetter\b",
    r"\bimprove\b",
    "建议",
    "考虑",
    "应该",
    "推荐",
    "改进",
)

FALLBACK_LINE_COUNT = 3


@dataclass(frozen=True)
class ParsedSuggestions:
    suggestions: List[str]
    strategy: str  # grammar|fallback|empty


class SuggestionParser:
    """
    Extracts suggestions from a review response.

    Usage:
        parser = SuggestionParser()
        parsed = parser.parse(response_text)
        parsed.suggestions, parsed.strategy
    """

    def __init__(
        self,
        prefixes: Sequence[str] = SUGGESTION_PREFIXES,
        advisory_words: Sequence[str] = ADVISORY_WORDS,
        fallback_lines: int = FALLBACK_LINE_COUNT,
    ):
        self._prefix_re = re.compile(r"^(?:" + "|".join(prefixes) + r")")
        self._advisory_re = re.compile("|".join(advisory_words), re.IGNORECASE)
        self.fallback_lines = fallback_lines

    def is_suggestion(self, line: str) -> bool:
        return bool(self._prefix_re.match(line) or self._advisory_re.search(line))

    def parse(self, text: str) -> ParsedSuggestions:
        lines = [line.strip() for line in (text or "").split("\n")]
        lines = [line for line in lines if line]

        if not lines:
            return ParsedSuggestions(suggestions=[], strategy="empty")

        matched = [line for line in lines if self.is_suggestion(line)]
        if matched:
            return ParsedSuggestions(suggestions=matched, strategy="grammar")

        return ParsedSuggestions(suggestions=lines[: self.fallback_lines], strategy="fallback")


def extract_suggestions(text: str) -> List[str]:
    """Convenience wrapper returning only the suggestion list."""
    return SuggestionParser().parse(text).suggestions


# Suggestion count -> 1..10 score. Fewer suggestions reads as "better code",
# which conflates verbosity with quality; kept as a heuristic only.
QUALITY_SCORE_TABLE: Tuple[Tuple[int, int], ...] = (
    (0, 10),
    (2, 9),
    (5, 8),
    (10, 7),
    (15, 6),
    (20, 5),
)
QUALITY_SCORE_FLOOR = 4


def estimate_quality_score(suggestions: Sequence[str]) -> int:
    """Heuristic 1-10 score from the number of suggestions."""
    count = len(suggestions)
    for upper_bound, score in QUALITY_SCORE_TABLE:
        if count <= upper_bound:
            return score
    return QUALITY_SCORE_FLOOR
