"""
Importance Scorer for Content Compression.

Assigns each source line an integer relevance score so the compressor can keep
the most informative lines of an oversized file. Scoring is a pure function of
the line text and the detected language: every matching signal adds its
weight, and weights accumulate across signals.

Signal tables are data, keyed by language:
    language -> ordered list of (pattern, weight, name)
Adding a language means adding a table entry, not editing control flow.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Pattern, Tuple


@dataclass(frozen=True)
class LineSignal:
    """One weighted pattern."""

    name: str
    pattern: Pattern[str]
    weight: int


@dataclass(frozen=True)
class ScoredLine:
    """A line with its original position and score (used during selection)."""

    text: str
    index: int
    score: int


def _table(*rows: Tuple[str, str, int], flags: int = 0) -> Tuple[LineSignal, ...]:
    return tuple(LineSignal(name=name, pattern=re.compile(pattern, flags), weight=weight) for name, pattern, weight in rows)


# =============================================================================
# LANGUAGE-SPECIFIC SIGNALS
# =============================================================================

_JAVASCRIPT = _table(
    ("declaration", r"^(class|function|import|export|const|let|var|interface|type|enum)", 5),
    ("member_definition", r"^\s+(public|private|protected|async|static|\*|\w+\s*\([^)]*\)\s*\{|\w+\s*=\s*\([^)]*\)\s*=>)", 3),
    ("react_hook_or_component", r"\b(use[A-Z]\w+|function\s+[A-Z]\w+|class\s+[A-Z]\w+\s+extends)\b", 4),
    ("jsx_element", r"^\s*<[A-Z]\w+|\breturn\s+<", 3),
    ("vue_directive", r"^\s*(@Component|@Vue\.component|@Prop|@Watch|@Emit|v-\w+)", 4),
    ("vue_lifecycle", r"^\s*(created|mounted|updated|destroyed|beforeCreate|beforeMount|beforeUpdate|beforeDestroy)\(", 3),
    ("state_management", r"\b(useState|useReducer|useContext|mapState|mapGetters|mapActions|mapMutations)\b", 4),
)

_CSS = _table(
    ("selector", r"^[.#]?[\w-]+|^@media\b|^@keyframes\b", 4),
    ("layout_property", r"^\s*(display|position|flex|grid|animation|transition|transform):\s", 3),
    ("variable_or_mixin", r"^\s*(@include|@extend|@mixin|@function|\$\w+:|@\w+:|--\w+:)", 4),
    ("responsive_rule", r"^\s*@(media|supports|container)\b", 4),
    ("css_in_js", r"^\s*(styled\.|css`|makeStyles|createStyles)", 3),
)

_PYTHON = _table(
    ("declaration", r"^(def|class|async\s+def)\s+\w+", 5),
    ("import_or_decorator", r"^(from|import|@\w+)", 4),
    ("special_method", r"^\s+def\s+__\w+__", 4),
    ("control_flow", r"^\s*(if|elif|else|for|while|try|except|finally|with)\b", 2),
)

_JAVA = _table(
    ("type_declaration", r"^\s*(public|private|protected)\s+(class|interface|enum|@interface)", 5),
    ("method_declaration", r"^\s*(public|private|protected|final|static|abstract)\s+[\w<>\[\]]+\s+\w+\s*\(", 4),
    ("annotation", r"^\s*@\w+", 3),
)

_CPP = _table(
    ("preprocessor", r"^\s*#(include|define|ifdef|ifndef|endif|pragma)", 5),
    ("type_declaration", r"^\s*(class|struct|enum|namespace|template)\s+\w+", 5),
    ("function_definition", r"^\s*[\w:]+\s+[\w:]+\s*\([^)]*\)\s*(const|noexcept|override|final)?\s*\{?$", 4),
)

_GENERIC = _table(
    ("declaration", r"^(class|function|def|import|export|const|let|var|interface|type|enum)", 5),
    ("member_modifier", r"^\s+(public|private|protected|async|static|\*)", 3),
)

LANGUAGE_SIGNALS: Dict[str, Tuple[LineSignal, ...]] = {
    "javascript": _JAVASCRIPT,
    "typescript": _JAVASCRIPT,
    "vue": _JAVASCRIPT,
    "react": _JAVASCRIPT,
    "css": _CSS,
    "less": _CSS,
    "sass": _CSS,
    "scss": _CSS,
    "python": _PYTHON,
    "java": _JAVA,
    "kotlin": _JAVA,
    "cpp": _CPP,
    "c": _CPP,
}

GENERIC_SIGNALS = _GENERIC


# =============================================================================
# LANGUAGE-INDEPENDENT SIGNALS
# =============================================================================

UNIVERSAL_SIGNALS: Tuple[LineSignal, ...] = _table(
    ("important_comment", r"\b(TODO|FIXME|XXX|HACK|NOTE|IMPORTANT|BUG|OPTIMIZE|REVIEW)\b", 4),
    ("doc_comment", r"^\s*(\*|#|//|/\*|\"\"\"|''')\s", 2),
    ("error_handling", r"\b(try|catch|except|finally|throw|throws|raise|rescue|error)\b", 3),
    ("control_flow", r"\b(if|else|switch|case|for|while|do|foreach|map|filter|reduce)\b", 2),
) + _table(
    ("security", r"\b(auth|security|password|encrypt|decrypt|hash|token|permission|access)\b", 3),
    flags=re.IGNORECASE,
)

NON_EMPTY_WEIGHT = 1


def signals_for(language: str) -> Tuple[LineSignal, ...]:
    """Language table for ``language``; unknown languages get the generic table."""
    return LANGUAGE_SIGNALS.get((language or "").lower(), GENERIC_SIGNALS)


def score_line(line: str, language: str) -> int:
    """Score one line. Deterministic, never negative."""
    score = NON_EMPTY_WEIGHT if line.strip() else 0

    for signal in signals_for(language):
        if signal.pattern.search(line):
            score += signal.weight

    for signal in UNIVERSAL_SIGNALS:
        if signal.pattern.search(line):
            score += signal.weight

    return score


def score_lines(lines: List[str], language: str, start_index: int = 0) -> List[ScoredLine]:
    """Score a run of lines, recording each line's index in the original file."""
    return [
        ScoredLine(text=line, index=start_index + offset, score=score_line(line, language))
        for offset, line in enumerate(lines)
    ]
