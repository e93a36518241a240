"""
Content Fingerprinting for caching and change detection.

Two entry points with different cost profiles:

- calculate_content_fingerprint(): full scan. Structural metrics (line and
  token counts, comment ratio, per-language declaration counts) plus a rolling
  hash over every character. O(n) in content size.
- simple_content_fingerprint(): hashes only the first and last 100 UTF-16
  code units and the length, with no per-character Python loop over the
  body; use it when scanning the full content is too
  expensive and an occasional false "unchanged" is acceptable.

Neither hash is cryptographic. They are for equality/change checks only.
"""

from __future__ import annotations

import re
import struct
from typing import Dict, Pattern, Tuple, Union

from .language_detector import AUTO, detect_language


FingerprintValue = Union[int, float, str]
ContentFingerprint = Dict[str, FingerprintValue]

HASH_MODULUS = 2147483647  # 2^31 - 1
FAST_SAMPLE_CHARS = 100

_COMMENT_LINE = re.compile(r"^\s*(//|/\*|\*|#)")
_NON_WORD = re.compile(r"[^\w\s]")


def _metrics(*rows: Tuple[str, str], flags: int = 0) -> Tuple[Tuple[str, Pattern[str]], ...]:
    return tuple((name, re.compile(pattern, flags)) for name, pattern in rows)


_JS_METRICS = _metrics(
    ("imports", r"import\s+.*\bfrom\b"),
    ("exports", r"export\s+"),
    ("functions", r"\b(function\s+\w+|\w+\s*=\s*\([^)]*\)\s*=>)"),
    ("classes", r"\bclass\s+\w+"),
    ("hooks", r"\buse[A-Z]\w+"),
    ("jsx", r"<[A-Z]\w+"),
)

_PYTHON_METRICS = _metrics(
    ("imports", r"^\s*(import|from)\s+\w+"),
    ("functions", r"^\s*def\s+\w+"),
    ("classes", r"^\s*class\s+\w+"),
    ("decorators", r"^\s*@\w+"),
    ("specialMethods", r"^\s*def\s+__\w+__"),
    flags=re.MULTILINE,
)

_JAVA_METRICS = _metrics(
    ("imports", r"^\s*import\s+[\w.]+"),
    ("classes", r"^\s*(public|private|protected)\s+class\s+\w+"),
    ("methods", r"^\s*(public|private|protected)\s+[\w<>\[\]]+\s+\w+\s*\("),
    ("annotations", r"^\s*@\w+"),
    flags=re.MULTILINE,
)

_CPP_METRICS = _metrics(
    ("includes", r"^\s*#include\s*[<\"][\w./]+[>\"]\s*$"),
    ("classes", r"^\s*class\s+\w+"),
    ("functions", r"^\s*[\w:]+\s+[\w:]+\s*\([^)]*\)\s*(const|noexcept|override|final)?\s*\{?$"),
    ("templates", r"^\s*template\s*<[^>]+>"),
    flags=re.MULTILINE,
)

_CSHARP_METRICS = _metrics(
    ("usings", r"^\s*using\s+[\w.]+;"),
    ("namespaces", r"^\s*namespace\s+[\w.]+"),
    ("classes", r"^\s*(public|private|protected|internal)?\s*(static|sealed|abstract)?\s*class\s+\w+"),
    ("interfaces", r"^\s*(public|private|protected|internal)?\s*interface\s+I\w+"),
    ("methods", r"^\s*(public|private|protected|internal)\s+(static|virtual|override|abstract)?\s*[\w<>\[\]]+\s+\w+\s*\("),
    (
        "properties",
        r"^\s*(public|private|protected|internal)\s+(static|virtual|override|abstract)?\s*[\w<>\[\]]+\s+\w+\s*\{\s*(get|set)",
    ),
    ("attributes", r"^\s*\[\w+"),
    flags=re.MULTILINE,
)

_SQL_METRICS = _metrics(
    ("tables", r"\bCREATE\s+TABLE\s+[\w\[\]\"`.]+"),
    ("views", r"\bCREATE\s+VIEW\s+[\w\[\]\"`.]+"),
    ("procedures", r"\bCREATE\s+(PROC|PROCEDURE)\s+[\w\[\]\"`.]+"),
    ("functions", r"\bCREATE\s+FUNCTION\s+[\w\[\]\"`.]+"),
    ("triggers", r"\bCREATE\s+TRIGGER\s+[\w\[\]\"`.]+"),
    ("selects", r"\bSELECT\s+"),
    ("inserts", r"\bINSERT\s+INTO\s+"),
    ("updates", r"\bUPDATE\s+[\w\[\]\"`.]+\s+SET\s+"),
    ("deletes", r"\bDELETE\s+FROM\s+"),
    flags=re.IGNORECASE,
)

_GENERIC_METRICS = _metrics(
    ("imports", r"import\s+"),
    ("exports", r"export\s+"),
    ("functions", r"function\s+\w+"),
    ("classes", r"class\s+\w+"),
)

STRUCTURE_METRICS: Dict[str, Tuple[Tuple[str, Pattern[str]], ...]] = {
    "javascript": _JS_METRICS,
    "typescript": _JS_METRICS,
    "python": _PYTHON_METRICS,
    "java": _JAVA_METRICS,
    "kotlin": _JAVA_METRICS,
    "cpp": _CPP_METRICS,
    "c": _CPP_METRICS,
    "csharp": _CSHARP_METRICS,
    "sql": _SQL_METRICS,
}


def _utf16_units(content: str):
    """Iterate UTF-16 code units (what JavaScript's charCodeAt reports)."""
    return (unit for (unit,) in struct.iter_unpack("<H", content.encode("utf-16-le", "surrogatepass")))


def rolling_hash(content: str) -> int:
    """``hash = (hash * 31 + code) mod (2^31 - 1)`` over every code unit."""
    h = 0
    for code in _utf16_units(content):
        h = (h * 31 + code) % HASH_MODULUS
    return h


def content_hash(content: str) -> str:
    """Rolling hash of ``content`` as lowercase hex."""
    return format(rolling_hash(content or ""), "x")


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _signed_hex(value: int) -> str:
    return f"-{-value:x}" if value < 0 else f"{value:x}"


def simple_content_fingerprint(content: str) -> str:
    """
    Fast fingerprint from the first/last 100 UTF-16 code units and the length.

    Two contents that share prefix, suffix and length collide, so treat a
    match as "probably unchanged".
    """
    content = content or ""
    unit_count = len(content.encode("utf-16-le", "surrogatepass")) // 2
    prefix = list(_utf16_units(content[:FAST_SAMPLE_CHARS]))[:FAST_SAMPLE_CHARS]
    suffix = list(_utf16_units(content[-FAST_SAMPLE_CHARS:]))[-FAST_SAMPLE_CHARS:] if content else []
    length = [ord(c) for c in str(unit_count)]

    h = 0
    for code in prefix + suffix + length:
        h = _to_int32((h << 5) - h + code)
    return _signed_hex(h)


def calculate_content_fingerprint(content: str, language: str = AUTO) -> ContentFingerprint:
    """
    Full structural fingerprint of ``content``.

    Always contains language, totalLines, nonEmptyLines, totalTokens,
    commentLines, codeCommentRatio and contentHash, plus the structural counts
    of the detected language.
    """
    content = content or ""
    lines = content.split("\n")

    detected = detect_language(content, language or AUTO)

    total_lines = len(lines)
    non_empty_lines = sum(1 for line in lines if line.strip())
    total_tokens = len(_NON_WORD.sub(" ", content).split())

    comment_lines = sum(1 for line in lines if _COMMENT_LINE.match(line))
    if non_empty_lines > 0:
        code_comment_ratio = (non_empty_lines - comment_lines) / non_empty_lines
    else:
        code_comment_ratio = 1.0

    fingerprint: ContentFingerprint = {
        "language": detected,
        "totalLines": total_lines,
        "nonEmptyLines": non_empty_lines,
        "totalTokens": total_tokens,
        "commentLines": comment_lines,
        "codeCommentRatio": code_comment_ratio,
        "contentHash": content_hash(content),
    }

    table = STRUCTURE_METRICS.get(detected.lower(), _GENERIC_METRICS)
    for name, pattern in table:
        fingerprint[name] = sum(1 for _ in pattern.finditer(content))

    return fingerprint
