"""
Language Detector for Content Compression.

Best-effort, pattern-based language classification from a content sample.
Signatures are tested in order and the first match wins, so more specific
dialects (TypeScript, Vue, React, Sass) sit ahead of the languages they
extend (JavaScript, CSS).

This layer decides WHICH scoring and fingerprint tables apply.
"""

from __future__ import annotations

import re
from typing import List, Optional, Pattern, Tuple


AUTO = "auto"
GENERIC = "generic"

# Only the head of a file is inspected; the tail rarely changes the verdict.
SAMPLE_CHARS = 5000


# Ordered (tag, pattern) signatures. First match wins.
LANGUAGE_SIGNATURES: List[Tuple[str, str]] = [
    ("php", r"<\?php\b"),
    (
        "typescript",
        r"\bimport\s+type\b"
        r"|\bexport\s+(?:interface|type|enum|declare|abstract\s+class)\b"
        r"|\btype\s+\w+(?:<[^>]*>)?\s*=\s*"
        r"|\w\)?\s*\??:\s*(?:string|number|boolean|any|unknown|never|void)(?:\[\])?\s*(?:[;,)=|{]|$)"
        r"|\bas\s+const\b"
        r"|\breadonly\s+\w+\s*:",
    ),
    (
        "vue",
        r"<template[\s>]"
        r"|\bdefineComponent\s*\("
        r"|\bcreateApp\s*\("
        r"|\bnew\s+Vue\s*\("
        r"|\bv-(?:if|for|model|bind|on|show)\b",
    ),
    (
        "react",
        r"\bimport\s+React\b"
        r"|from\s+['\"]react['\"]"
        r"|\buse(?:State|Effect|Context|Reducer|Ref|Memo|Callback)\s*\("
        r"|<React\.Fragment"
        r"|\bclassName=",
    ),
    (
        "javascript",
        r"\bfunction\s*\w*\s*\([^)$]*\)\s*\{"
        r"|\b(?:const|let)\s+\w+\s*=\s*(?:async\s+)?(?:\([^)]*\)|\w+)\s*=>"
        r"|\brequire\s*\(\s*['\"]"
        r"|\bmodule\.exports\b"
        r"|\bexport\s+(?:default|const|function|class)\b"
        r"|\bimport\s+[\w{}\s,*]+\s+from\s+['\"]"
        r"|\bconsole\.log\s*\("
        r"|\bdocument\.\w+",
    ),
    (
        "sass",
        r"@mixin\s+[\w-]+"
        r"|@include\s+[\w-]+"
        r"|@extend\s+[.%]?[\w-]+"
        r"|^\s*\$[\w-]+\s*:"
        r"|&:(?:hover|focus|active|before|after)"
        r"|&\.[\w-]+",
    ),
    (
        "css",
        r"@media\b|@keyframes\b|@font-face\b|:root\s*\{"
        r"|^\s*(?:color|background(?:-color)?|margin|padding|display|font-(?:size|family|weight)"
        r"|width|height|border|position)\s*:\s*[^;]+;",
    ),
    (
        "python",
        r"^\s*(?:async\s+)?def\s+\w+\s*\(.*\)\s*(?:->\s*[^:]+)?:\s*$"
        r"|^\s*from\s+[\w.]+\s+import\s+"
        r"|^\s*import\s+[\w.]+(?:\s+as\s+\w+)?\s*$"
        r"|\bif\s+__name__\s*==\s*['\"]__main__['\"]"
        r"|^\s*class\s+\w+(?:\([^)]*\))?\s*:\s*$",
    ),
    ("cpp", r"^\s*#\s*include\s*[<\"]|\bstd::|\btemplate\s*<"),
    (
        "csharp",
        r"^\s*using\s+System\b"
        r"|\{\s*get;\s*(?:private\s+)?set;\s*\}"
        r"|^\s*namespace\s+[\w.]+\s*[{;]?\s*$"
        r"|\bpublic\s+(?:async\s+)?Task\b",
    ),
    (
        "java",
        r"^\s*package\s+[\w.]+;"
        r"|\bimport\s+java\."
        r"|@Override\b"
        r"|\bSystem\.out\."
        r"|\bpublic\s+(?:final\s+|abstract\s+)?class\s+\w+",
    ),
    (
        "rust",
        r"\bfn\s+\w+\s*(?:<[^>]*>)?\s*\("
        r"|\blet\s+mut\b"
        r"|\bimpl\b(?:<[^>]*>)?\s+\w+"
        r"|\buse\s+\w+::"
        r"|\bpub\s+(?:fn|struct|enum|mod|trait)\b",
    ),
    (
        "go",
        r"^\s*package\s+\w+\s*$"
        r"|\bfunc\s+(?:\([^)]*\)\s*)?\w+\s*\("
        r"|\bgo\s+func\b"
        r"|\bchan\s+\w+",
    ),
    (
        "ruby",
        r"^\s*require\s+['\"]"
        r"|^\s*def\s+\w+[?!]?\s*$"
        r"|\battr_(?:accessor|reader|writer)\b"
        r"|\bdo\s*\|[^|]*\|",
    ),
    (
        "sql",
        r"(?i)\b(?:SELECT\s+.+?\s+FROM|INSERT\s+INTO|CREATE\s+(?:TABLE|VIEW|INDEX|PROCEDURE|FUNCTION|TRIGGER)"
        r"|ALTER\s+TABLE|DROP\s+TABLE|UPDATE\s+\w+\s+SET|DELETE\s+FROM)\b",
    ),
]


_COMPILED_SIGNATURES: List[Tuple[str, Pattern[str]]] = [
    (tag, re.compile(pattern, re.MULTILINE)) for tag, pattern in LANGUAGE_SIGNATURES
]


def detect_language(content: str, hint: Optional[str] = AUTO) -> str:
    """
    Detect the language of ``content``.

    An explicit hint (anything other than "auto") is returned unchanged.
    Never raises; a miss yields "generic".
    """
    hint = (hint or "").strip()
    if hint and hint != AUTO:
        return hint

    sample = (content or "")[:SAMPLE_CHARS]
    for tag, pattern in _COMPILED_SIGNATURES:
        if pattern.search(sample):
            return tag

    return GENERIC


def known_languages() -> List[str]:
    return [tag for tag, _ in LANGUAGE_SIGNATURES]
