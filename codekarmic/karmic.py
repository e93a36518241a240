#!/usr/bin/env python3
"""
CodeKarmic - Large File Review CLI

Compresses oversized source files into reviewable excerpts, fingerprints them,
plans token-bounded review batches and runs the large-file review through
LiteLLM.

Usage:
    codekarmic compress big_module.ts                  # Print the compressed excerpt
    codekarmic compress big.py --no-stats --sample-rate 0.3
    codekarmic fingerprint big.py --language python    # JSON fingerprint
    codekarmic fingerprint big.py --fast               # Fast prefix/suffix hash
    codekarmic plan a.ts b.ts c.py                     # Show the batch plan
    codekarmic review a.ts b.ts --json                 # Review via the configured model
    codekarmic --help                                  # Show help

Version: 1.0
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

from loguru import logger
from pydantic import ValidationError

from codekarmic.modules.compression import (
    ContentCompressor,
    calculate_content_fingerprint,
    simple_content_fingerprint,
)
from codekarmic.modules.config import KarmicSettings, build_processor, load_settings
from codekarmic.modules.provider_adapter import ContentGenerator
from codekarmic.modules.response_parser import estimate_quality_score
from codekarmic.modules.schemas import CompressionConfig, LargeFileRequest, LargeFileResult


VERSION = "CodeKarmic v1.0"


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Configure logging with loguru."""
    logger.remove()

    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level,
        colorize=True,
    )

    if log_file:
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level="DEBUG",
            rotation="10 MB",
            retention="7 days",
        )


def read_request(path: str) -> LargeFileRequest:
    """Read a source file into a review request (raises FileNotFoundError)."""
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(path)
    content = file_path.read_text(encoding="utf-8", errors="replace")
    return LargeFileRequest(file_path=str(file_path), current_content=content)


# =============================================================================
# COMMANDS
# =============================================================================


def cmd_compress(args: argparse.Namespace, settings: KarmicSettings) -> int:
    request = read_request(args.file)

    changes = {}
    if args.stats is not None:
        changes["include_stats"] = args.stats
    if args.sample_rate is not None:
        changes["sample_rate"] = args.sample_rate
    config = CompressionConfig.model_validate({**settings.large_file.compression.model_dump(), **changes})

    compressed, stats = ContentCompressor(config).compress(request.current_content)
    print(compressed)

    logger.debug(f"Compression stats for {request.file_path}: {stats.to_dict()}")
    return 0


def cmd_fingerprint(args: argparse.Namespace, settings: KarmicSettings) -> int:
    request = read_request(args.file)

    if args.fast:
        payload = {"file": request.file_path, "fingerprint": simple_content_fingerprint(request.current_content)}
    else:
        payload = {"file": request.file_path, **calculate_content_fingerprint(request.current_content, args.language)}

    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def cmd_plan(args: argparse.Namespace, settings: KarmicSettings, model: Optional[ContentGenerator] = None) -> int:
    requests = [read_request(p) for p in args.files]
    processor = build_processor(settings, model=model or _NoModel())

    batches = processor.plan_batches(requests)
    skipped = [r.file_path for r in requests if not processor.is_large_file(r)]

    plan = {
        "max_batch_tokens": settings.batching.max_batch_tokens,
        "batches": [
            {"files": b.file_paths, "estimated_tokens": round(b.estimated_tokens, 2)}
            for b in batches
        ],
        "skipped": skipped,
    }
    print(json.dumps(plan, indent=2, ensure_ascii=False))
    return 0


def cmd_review(args: argparse.Namespace, settings: KarmicSettings, model: Optional[ContentGenerator] = None) -> int:
    requests = [read_request(p) for p in args.files]
    processor = build_processor(settings, model=model)

    small = [r.file_path for r in requests if not processor.is_large_file(r)]
    for path in small:
        logger.info(f"Skipping {path}: below large-file threshold ({settings.large_file.size_threshold} chars)")

    results: Dict[str, LargeFileResult] = {}
    asyncio.run(processor.process_batches(processor.plan_batches(requests), results))

    if args.json:
        out = {
            path: {
                **result.model_dump(),
                "quality_score": estimate_quality_score(result.suggestions),
            }
            for path, result in results.items()
        }
        print(json.dumps(out, indent=2, ensure_ascii=False))
    else:
        _print_review(results)

    failed = [path for path, result in results.items() if not result.score]
    if failed:
        logger.warning(f"{len(failed)} file(s) produced no usable review: {failed}")
    return 1 if failed else 0


def _print_review(results: Dict[str, LargeFileResult]) -> None:
    for path, result in results.items():
        print("=" * 70)
        print(f"{path}  (quality estimate {estimate_quality_score(result.suggestions)}/10)")
        print("=" * 70)
        for suggestion in result.suggestions:
            print(f"  {suggestion}")
        print()


class _NoModel:
    """Placeholder model for commands that never call it."""

    async def generate_content(self, prompt, *, max_tokens=None, temperature=None) -> str:
        raise RuntimeError("plan does not invoke a model")


# =============================================================================
# ENTRY POINT
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codekarmic",
        description="CodeKarmic large file review",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  codekarmic compress src/huge.ts                  # Compressed excerpt
  codekarmic fingerprint src/huge.ts --fast        # Fast fingerprint
  codekarmic plan src/*.ts                         # Batch plan as JSON
  codekarmic review src/huge.ts --json             # Review with the configured model

Environment Variables:
  CODEKARMIC_MODEL            - LiteLLM model string (default deepseek/deepseek-chat)
  CODEKARMIC_API_BASE         - Custom API base URL
  CODEKARMIC_PROMPT_LANGUAGE  - ENGLISH or CHINESE
  CODEKARMIC_SIZE_THRESHOLD   - Large-file threshold in characters
  CODEKARMIC_MAX_BATCH_TOKENS - Token ceiling per batch
  CODEKARMIC_MAX_CONCURRENCY  - Files reviewed concurrently within a batch
  DEEPSEEK_API_KEY            - API key (name configurable via llm.api_key_env)
""",
    )

    parser.add_argument(
        "--config", "-c", type=str, default="config.yaml", help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose/debug output")
    parser.add_argument("--log-file", type=str, help="Path to log file (optional)")
    parser.add_argument("--version", action="version", version=VERSION)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.required = True

    compress_parser = subparsers.add_parser("compress", help="Print the compressed excerpt of a file")
    compress_parser.add_argument("file", help="Source file")
    compress_parser.add_argument(
        "--stats", action=argparse.BooleanOptionalAction, default=None, help="Prepend/omit the statistics block"
    )
    compress_parser.add_argument("--sample-rate", type=float, default=None, help="Fraction of middle lines to keep")

    fp_parser = subparsers.add_parser("fingerprint", help="Print a content fingerprint as JSON")
    fp_parser.add_argument("file", help="Source file")
    fp_parser.add_argument("--fast", action="store_true", help="Prefix/suffix hash only")
    fp_parser.add_argument("--language", "-l", type=str, default="auto", help="Language hint (default: auto)")

    plan_parser = subparsers.add_parser("plan", help="Show how large files would be batched")
    plan_parser.add_argument("files", nargs="+", help="Source files")

    review_parser = subparsers.add_parser("review", help="Review large files with the configured model")
    review_parser.add_argument("files", nargs="+", help="Source files")
    review_parser.add_argument("--json", action="store_true", help="Machine-readable output")

    return parser


COMMANDS = {
    "compress": cmd_compress,
    "fingerprint": cmd_fingerprint,
    "plan": cmd_plan,
    "review": cmd_review,
}


def main(argv: Optional[Sequence[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.log_file)

    try:
        settings = load_settings(args.config)
        sys.exit(COMMANDS[args.command](args, settings))
    except KeyboardInterrupt:
        logger.info("\nInterrupted by user")
        sys.exit(130)
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        sys.exit(2)
    except (ValidationError, ValueError) as e:
        logger.error(f"Invalid input: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
