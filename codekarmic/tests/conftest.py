# Pytest configuration for CodeKarmic test suite
#
# Timeout strategy:
# - FAST tests: 10s (pure unit tests, no I/O)
# - MEDIUM tests: 30s (file I/O, async batches with fake models)

from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from codekarmic.modules.schemas import LargeFileRequest

# ---------------------------------------------------------------------------
# Timeout configuration by test file
# ---------------------------------------------------------------------------
# Maps test file patterns to timeout values (seconds)
# More specific patterns should come first

TIMEOUT_MAP = {
    # MEDIUM tests (30s) - async batches, file I/O
    "test_large_file_processor": 30,
    "test_karmic_cli": 30,
    "test_config": 15,

    # FAST tests (10s) - Pure unit tests
    "test_language_detector": 10,
    "test_importance_scorer": 10,
    "test_content_compressor": 10,
    "test_fingerprint": 10,
    "test_prompts": 5,
    "test_response_parser": 5,
    "test_provider_adapter": 10,
}


def pytest_collection_modifyitems(config, items):
    """Apply timeout markers based on test file names."""
    for item in items:
        test_file = item.fspath.basename if hasattr(item.fspath, 'basename') else str(item.fspath).split('/')[-1]
        test_name = test_file.replace('.py', '')

        timeout = 30  # default
        for pattern, t in TIMEOUT_MAP.items():
            if pattern in test_name:
                timeout = t
                break

        existing_timeout = item.get_closest_marker('timeout')
        if existing_timeout is None:
            item.add_marker(pytest.mark.timeout(timeout))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeModel:
    """
    ContentGenerator double.

    Returns ``response`` for every prompt, or raises for prompts that contain
    one of ``fail_on`` markers. Records every prompt it receives.
    """

    def __init__(self, response: str = "- Consider splitting this module", fail_on: Optional[List[str]] = None):
        self.response = response
        self.fail_on = fail_on or []
        self.prompts: List[str] = []
        self.calls: List[Dict[str, object]] = []

    async def generate_content(self, prompt, *, max_tokens=None, temperature=None) -> str:
        self.prompts.append(prompt)
        self.calls.append({"max_tokens": max_tokens, "temperature": temperature})
        for marker in self.fail_on:
            if marker in prompt:
                raise RuntimeError(f"model unavailable for {marker}")
        return self.response


@pytest.fixture
def fake_model() -> FakeModel:
    return FakeModel()


def make_source(lines: int = 2000, width: int = 40, name: str = "item") -> str:
    """Synthetic JavaScript-ish source of roughly ``lines * width`` characters."""
    out = ["import { helper } from './helper';", "export const VERSION = '1.0';"]
    for i in range(lines - 2):
        if i % 50 == 0:
            out.append(f"function {name}{i}(value) {{")
        elif i % 50 == 49:
            out.append(f"}} // end {name}{i - 49}")
        else:
            out.append(f"  const {name}_{i} = helper(value, {i});".ljust(width))
    return "\n".join(out)


def make_request(path: str, chars: int, marker: str = "") -> LargeFileRequest:
    """A request whose content is exactly ``chars`` characters long."""
    body = f"// {marker}\n" if marker else ""
    line = "  const value = compute(input, offset);\n"
    while len(body) < chars:
        body += line
    return LargeFileRequest(file_path=path, current_content=body[:chars])


@pytest.fixture
def model_factory():
    return FakeModel


@pytest.fixture
def request_factory():
    return make_request


@pytest.fixture
def source_factory():
    return make_source
