"""
CodeKarmic - Settings

Loads host-side settings from config.yaml plus CODEKARMIC_* environment
overrides, and wires a LargeFileProcessor from them. The compression engine
itself never reads configuration; it only receives these objects.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from .compression import LargeFileProcessor
from .prompts import get_prompt_templates
from .provider_adapter import ContentGenerator, LiteLLMContentGenerator
from .schemas import BatchingConfig, LargeFileOptions, LLMConfig, RetryPolicy


ENV_PREFIX = "CODEKARMIC_"


class KarmicSettings(BaseModel):
    """Everything the host needs to build a processor."""

    large_file: LargeFileOptions = Field(default_factory=LargeFileOptions)
    batching: BatchingConfig = Field(default_factory=BatchingConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    prompt_language: str = "ENGLISH"

    @field_validator("prompt_language")
    @classmethod
    def _known_prompt_language(cls, v: str) -> str:
        get_prompt_templates(v)
        return v.strip().upper()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# env var suffix -> (section, key, parser)
_ENV_OVERRIDES: Dict[str, tuple] = {
    "MODEL": ("llm", "model", str),
    "API_BASE": ("llm", "api_base", str),
    "PROMPT_LANGUAGE": (None, "prompt_language", str),
    "LARGE_FILE_ENABLED": ("large_file", "enabled", _as_bool),
    "SIZE_THRESHOLD": ("large_file", "size_threshold", int),
    "MAX_BATCH_TOKENS": ("batching", "max_batch_tokens", int),
    "MAX_CONCURRENCY": ("batching", "max_concurrency", int),
}


def load_config(config_path: str = "config.yaml") -> dict:
    """Load raw configuration from a YAML file ({} when missing or unreadable)."""
    config_file = Path(config_path)

    if not config_file.exists():
        logger.warning(f"Config file not found: {config_path}. Using defaults.")
        return {}

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config: {e}")
        return {}

    if not isinstance(config, dict):
        logger.error(f"Config root must be a mapping: {config_path}")
        return {}

    logger.info(f"Loaded configuration from: {config_path}")
    return config


def apply_env_overrides(config: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Overlay CODEKARMIC_* environment variables onto a raw config mapping."""
    environ = os.environ if environ is None else environ
    merged: Dict[str, Any] = {k: (dict(v) if isinstance(v, dict) else v) for k, v in config.items()}

    for suffix, (section, key, parse) in _ENV_OVERRIDES.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw is None or raw.strip() == "":
            continue
        value = parse(raw)
        if section is None:
            merged[key] = value
        else:
            # an empty YAML section loads as None
            if not isinstance(merged.get(section), dict):
                merged[section] = {}
            merged[section][key] = value
        logger.debug(f"Config override from {ENV_PREFIX + suffix}")

    return merged


def load_settings(config_path: str = "config.yaml", environ: Optional[Dict[str, str]] = None) -> KarmicSettings:
    """YAML + env -> validated settings. Invalid values raise pydantic.ValidationError."""
    raw = apply_env_overrides(load_config(config_path), environ)
    return KarmicSettings.model_validate(raw)


def build_processor(
    settings: Optional[KarmicSettings] = None,
    model: Optional[ContentGenerator] = None,
) -> LargeFileProcessor:
    """Wire a LargeFileProcessor; defaults to a LiteLLM-backed model."""
    settings = settings or KarmicSettings()
    prompts = get_prompt_templates(settings.prompt_language)

    if model is None:
        model = LiteLLMContentGenerator(
            config=settings.llm,
            retry=settings.retry,
            system_prompt=prompts.system_role,
        )

    return LargeFileProcessor(
        model=model,
        options=settings.large_file,
        batching=settings.batching,
        prompts=prompts,
        max_tokens=settings.llm.max_tokens,
        temperature=settings.llm.temperature,
    )
