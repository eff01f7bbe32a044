"""Matching settings: loads weights and thresholds from YAML, validates, caches."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from thread_matcher.config import MATCHING_CONFIG_PATH
from thread_matcher.errors import MatchingConfigError
from thread_matcher.utils.logger import get_logger

logger = get_logger("thread_matcher.matching.settings")


class ScoringWeights(BaseModel):
    """Per-signal weights for the confidence scorer."""

    email_match: float = Field(0.4, ge=0, le=1)
    order_in_subject: float = Field(0.4, ge=0, le=1)
    order_in_body: float = Field(0.3, ge=0, le=1)
    recency_bonus_max: float = Field(0.1, ge=0, le=1)
    recency_days: int = Field(30, gt=0)
    stale_penalty: float = Field(0.15, ge=0, le=1)
    stale_after_days: int = Field(120, gt=0)

    @model_validator(mode="after")
    def _stale_after_recent(self) -> "ScoringWeights":
        if self.stale_after_days <= self.recency_days:
            raise ValueError("stale_after_days must be greater than recency_days")
        return self


class MatchThresholds(BaseModel):
    """Score cut-offs for the match classifier."""

    auto_match: float = Field(0.7, ge=0, le=1)
    review: float = Field(0.3, ge=0, le=1)

    @model_validator(mode="after")
    def _ordered(self) -> "MatchThresholds":
        if not self.review < self.auto_match:
            raise ValueError(
                f"review threshold ({self.review}) must be below auto_match threshold ({self.auto_match})"
            )
        return self


class MatchingConfig(BaseModel):
    """Full matching config (weights + thresholds)."""

    weights: ScoringWeights = ScoringWeights()
    thresholds: MatchThresholds = MatchThresholds()


_config: MatchingConfig | None = None


def _get_config_path() -> Path:
    raw = os.environ.get("MATCHING_CONFIG_PATH", "").strip()
    if raw:
        return Path(raw)
    return MATCHING_CONFIG_PATH


def load_matching_config(path: Path | None = None) -> MatchingConfig:
    """Parse and validate a matching config file (no caching)."""
    path = path or _get_config_path()
    if not path.exists():
        raise MatchingConfigError(
            f"Matching config not found: {path}. Set MATCHING_CONFIG_PATH or create config/matching.yaml."
        )
    try:
        raw: Any = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise MatchingConfigError(f"Invalid YAML in matching config {path}: {e}") from e
    if not isinstance(raw, dict):
        raise MatchingConfigError(f"Matching config must be a YAML object (dict), got {type(raw)}")
    try:
        config = MatchingConfig.model_validate(raw)
    except ValidationError as e:
        raise MatchingConfigError(f"Invalid matching config {path}: {e}") from e
    logger.info(
        "matching_settings.loaded",
        path=str(path),
        auto_match=config.thresholds.auto_match,
        review=config.thresholds.review,
    )
    return config


def get_matching_config() -> MatchingConfig:
    """Return the cached matching config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_matching_config()
    return _config


def reload_matching_config() -> MatchingConfig:
    """Force-reload config from disk (hot-reload via API).

    Raises MatchingConfigError and keeps the current config if the file is invalid.
    """
    global _config
    _config = load_matching_config()
    return _config
