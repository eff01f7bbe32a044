"""Scoring, classification, and search strategies."""

from thread_matcher.matching.classifier import classify, confidence_rank, to_discovery_status
from thread_matcher.matching.scoring import score_candidate, score_candidates
from thread_matcher.matching.settings import (
    MatchingConfig,
    MatchThresholds,
    ScoringWeights,
    get_matching_config,
    load_matching_config,
    reload_matching_config,
)
from thread_matcher.matching.strategies import (
    DEFAULT_STRATEGIES,
    SearchMethod,
    SearchRequest,
    Strategy,
    plan_searches,
)

__all__ = [
    "classify",
    "confidence_rank",
    "to_discovery_status",
    "score_candidate",
    "score_candidates",
    "MatchingConfig",
    "MatchThresholds",
    "ScoringWeights",
    "get_matching_config",
    "load_matching_config",
    "reload_matching_config",
    "DEFAULT_STRATEGIES",
    "SearchMethod",
    "SearchRequest",
    "Strategy",
    "plan_searches",
]
