"""Feature extraction module for LiveEdge."""

from app.services.features.extractor import (
    FeatureExtractionError,
    MatchOdds,
    MatchSnapshot,
    MetricsRecord,
    StatKey,
    TeamStats,
    extract_metrics,
    parse_stat_value,
)

__all__ = [
    "FeatureExtractionError",
    "MatchOdds",
    "MatchSnapshot",
    "MetricsRecord",
    "StatKey",
    "TeamStats",
    "extract_metrics",
    "parse_stat_value",
]
