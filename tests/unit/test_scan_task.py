"""Unit tests for scan task wiring."""

from app.config import Settings
from app.config.engine import EngineConfig
from app.services.emission import EmissionController
from app.tasks.scan import build_scan_pipeline


class FakeRedis:
    pass


class TestBuildScanPipeline:
    """Test the pipeline the scheduled scan runs with."""

    def test_feed_cache_uses_configured_ttls(self):
        settings = Settings(stats_ttl_seconds=45, odds_ttl_seconds=90)
        client = FakeRedis()

        pipeline = build_scan_pipeline(
            EngineConfig(), settings, EmissionController(), client
        )

        assert pipeline.feed_cache.redis is client
        assert pipeline.feed_cache.stats_ttl == 45
        assert pipeline.feed_cache.odds_ttl == 90

    def test_cycle_limits_from_settings(self):
        settings = Settings(scan_max_fixtures=12, fetch_timeout_seconds=4.0)
        emission = EmissionController()

        pipeline = build_scan_pipeline(EngineConfig(), settings, emission)

        assert pipeline.max_fixtures == 12
        assert pipeline.fetch_timeout == 4.0
        assert pipeline.emission is emission
