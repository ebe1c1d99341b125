"""Unit tests for engine configuration loading."""

from app.config.engine import EngineConfig, get_engine_config


class TestEngineConfig:
    """Test defaults and overrides."""

    def test_defaults(self):
        config = EngineConfig.from_dict(None)

        assert config.ev.min_edge == 0.02
        assert config.dedup.cooldown_minutes == 8.0
        assert config.risk.max_consecutive_losses == 4
        assert config.settlement.finished_statuses == ("FT", "AET", "PEN")

    def test_partial_override(self):
        config = EngineConfig.from_dict(
            {"risk": {"daily_loss_limit": -5}, "dedup": {"cooldown_minutes": "12"}}
        )

        assert config.risk.daily_loss_limit == -5.0
        assert config.risk.max_consecutive_losses == 4
        assert config.dedup.cooldown_minutes == 12.0

    def test_bad_value_ignored(self):
        config = EngineConfig.from_dict(
            {"risk": {"max_consecutive_losses": "many", "reduced_stake_scale": 0.25}}
        )

        assert config.risk.max_consecutive_losses == 4
        assert config.risk.reduced_stake_scale == 0.25

    def test_non_mapping_section_uses_defaults(self):
        config = EngineConfig.from_dict({"ev": [1, 2], "unknown": {"x": 1}})
        assert config.ev == EngineConfig().ev

    def test_tiers_sorted_descending(self):
        config = EngineConfig.from_dict(
            {
                "ev": {
                    "tiers": [
                        {"name": "C", "min_probability": 0.5},
                        {"name": "A", "min_probability": 0.65},
                    ]
                }
            }
        )
        assert [t.name for t in config.ev.tiers] == ["A", "C"]

    def test_shipped_defaults_load(self):
        config = get_engine_config()
        assert config.settlement.unpriced_price == 2.0
        assert [t.name for t in config.ev.tiers] == ["A", "B", "C"]
