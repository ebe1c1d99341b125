"""Unit tests for the strategy catalogue and evaluator."""

import pytest

from app.services.features import MatchOdds
from app.services.signals import (
    STRATEGY_REGISTRY,
    MarketType,
    Selection,
    Signal,
    StrategyConfig,
    StrategyConfigSet,
    StrategyRuleEvaluator,
    get_strategy,
)

ATTACK_PARAMS = {
    "minute_min": 20,
    "minute_max": 85,
    "sot_diff_min": 3,
    "possession_diff_min": 5,
    "xg_diff_min": 0.3,
    "goal_deficit_max": 2,
}

DOMINANT = {"sot": 6, "shots": 10, "corners": 4, "possession": 60}
QUIET = {"sot": 1, "shots": 3, "corners": 1, "possession": 40}

HOME_FAVOURITE = MatchOdds(home=1.7, draw=3.6, away=5.0)
AWAY_FAVOURITE = MatchOdds(home=4.0, draw=3.5, away=1.9)


def config(strategy_id, **params):
    return StrategyConfig(strategy_id=strategy_id, label=strategy_id, params=params)


class TestRegistry:
    """Test strategy registration."""

    def test_all_strategies_registered(self):
        assert set(STRATEGY_REGISTRY) == {
            "attack_pressure",
            "one_side_attack",
            "anti_price",
            "favorite_comeback",
            "over75",
            "over_momentum",
            "live_xg",
            "trailing_handicap",
        }

    def test_get_unknown_strategy(self):
        assert get_strategy("nope") is None


class TestSignal:
    """Test signal construction invariants."""

    def test_total_goals_requires_line(self):
        with pytest.raises(ValueError):
            Signal("over75", "m1", Selection.OVER, MarketType.TOTAL_GOALS, 0.5)

    def test_head_to_head_rejects_line(self):
        with pytest.raises(ValueError):
            Signal("x", "m1", Selection.HOME, MarketType.HEAD_TO_HEAD, 0.5, line=0.5)

    def test_strength_bounded(self):
        with pytest.raises(ValueError):
            Signal("x", "m1", Selection.HOME, MarketType.HEAD_TO_HEAD, 1.5)


class TestAttackPressure:
    """Test the attack pressure strategy."""

    def setup_method(self):
        self.strategy = get_strategy("attack_pressure")
        self.config = config("attack_pressure", **ATTACK_PARAMS)

    def test_dominant_home_side_qualifies(self, make_metrics):
        metrics = make_metrics(minute=60, home=DOMINANT, away=QUIET)
        evaluation = self.strategy.evaluate(self.config, metrics)

        assert evaluation.qualified, evaluation.reasons
        assert evaluation.signal.selection == Selection.HOME
        assert evaluation.signal.market == MarketType.HEAD_TO_HEAD
        assert evaluation.signal.line is None
        assert 0.0 < evaluation.signal.strength <= 1.0

    def test_strength_uses_selected_side_only(self, make_metrics):
        home_view = self.strategy.evaluate(
            self.config, make_metrics(minute=60, home=DOMINANT, away=QUIET)
        )
        away_view = self.strategy.evaluate(
            self.config, make_metrics(minute=60, home=QUIET, away=DOMINANT)
        )

        assert away_view.signal.selection == Selection.AWAY
        assert away_view.signal.strength == home_view.signal.strength

    def test_rejection_lists_every_threshold(self, make_metrics):
        metrics = make_metrics(minute=88, home=QUIET, away=QUIET)
        evaluation = self.strategy.evaluate(self.config, metrics)

        assert not evaluation.qualified
        assert evaluation.signal is None
        assert len(evaluation.reasons) >= 3

    def test_fallback_without_stats_backs_favourite(self, make_metrics):
        metrics = make_metrics(minute=40, home_goals=0, away_goals=1)
        evaluation = self.strategy.evaluate(self.config, metrics, HOME_FAVOURITE)

        assert evaluation.qualified, evaluation.reasons
        assert evaluation.signal.fallback
        assert evaluation.signal.selection == Selection.HOME

    def test_fallback_too_early(self, make_metrics):
        metrics = make_metrics(minute=25)
        evaluation = self.strategy.evaluate(self.config, metrics, HOME_FAVOURITE)

        assert not evaluation.qualified
        assert any("fallback_minute_min" in r for r in evaluation.reasons)

    def test_fallback_minute_zero_is_honoured(self, make_metrics):
        cfg = config("attack_pressure", fallback_minute_min=0)
        evaluation = self.strategy.evaluate(cfg, make_metrics(minute=10), HOME_FAVOURITE)

        assert evaluation.qualified, evaluation.reasons
        assert evaluation.signal.fallback

    def test_no_stats_no_prices(self, make_metrics):
        evaluation = self.strategy.evaluate(self.config, make_metrics(minute=60))
        assert evaluation.reasons == ["no live stats and no market favourite"]


class TestPriceStrategies:
    """Test strategies that follow the market favourite."""

    def test_anti_price_rejects_leading_favourite(self, make_metrics):
        strategy = get_strategy("anti_price")
        cfg = config("anti_price", minute_min=30, minute_max=80, xg_total_min=0.8)
        metrics = make_metrics(minute=60, home_goals=1, away_goals=0, home=DOMINANT, away=QUIET)

        evaluation = strategy.evaluate(cfg, metrics, HOME_FAVOURITE)
        assert "favourite already ahead" in evaluation.reasons

    def test_anti_price_fallback_after_minute_50(self, make_metrics):
        strategy = get_strategy("anti_price")
        cfg = config("anti_price", minute_min=30, minute_max=80, fallback_minute_min=50)

        late = strategy.evaluate(cfg, make_metrics(minute=55), AWAY_FAVOURITE)
        early = strategy.evaluate(cfg, make_metrics(minute=45), AWAY_FAVOURITE)

        assert late.qualified
        assert late.signal.selection == Selection.AWAY
        assert late.signal.fallback
        assert not early.qualified

    def test_anti_price_fallback_minute_zero(self, make_metrics):
        strategy = get_strategy("anti_price")
        cfg = config("anti_price", fallback_minute_min=0)

        evaluation = strategy.evaluate(cfg, make_metrics(minute=10), AWAY_FAVOURITE)
        assert evaluation.qualified, evaluation.reasons

    def test_anti_price_needs_prices(self, make_metrics):
        strategy = get_strategy("anti_price")
        evaluation = strategy.evaluate(config("anti_price"), make_metrics(), None)
        assert evaluation.reasons == ["no market favourite"]

    def test_favorite_comeback(self, make_metrics):
        strategy = get_strategy("favorite_comeback")
        cfg = config("favorite_comeback", minute_min=55, minute_max=80, pressure_min=0.4)
        metrics = make_metrics(
            minute=60,
            home_goals=1,
            away_goals=0,
            away={"sot": 5, "shots": 9, "corners": 3},
        )

        evaluation = strategy.evaluate(cfg, metrics, AWAY_FAVOURITE)
        assert evaluation.qualified, evaluation.reasons
        assert evaluation.signal.selection == Selection.AWAY
        assert evaluation.signal.strength == pytest.approx(0.6)

    def test_favorite_comeback_requires_one_goal_deficit(self, make_metrics):
        strategy = get_strategy("favorite_comeback")
        metrics = make_metrics(minute=60, away={"sot": 5, "shots": 9, "corners": 3})
        evaluation = strategy.evaluate(config("favorite_comeback"), metrics, AWAY_FAVOURITE)
        assert evaluation.reasons == ["favourite goal diff 0 is not -1"]


class TestGoalStrategies:
    """Test total goals and next goal strategies."""

    def test_over75_line_is_next_half_goal(self, make_metrics):
        strategy = get_strategy("over75")
        cfg = config("over75", minute_min=72, minute_max=88, total_goals_max=2)

        evaluation = strategy.evaluate(cfg, make_metrics(minute=80, home_goals=1, away_goals=1))
        assert evaluation.qualified
        assert evaluation.signal.market == MarketType.TOTAL_GOALS
        assert evaluation.signal.selection == Selection.OVER
        assert evaluation.signal.line == 2.5

    def test_over75_rejects_high_scoring_game(self, make_metrics):
        strategy = get_strategy("over75")
        cfg = config("over75", minute_min=72, minute_max=88, total_goals_max=2)

        evaluation = strategy.evaluate(cfg, make_metrics(minute=80, home_goals=2, away_goals=1))
        assert evaluation.reasons == ["total goals 3 above total_goals_max 2"]

    def test_live_xg_any_next_goal(self, make_metrics):
        strategy = get_strategy("live_xg")
        cfg = config("live_xg", minute_min=35, minute_max=82, xg_total_min=1.0)
        metrics = make_metrics(
            minute=50,
            home={"sot": 6, "shots": 10},
            away={"sot": 3, "shots": 5},
        )

        evaluation = strategy.evaluate(cfg, metrics)
        assert evaluation.qualified, evaluation.reasons
        assert evaluation.signal.market == MarketType.NEXT_GOAL
        assert evaluation.signal.selection == Selection.ANY
        assert evaluation.signal.line is None
        assert evaluation.signal.strength == pytest.approx(0.54)


class TestTrailingHandicap:
    """Test the trailing-side handicap strategy."""

    def setup_method(self):
        self.strategy = get_strategy("trailing_handicap")
        self.config = config(
            "trailing_handicap",
            minute_min=30,
            minute_max=75,
            goal_deficit_max=1,
            pressure_min=0.5,
            line_offset=0.25,
        )

    def test_trailing_side_out_pressing(self, make_metrics):
        metrics = make_metrics(
            minute=60,
            home_goals=0,
            away_goals=1,
            home={"sot": 6, "shots": 10, "corners": 4},
            away={"sot": 1, "shots": 2},
        )
        evaluation = self.strategy.evaluate(self.config, metrics)

        assert evaluation.qualified, evaluation.reasons
        assert evaluation.signal.market == MarketType.ASIAN_HANDICAP
        assert evaluation.signal.selection == Selection.HOME
        assert evaluation.signal.line == 1.25
        assert evaluation.signal.strength == pytest.approx(0.72)

    def test_leader_out_pressing_rejected(self, make_metrics):
        metrics = make_metrics(
            minute=60,
            home_goals=0,
            away_goals=1,
            home={"sot": 1, "shots": 2},
            away={"sot": 6, "shots": 10, "corners": 4},
        )
        evaluation = self.strategy.evaluate(self.config, metrics)
        assert "trailing side is not out-pressing the leader" in evaluation.reasons

    def test_level_game_has_no_trailing_side(self, make_metrics):
        evaluation = self.strategy.evaluate(self.config, make_metrics(home=DOMINANT))
        assert evaluation.reasons == ["no trailing side"]


class TestStrategyRuleEvaluator:
    """Test running a configuration set."""

    def setup_method(self):
        self.evaluator = StrategyRuleEvaluator()

    def test_unknown_strategy_is_reported(self, make_metrics):
        config_set = StrategyConfigSet(strategies={"ghost": config("ghost")})
        results = self.evaluator.evaluate(config_set, make_metrics())

        assert len(results) == 1
        assert results[0].reasons == ["unknown strategy ghost"]

    def test_disabled_strategies_skipped(self, make_metrics):
        config_set = StrategyConfigSet(
            strategies={
                "over75": StrategyConfig("over75", enabled=False),
                "live_xg": config("live_xg"),
            }
        )
        results = self.evaluator.evaluate(config_set, make_metrics())
        assert [r.strategy_id for r in results] == ["live_xg"]

    def test_config_version_is_content_hash(self):
        a = StrategyConfigSet(strategies={"over75": config("over75", minute_min=72)})
        b = StrategyConfigSet(strategies={"over75": config("over75", minute_min=72)})
        c = StrategyConfigSet(strategies={"over75": config("over75", minute_min=70)})

        assert a.version == b.version
        assert a.version != c.version
