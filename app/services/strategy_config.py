"""Strategy configuration loading.

Strategies are configured in a YAML file keyed by strategy id:

    attack_pressure:
      label: Attack Pressure
      enabled: true
      params:
        minute_min: 20

The file is re-read at the start of every cycle, so edits apply on the
next cycle without a restart.
"""

import os
import tempfile
from pathlib import Path
from typing import Any, Mapping

import structlog
import yaml

from app.config import get_settings
from app.services.signals.models import StrategyConfig, StrategyConfigSet

logger = structlog.get_logger(__name__)


class StrategyConfigError(Exception):
    """Raised when the strategy configuration cannot be read or parsed."""


def parse_strategy_configs(data: Any) -> StrategyConfigSet:
    """
    Build a StrategyConfigSet from a parsed YAML document.

    Malformed individual entries are skipped with a warning, and a
    non-boolean ``enabled`` disables the strategy. A document that is not a
    mapping raises StrategyConfigError.
    """
    if data is None:
        return StrategyConfigSet()
    if not isinstance(data, Mapping):
        raise StrategyConfigError("strategy configuration must be a mapping of id -> entry")

    strategies: dict[str, StrategyConfig] = {}
    for strategy_id, entry in data.items():
        if not isinstance(entry, Mapping):
            logger.warning("strategy_config_entry_ignored", strategy_id=strategy_id)
            continue
        params = entry.get("params") or {}
        if not isinstance(params, Mapping):
            logger.warning(
                "strategy_config_params_ignored",
                strategy_id=strategy_id,
                params=repr(params),
            )
            params = {}
        enabled = entry.get("enabled", True)
        if not isinstance(enabled, bool):
            # Only a real YAML boolean enables a strategy
            logger.warning(
                "strategy_config_value_ignored",
                strategy_id=strategy_id,
                key="enabled",
                value=repr(enabled),
            )
            enabled = False
        strategies[str(strategy_id)] = StrategyConfig(
            strategy_id=str(strategy_id),
            label=str(entry.get("label") or strategy_id),
            enabled=enabled,
            params=dict(params),
        )
    return StrategyConfigSet(strategies=strategies)


def load_strategy_configs(path: Path | None = None) -> StrategyConfigSet:
    """
    Load the strategy configuration file.

    Raises:
        StrategyConfigError: If the file is missing, unreadable or not valid YAML
    """
    path = Path(path or get_settings().strategies_path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise StrategyConfigError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise StrategyConfigError(f"invalid YAML in {path}: {e}") from e
    return parse_strategy_configs(data)


def load_strategy_configs_or_empty(path: Path | None = None) -> StrategyConfigSet:
    """Load the configuration, falling back to an empty set on error."""
    try:
        config_set = load_strategy_configs(path)
    except StrategyConfigError as e:
        logger.error("strategy_config_load_failed", error=str(e))
        return StrategyConfigSet()
    logger.debug(
        "strategy_config_loaded",
        version=config_set.version,
        enabled=len(config_set.enabled()),
    )
    return config_set


def config_set_to_dict(config_set: StrategyConfigSet) -> dict[str, Any]:
    return {
        sid: {"label": c.label, "enabled": c.enabled, "params": dict(c.params)}
        for sid, c in config_set.strategies.items()
    }


def save_strategy_configs(data: Any, path: Path | None = None) -> StrategyConfigSet:
    """
    Replace the strategy configuration file.

    The document is validated first and written atomically, so a reader
    never sees a half-written file.

    Raises:
        StrategyConfigError: If the document is invalid or cannot be written
    """
    config_set = parse_strategy_configs(data)
    path = Path(path or get_settings().strategies_path)

    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".strategies-", suffix=".yaml")
        with os.fdopen(fd, "w") as f:
            yaml.safe_dump(config_set_to_dict(config_set), f, sort_keys=False)
        os.replace(tmp_path, path)
    except (OSError, yaml.YAMLError) as e:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise StrategyConfigError(f"cannot write {path}: {e}") from e

    logger.info(
        "strategy_config_saved",
        path=str(path),
        version=config_set.version,
        strategies=len(config_set.strategies),
    )
    return config_set
