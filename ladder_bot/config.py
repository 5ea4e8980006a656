from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .exceptions import ConfigError
from .models import StrategyConfig


def normalize_pair(pair: str) -> str:
    return pair.strip().replace("_", "/").upper()


def _number(raw: dict[str, Any], key: str) -> float:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    return float(value)


def parse_config(raw: dict[str, Any]) -> StrategyConfig:
    if not isinstance(raw, dict):
        raise ConfigError("Config must be a JSON object")

    pair = raw.get("pair")
    if not isinstance(pair, str) or not pair.strip():
        raise ConfigError("'pair' must be a non-empty string such as 'ETH/USDT'")
    pair = normalize_pair(pair)
    parts = pair.split("/")
    if len(parts) != 2 or not all(parts):
        raise ConfigError(f"'pair' must look like BASE/QUOTE, got {pair!r}")

    start_amount = _number(raw, "startAmount")
    if start_amount <= 0:
        raise ConfigError("'startAmount' must be positive")

    start_price_percent = _number(raw, "startPricePercent")

    dca = raw.get("dca")
    if not isinstance(dca, list):
        raise ConfigError("'dca' must be a list of percentages")
    steps = []
    for index, step in enumerate(dca):
        if isinstance(step, bool) or not isinstance(step, (int, float)) or step <= 0:
            raise ConfigError(f"'dca[{index}]' must be a positive number, got {step!r}")
        steps.append(float(step))

    profit = _number(raw, "profit")
    if not 0 < profit < 100:
        raise ConfigError("'profit' must be between 0 and 100")

    seconds_to_keep_dca = raw.get("secondsToKeepDCA")
    if isinstance(seconds_to_keep_dca, bool) or not isinstance(seconds_to_keep_dca, int):
        raise ConfigError("'secondsToKeepDCA' must be an integer (-1 disables it)")
    if seconds_to_keep_dca < -1:
        raise ConfigError("'secondsToKeepDCA' must be -1 or greater")

    live = raw.get("live")
    if not isinstance(live, bool):
        raise ConfigError("'live' must be true or false")

    poll_seconds = _number(raw, "pollSeconds") if "pollSeconds" in raw else 3.0
    if poll_seconds < 0:
        raise ConfigError("'pollSeconds' must not be negative")

    state_file = raw.get("stateFile", "data/db.json")
    if not isinstance(state_file, str) or not state_file:
        raise ConfigError("'stateFile' must be a path")

    return StrategyConfig(
        pair=pair,
        start_amount=start_amount,
        start_price_percent=start_price_percent,
        dca=tuple(steps),
        profit=profit,
        seconds_to_keep_dca=seconds_to_keep_dca,
        live=live,
        poll_seconds=poll_seconds,
        state_file=state_file,
    )


def load_config(path: str) -> StrategyConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file {config_path} not found")
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {exc}") from exc
    return parse_config(raw)
