"""Config loading for the quote poller."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import yaml

from quote_poller.data.yahoo_client import DEFAULT_BASE_URL


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""


@dataclass(frozen=True)
class PollerConfig:
    delay: int = 300
    symbols: Tuple[str, ...] = field(default_factory=tuple)
    csv_path: str = "out.csv"
    interval: str = "1d"
    range: str = "1mo"
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 10.0
    log_level: str = "INFO"


# YAML/CLI keys that differ from the dataclass field names.
_KEY_ALIASES = {"stocks": "symbols", "csv": "csv_path"}


def parse_symbols(value: Any) -> Tuple[str, ...]:
    """Accept a comma-delimited string or a list of symbols, keeping order."""

    if value is None:
        return ()
    if isinstance(value, str):
        if not value.strip():
            return ()
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise ConfigError(f"stocks must be a list or comma-delimited string, got {type(value).__name__}")

    symbols = []
    for item in items:
        symbol = str(item).strip()
        if not symbol:
            raise ConfigError(f"empty symbol in stocks list: {value!r}")
        symbols.append(symbol)
    return tuple(symbols)


def load_config(path: str | Path | None = None, overrides: Optional[Mapping[str, Any]] = None) -> PollerConfig:
    """Build a validated config from defaults, an optional YAML file, and overrides.

    ``path`` defaults to ``$CONFIG_PATH`` when set. Overrides with a value of
    ``None`` are ignored so argparse namespaces can be passed straight through.
    """

    raw: Dict[str, Any] = {}
    if path is None and os.getenv("CONFIG_PATH"):
        path = os.environ["CONFIG_PATH"]
    if path is not None:
        raw.update(_read_yaml(Path(path)))
    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    known = {f.name for f in fields(PollerConfig)}
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        name = _KEY_ALIASES.get(key, key)
        if name not in known:
            raise ConfigError(f"unknown config key: {key}")
        values[name] = value

    if "symbols" in values:
        values["symbols"] = parse_symbols(values["symbols"])
    return validate(replace(PollerConfig(), **values))


def validate(config: PollerConfig) -> PollerConfig:
    delay = config.delay
    if isinstance(delay, bool) or not isinstance(delay, int):
        raise ConfigError(f"delay must be an integer number of seconds, got {delay!r}")
    if delay < 0:
        raise ConfigError(f"delay must be non-negative, got {delay}")
    if not isinstance(config.csv_path, (str, Path)) or not str(config.csv_path).strip():
        raise ConfigError("csv output path must be non-empty")
    for name in ("interval", "range", "base_url", "log_level"):
        value = getattr(config, name)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"{name} must be a non-empty string, got {value!r}")
    if isinstance(config.timeout, bool):
        raise ConfigError(f"timeout must be a number, got {config.timeout!r}")
    try:
        timeout = float(config.timeout)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"timeout must be a number, got {config.timeout!r}") from exc
    if not timeout > 0:
        raise ConfigError(f"timeout must be positive, got {timeout}")
    return replace(config, csv_path=str(config.csv_path), timeout=timeout, log_level=config.log_level.upper())


def _read_yaml(path: Path) -> Dict[str, Any]:
    resolved = path.expanduser().resolve()
    if not resolved.exists():
        raise ConfigError(f"config file {resolved} not found")
    try:
        with resolved.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"config file {resolved} is not valid YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {resolved} must contain a mapping")
    return raw


__all__ = ["PollerConfig", "ConfigError", "load_config", "parse_symbols", "validate"]
