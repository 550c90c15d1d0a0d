from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Python <3.11
    import tomli as tomllib

from swap_ledger.reconstruct.costing import LIFETIME_AVERAGE, resolve_strategy
from swap_ledger.reconstruct.positions import DUST_THRESHOLD, SOL_MINT

CONFIG_ENV_VAR = "SWAP_LEDGER_CONFIG"


@dataclass(frozen=True)
class AppSettings:
    db_path: Path
    host: str
    port: int
    reload: bool


@dataclass(frozen=True)
class LedgerSettings:
    base_mint: str
    base_symbol: str
    base_decimals: int
    default_token_decimals: int
    dust_threshold: float
    costing: str
    strict_inventory: bool
    settled_statuses: tuple[str, ...]


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    ledger: LedgerSettings


def default_ledger_settings() -> LedgerSettings:
    return _ledger_settings({})


def load_app_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> AppConfig:
    environ = os.environ if env is None else env
    config_path = path or Path(environ.get(CONFIG_ENV_VAR) or "config/app.toml")
    raw: Mapping[str, Any] = {}
    if config_path.exists():
        raw = tomllib.loads(config_path.read_text(encoding="utf-8"))

    app_raw = _section(raw, "app")
    ledger_raw = _section(raw, "ledger")

    app = AppSettings(
        db_path=Path(app_raw.get("db_path", "data/swap_ledger.sqlite")),
        host=str(app_raw.get("host", "127.0.0.1")),
        port=int(app_raw.get("port", 8000)),
        reload=bool(app_raw.get("reload", False)),
    )

    return AppConfig(app=app, ledger=_ledger_settings(ledger_raw))


def _ledger_settings(ledger_raw: Mapping[str, Any]) -> LedgerSettings:
    costing = str(ledger_raw.get("costing", LIFETIME_AVERAGE))
    # Fail at load time rather than on the first report.
    costing = resolve_strategy(costing).name

    return LedgerSettings(
        base_mint=str(ledger_raw.get("base_mint", SOL_MINT)),
        base_symbol=str(ledger_raw.get("base_symbol", "SOL")),
        base_decimals=int(ledger_raw.get("base_decimals", 9)),
        default_token_decimals=int(ledger_raw.get("default_token_decimals", 6)),
        dust_threshold=float(ledger_raw.get("dust_threshold", DUST_THRESHOLD)),
        costing=costing,
        strict_inventory=bool(ledger_raw.get("strict_inventory", False)),
        settled_statuses=_status_tuple(ledger_raw.get("settled_statuses")) or ("CONFIRMED",),
    )


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if isinstance(value, Mapping):
        return value
    return {}


def _status_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return ()
    output: list[str] = []
    for item in value:
        cleaned = str(item).strip().upper()
        if cleaned:
            output.append(cleaned)
    return tuple(output)
