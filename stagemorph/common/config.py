from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


DEFAULT_TOKEN_NAME = "Morph Token"
DEFAULT_TOKEN_SYMBOL = "MORPH"
DEFAULT_FEE_RATE_BPS = 0
DEFAULT_INITIAL_SUPPLY = 0

# When mounted as a ConfigMap volume, each key becomes a file.
CONFIG_DIR_ENV = "STAGEMORPH_CONFIG_DIR"
DEFAULT_CONFIG_DIR = "/etc/stagemorph"


class EngineSettings(BaseModel):
    """
    Construction-time parameters for a MorphEngine.

    The fee ceiling (1000 bps) is enforced by the engine itself so a bad value
    surfaces as the same InvalidParameter an administrator would see.
    """

    token_name: str = Field(default=DEFAULT_TOKEN_NAME, min_length=1, description="Label of stage 0.")
    token_symbol: str = Field(default=DEFAULT_TOKEN_SYMBOL, min_length=1, description="Symbol of stage 0.")
    fee_rate_bps: int = Field(default=DEFAULT_FEE_RATE_BPS, ge=0, description="Conversion fee in basis points.")
    initial_supply: int = Field(default=DEFAULT_INITIAL_SUPPLY, ge=0, description="Minted to the administrator.")
    log_level: str = Field(default="INFO")
    service_name: str = Field(default="stagemorph")


def _read_text_file(path: str) -> Optional[str]:
    try:
        p = Path(path)
        if not p.exists():
            return None
        return p.read_text(encoding="utf-8").strip()
    except OSError:
        return None


def _get_config_value(key: str) -> Optional[str]:
    """
    Source order (prefer ConfigMap-style volume, then env):
    - $STAGEMORPH_CONFIG_DIR/<KEY> (default /etc/stagemorph)
    - environment variable <KEY>
    """
    config_dir = str(os.getenv(CONFIG_DIR_ENV) or DEFAULT_CONFIG_DIR).strip() or DEFAULT_CONFIG_DIR
    file_val = _read_text_file(str(Path(config_dir) / key))
    if file_val is not None and file_val != "":
        return file_val
    env_val = os.getenv(key)
    if env_val is None:
        return None
    env_val = str(env_val).strip()
    return env_val if env_val != "" else None


def _load_int(key: str, default: int) -> int:
    """
    Non-negative integer setting.

    SAFE DEFAULT: `default` if missing/unparseable/negative.
    """
    raw = _get_config_value(key)
    if raw is None:
        return int(default)
    try:
        n = int(str(raw).strip())
    except ValueError:
        return int(default)
    if n < 0:
        return int(default)
    return n


def _load_str(key: str, default: str) -> str:
    raw = _get_config_value(key)
    return raw if raw else default


def load_engine_settings() -> EngineSettings:
    return EngineSettings(
        token_name=_load_str("STAGEMORPH_TOKEN_NAME", DEFAULT_TOKEN_NAME),
        token_symbol=_load_str("STAGEMORPH_TOKEN_SYMBOL", DEFAULT_TOKEN_SYMBOL),
        fee_rate_bps=_load_int("STAGEMORPH_FEE_RATE_BPS", DEFAULT_FEE_RATE_BPS),
        initial_supply=_load_int("STAGEMORPH_INITIAL_SUPPLY", DEFAULT_INITIAL_SUPPLY),
        log_level=_load_str("LOG_LEVEL", "INFO").upper(),
        service_name=_load_str("SERVICE_NAME", "stagemorph"),
    )


__all__ = ["EngineSettings", "load_engine_settings"]
