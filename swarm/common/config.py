from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_bool(value: str, default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


def _parse_origins(value: str | None) -> list[str]:
    if not value:
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass(frozen=True)
class Settings:
    """Runtime settings loaded from environment variables."""

    tick_seconds: float = float(os.getenv("SWARM_TICK_SECONDS", "0.1"))
    max_players: int = int(os.getenv("SWARM_MAX_PLAYERS", "4"))
    enable_tick_loop: bool = _env_bool(os.getenv("SWARM_ENABLE_TICK_LOOP", "1"))
    cors_origins: list[str] = field(
        default_factory=lambda: _parse_origins(os.getenv("SWARM_CORS_ORIGINS"))
    )
    host: str = os.getenv("SWARM_HOST", "0.0.0.0")
    port: int = int(os.getenv("SWARM_PORT", "3000"))
    log_level: str = os.getenv("SWARM_LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class GameRules:
    """Balance constants for the simulation.

    Rates are per tick, not per second. Changing the tick period changes
    the pace of the game; nothing here is rescaled.
    """

    # Fraction of a node's stock sent when the client omits one.
    default_send_fraction: float = 0.5
    buy_cost: float = 50.0
    buy_reward: float = 20.0
    starting_units: float = 10.0
    starting_fuel: float = 100.0
    home_production: float = 0.15
    base_production: float = 0.05
    # Fuel per tick is fuel_rate * radius / fuel_radius_unit.
    fuel_rate: float = 0.1
    fuel_radius_unit: float = 30.0
    transit_step: float = 0.01
    attrition: float = 0.25
    bot_interval_ticks: int = 20
    bot_min_attack: int = 8
    bot_margin: float = 2.0
    bot_send_fraction: float = 0.5
    # No winner is declared until the tick counter exceeds this.
    win_grace_ticks: int = 30


settings = Settings()
