from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Phase(str, Enum):
    LOBBY = "lobby"
    ACTIVE = "active"


class CommandType(str, Enum):
    TOGGLE_READY = "toggleReady"
    SEND_FLEET = "sendFleet"
    BUY_UNITS = "buyUnits"
    KICK_FACTION = "kickFaction"


@dataclass(frozen=True)
class Command:
    cmd: CommandType
    from_node_id: int | None = None
    to_node_id: int | None = None
    fraction: float | None = None
    node_id: int | None = None
    target_id: str | None = None
