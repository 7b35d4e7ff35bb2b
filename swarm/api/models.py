from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class InboundMessage(BaseModel):
    type: Literal["toggleReady", "sendFleet", "buyUnits", "kickFaction"]
    data: Any = None


class SendFleetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_node_id: int = Field(alias="fromNodeId")
    to_node_id: int = Field(alias="toNodeId")
    fraction: Optional[float] = None


class BuyUnitsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    node_id: int = Field(alias="nodeId")


class KickFactionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_id: str = Field(alias="targetId")


class HealthResponse(BaseModel):
    status: str
    phase: str
    factions: int


class StateResponse(BaseModel):
    phase: str
    tick: int
    nodes: List[dict]
    transitOrders: List[dict] = Field(default_factory=list)
    factions: Dict[str, dict] = Field(default_factory=dict)
