from __future__ import annotations

import logging
from typing import Iterable

from swarm.common.constants import DEFAULT_MAP
from swarm.engine.state import Node, WorldState

logger = logging.getLogger(__name__)


def build_nodes(layout: Iterable[tuple[float, float, float]] = DEFAULT_MAP) -> list[Node]:
    """Create unowned nodes from (x, y, radius) rows; ids follow row order."""
    return [
        Node(node_id=idx, x=float(x), y=float(y), radius=float(radius))
        for idx, (x, y, radius) in enumerate(layout)
    ]


def create_world(layout: Iterable[tuple[float, float, float]] = DEFAULT_MAP) -> WorldState:
    return WorldState(nodes=build_nodes(layout))


def grant_home(world: WorldState, faction_id: str, node_id: int, units: float) -> bool:
    """Give a faction a home node with its starting garrison."""
    node = world.node(node_id)
    if node is None:
        logger.warning("Home node %s does not exist", node_id)
        return False
    node.owner = faction_id
    node.stock[faction_id] = units
    node.home_of = faction_id
    return True


def release_nodes(world: WorldState, faction_id: str) -> int:
    """Clear every node owned by a faction; returns how many were cleared."""
    released = 0
    for node in world.nodes:
        if node.owner == faction_id:
            node.clear()
            released += 1
    return released


def clear_map(world: WorldState) -> None:
    """Drop all ownership, stock and transit orders."""
    for node in world.nodes:
        node.clear()
    world.transit_orders = []
    world.next_order_id = 0
