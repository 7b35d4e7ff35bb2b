from __future__ import annotations

import logging
import math

from swarm.common.config import GameRules
from swarm.common.types import Phase
from swarm.engine.state import HumanFaction, TransitOrder, WorldState

logger = logging.getLogger(__name__)


class CommandValidator:
    """Checks player intents and applies the accepted ones.

    Every operation validates fully before touching the world, so a
    rejected intent leaves no trace.
    """

    def __init__(self, rules: GameRules | None = None) -> None:
        self.rules = rules or GameRules()

    def send_fleet(
        self,
        world: WorldState,
        faction_id: str,
        from_node_id: int,
        to_node_id: int,
        fraction: float | None = None,
    ) -> TransitOrder | None:
        if world.phase is not Phase.ACTIVE:
            return None
        if faction_id not in world.factions:
            logger.debug("sendFleet from unknown faction %s", faction_id)
            return None
        source = world.node(from_node_id)
        if source is None or world.node(to_node_id) is None:
            logger.debug("sendFleet %s -> %s rejected: no such node", from_node_id, to_node_id)
            return None
        stock = source.stock_of(faction_id)
        if stock <= 0:
            return None
        if fraction is None:
            fraction = self.rules.default_send_fraction
        fraction = min(1.0, max(0.0, fraction))
        sent = math.floor(stock * fraction)
        if sent == 0 and stock >= 1:
            sent = 1
        if sent <= 0:
            return None
        source.stock[faction_id] = stock - sent
        order = TransitOrder(
            order_id=world.allocate_order_id(),
            owner=faction_id,
            source_id=source.node_id,
            dest_id=to_node_id,
            count=sent,
        )
        world.transit_orders.append(order)
        return order

    def buy_units(self, world: WorldState, faction_id: str, node_id: int) -> bool:
        if world.phase is not Phase.ACTIVE:
            return False
        faction = world.factions.get(faction_id)
        node = world.node(node_id)
        if faction is None or node is None:
            return False
        if node.owner != faction_id:
            return False
        if faction.fuel < self.rules.buy_cost:
            return False
        # A node under attack cannot be reinforced.
        if node.contested:
            logger.debug("buyUnits on contested node %s rejected", node_id)
            return False
        faction.fuel -= self.rules.buy_cost
        node.stock[faction_id] = node.stock_of(faction_id) + self.rules.buy_reward
        return True

    def toggle_ready(self, world: WorldState, faction_id: str) -> bool:
        if world.phase is not Phase.LOBBY:
            return False
        faction = world.factions.get(faction_id)
        if not isinstance(faction, HumanFaction):
            return False
        faction.ready = not faction.ready
        return True
