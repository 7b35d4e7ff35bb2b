from __future__ import annotations

import logging
import math

from swarm.common.config import GameRules
from swarm.common.types import Phase
from swarm.engine.commands import CommandValidator
from swarm.engine.state import Node, WorldState

logger = logging.getLogger(__name__)


def _distance(a: Node, b: Node) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


class ScriptedOpponent:
    """Greedy bot that issues the same intents a human would.

    Each decision may buy once and launch at most one attack: the nearest
    node it does not own, when the attacking stack beats the defenders
    by a safety margin.
    """

    def __init__(self, validator: CommandValidator, rules: GameRules | None = None) -> None:
        self.validator = validator
        self.rules = rules or validator.rules

    def decide(self, world: WorldState) -> None:
        bot = world.bot()
        if bot is None or world.phase is not Phase.ACTIVE:
            return
        bot_id = bot.faction_id
        owned = world.owned_by(bot_id)

        if bot.fuel >= self.rules.buy_cost and owned:
            best = owned[0]
            for node in owned[1:]:
                if node.stock_of(bot_id) >= best.stock_of(bot_id):
                    best = node
            self.validator.buy_units(world, bot_id, best.node_id)

        for node in owned:
            units = math.floor(node.stock_of(bot_id))
            if units < self.rules.bot_min_attack:
                continue
            targets = [t for t in world.nodes if t.node_id != node.node_id and t.owner != bot_id]
            if not targets:
                continue
            target = min(targets, key=lambda t: _distance(node, t))
            defense = sum(count for fid, count in target.stock.items() if fid != bot_id)
            if units > defense + self.rules.bot_margin:
                order = self.validator.send_fleet(
                    world, bot_id, node.node_id, target.node_id, self.rules.bot_send_fraction
                )
                if order is not None:
                    logger.debug(
                        "Bot attacks node %s from %s with %s", target.node_id, node.node_id, order.count
                    )
                break
