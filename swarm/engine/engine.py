from __future__ import annotations

import logging
from dataclasses import dataclass

from swarm.common.config import GameRules
from swarm.common.types import Phase
from swarm.engine.commands import CommandValidator
from swarm.engine.opponent import ScriptedOpponent
from swarm.engine.state import WorldState

logger = logging.getLogger(__name__)

# Transit progress is rounded to this many places so a whole number of
# steps lands on exactly 1.0.
PROGRESS_PRECISION = 9


@dataclass
class TickResult:
    tick: int
    winner: str | None = None
    arrivals: int = 0


class TickEngine:
    """Authoritative fixed-step simulation over a single world."""

    def __init__(
        self,
        rules: GameRules | None = None,
        validator: CommandValidator | None = None,
        opponent: ScriptedOpponent | None = None,
    ) -> None:
        self.rules = rules or GameRules()
        self.validator = validator or CommandValidator(self.rules)
        self.opponent = opponent or ScriptedOpponent(self.validator, self.rules)

    def tick_once(self, world: WorldState) -> TickResult | None:
        """Advance the world by one tick; returns None outside an active game."""
        if world.phase is not Phase.ACTIVE:
            return None
        world.tick += 1
        # Step 1: production
        self._produce(world)
        # Step 2: scripted opponent at human-scale cadence
        if world.tick % self.rules.bot_interval_ticks == 0:
            self.opponent.decide(world)
        # Step 3: transit
        arrivals = self._advance_transit(world)
        # Step 4: combat and conquest
        self._resolve_combat(world)
        # Step 5: win check after the grace period
        winner = None
        if world.tick > self.rules.win_grace_ticks:
            winner = self._find_winner(world)
        return TickResult(tick=world.tick, winner=winner, arrivals=arrivals)

    def _produce(self, world: WorldState) -> None:
        for node in world.nodes:
            if node.owner is None:
                continue
            faction = world.factions.get(node.owner)
            if faction is None:
                continue
            rate = (
                self.rules.home_production
                if node.home_of == node.owner
                else self.rules.base_production
            )
            node.stock[node.owner] = node.stock_of(node.owner) + rate
            faction.fuel += self.rules.fuel_rate * (node.radius / self.rules.fuel_radius_unit)

    def _advance_transit(self, world: WorldState) -> int:
        arrivals = 0
        in_flight = []
        for order in world.transit_orders:
            order.progress = round(order.progress + self.rules.transit_step, PROGRESS_PRECISION)
            if order.progress < 1:
                in_flight.append(order)
                continue
            dest = world.node(order.dest_id)
            if dest is None:
                logger.warning("Dropping transit order %s to missing node %s", order.order_id, order.dest_id)
                continue
            dest.stock[order.owner] = dest.stock_of(order.owner) + order.count
            arrivals += 1
        world.transit_orders = in_flight
        return arrivals

    def _resolve_combat(self, world: WorldState) -> None:
        for node in world.nodes:
            present = node.present_factions()
            if len(present) > 1:
                for fid in present:
                    node.stock[fid] = max(0.0, node.stock[fid] - self.rules.attrition)
                # Fractional remnants do not survive a contested tick.
                for fid, units in node.stock.items():
                    if units < 1:
                        node.stock[fid] = 0.0
            elif len(present) == 1:
                node.owner = present[0]

    def _find_winner(self, world: WorldState) -> str | None:
        remaining: set[str] = set()
        for node in world.nodes:
            if node.owner:
                remaining.add(node.owner)
            remaining.update(node.present_factions())
        remaining.update(order.owner for order in world.transit_orders)
        if len(remaining) == 1:
            return next(iter(remaining))
        return None
