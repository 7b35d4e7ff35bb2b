from __future__ import annotations

import logging
from typing import Iterable

from swarm.common.config import GameRules
from swarm.common.constants import (
    BOT_COLOR,
    BOT_HOME_NODE,
    BOT_ID,
    PLAYER_COLORS,
    SEAT_HOME_NODES,
)
from swarm.common.types import Command, CommandType, Phase
from swarm.engine.commands import CommandValidator
from swarm.engine.engine import TickEngine
from swarm.engine.opponent import ScriptedOpponent
from swarm.engine.state import BotFaction, HumanFaction, WorldState
from swarm.engine.world import clear_map, create_world, grant_home, release_nodes
from swarm.sync.base import Broadcaster
from swarm.sync.snapshot import render_faction, render_factions, render_init, render_state

logger = logging.getLogger(__name__)

SERVER_FULL_MESSAGE = "Server is full!"
KICKED_MESSAGE = "You were kicked."


class GameSession:
    """Lobby/game lifecycle around one world, and the only writer to it."""

    def __init__(
        self,
        broadcaster: Broadcaster,
        rules: GameRules | None = None,
        max_players: int = 4,
        world: WorldState | None = None,
    ) -> None:
        self.broadcaster = broadcaster
        self.rules = rules or GameRules()
        self.max_players = max_players
        self.world = world or create_world()
        self.validator = CommandValidator(self.rules)
        self.opponent = ScriptedOpponent(self.validator, self.rules)
        self.engine = TickEngine(self.rules, self.validator, self.opponent)

    # Roster

    def join(self, peer_id: str) -> HumanFaction | None:
        """Seat a new human faction; rejects the peer when every seat is taken."""
        world = self.world
        humans = world.humans()
        if len(humans) >= self.max_players:
            logger.info("Rejecting %s: server full", peer_id)
            self.broadcaster.send(peer_id, "errorMsg", SERVER_FULL_MESSAGE)
            self.broadcaster.disconnect(peer_id)
            return None
        taken = {h.seat for h in humans}
        seat = next(s for s in range(self.max_players) if s not in taken)
        faction = HumanFaction(
            faction_id=peer_id,
            color=PLAYER_COLORS[seat % len(PLAYER_COLORS)],
            fuel=self.rules.starting_fuel,
            seat=seat,
        )
        world.factions[peer_id] = faction
        self._grant_seat_home(faction)
        logger.info("Faction %s joined in seat %s", peer_id, seat)

        # The joiner learns about a fresh bot from its init snapshot.
        self._maybe_spawn_bot(exclude=(peer_id,))

        self.broadcaster.send(peer_id, "init", render_init(world, peer_id))
        self.broadcaster.broadcast("factionJoined", render_faction(faction), exclude=(peer_id,))
        self.broadcaster.broadcast("factionsUpdate", render_factions(world))
        return faction

    def leave(self, peer_id: str) -> None:
        """Handle a disconnect; unknown ids are ignored."""
        world = self.world
        faction = world.factions.pop(peer_id, None)
        if faction is None:
            return
        if world.phase is Phase.LOBBY:
            release_nodes(world, peer_id)
        logger.info("Faction %s left during %s", peer_id, world.phase.value)
        self.broadcaster.broadcast("factionLeft", peer_id)
        self.broadcaster.broadcast("factionsUpdate", render_factions(world))

        if not world.humans():
            self.remove_bot()
            if world.phase is not Phase.LOBBY:
                logger.info("No humans left, abandoning game")
            world.phase = Phase.LOBBY
            clear_map(world)
            return
        if world.phase is Phase.LOBBY:
            self._maybe_spawn_bot()
            self.check_game_start()

    def kick(self, requester_id: str, target_id: str) -> None:
        world = self.world
        if world.phase is not Phase.LOBBY or requester_id not in world.factions:
            return
        if target_id == BOT_ID:
            self.remove_bot()
            return
        if not isinstance(world.factions.get(target_id), HumanFaction):
            return
        logger.info("Faction %s kicked by %s", target_id, requester_id)
        self.broadcaster.send(target_id, "errorMsg", KICKED_MESSAGE)
        self.broadcaster.disconnect(target_id)
        self.leave(target_id)

    def spawn_bot(self, exclude: Iterable[str] = ()) -> BotFaction | None:
        world = self.world
        if world.bot() is not None:
            return None
        home = world.node(BOT_HOME_NODE)
        if home is None or home.owner is not None:
            return None
        bot = BotFaction(faction_id=BOT_ID, color=BOT_COLOR, fuel=self.rules.starting_fuel)
        world.factions[BOT_ID] = bot
        grant_home(world, BOT_ID, BOT_HOME_NODE, self.rules.starting_units)
        logger.info("Scripted opponent spawned on node %s", BOT_HOME_NODE)
        self.broadcaster.broadcast("factionJoined", render_faction(bot), exclude=exclude)
        self.broadcaster.broadcast("factionsUpdate", render_factions(world), exclude=exclude)
        return bot

    def remove_bot(self) -> None:
        world = self.world
        if world.factions.pop(BOT_ID, None) is None:
            return
        home = world.node(BOT_HOME_NODE)
        if home is not None and home.owner == BOT_ID:
            home.clear()
        logger.info("Scripted opponent removed")
        self.broadcaster.broadcast("factionLeft", BOT_ID)
        self.broadcaster.broadcast("factionsUpdate", render_factions(world))

    # Commands

    def handle_command(self, peer_id: str, command: Command) -> None:
        if peer_id not in self.world.factions:
            return
        if command.cmd is CommandType.TOGGLE_READY:
            self.toggle_ready(peer_id)
        elif command.cmd is CommandType.SEND_FLEET:
            self.validator.send_fleet(
                self.world, peer_id, command.from_node_id, command.to_node_id, command.fraction
            )
        elif command.cmd is CommandType.BUY_UNITS:
            self.validator.buy_units(self.world, peer_id, command.node_id)
        elif command.cmd is CommandType.KICK_FACTION and command.target_id:
            self.kick(peer_id, command.target_id)

    def toggle_ready(self, peer_id: str) -> bool:
        if not self.validator.toggle_ready(self.world, peer_id):
            return False
        self.broadcaster.broadcast("factionsUpdate", render_factions(self.world))
        self.check_game_start()
        return True

    def check_game_start(self) -> bool:
        world = self.world
        if world.phase is not Phase.LOBBY or not world.factions:
            return False
        if not all(f.ready for f in world.factions.values()):
            return False
        world.phase = Phase.ACTIVE
        world.tick = 0
        logger.info("Game started with %s factions", len(world.factions))
        self.broadcaster.broadcast("gameStarted")
        return True

    # Simulation

    def tick(self) -> None:
        """One scheduled step: simulate, then publish the outcome."""
        result = self.engine.tick_once(self.world)
        if result is None:
            return
        if result.winner is not None:
            self._finish_game(result.winner)
            return
        self.broadcaster.broadcast("stateUpdate", render_state(self.world))

    def _finish_game(self, winner: str) -> None:
        world = self.world
        logger.info("Game over at tick %s, winner=%s", world.tick, winner)
        world.phase = Phase.LOBBY
        self.broadcaster.broadcast("gameOver", winner)
        clear_map(world)
        for faction in world.factions.values():
            faction.fuel = self.rules.starting_fuel
            # The bot cannot toggle, so it waits in the lobby already ready.
            faction.ready = isinstance(faction, BotFaction)
            if isinstance(faction, BotFaction):
                grant_home(world, faction.faction_id, BOT_HOME_NODE, self.rules.starting_units)
            else:
                self._grant_seat_home(faction)
        self.broadcaster.broadcast("stateUpdate", render_state(world))
        self.broadcaster.broadcast("factionsUpdate", render_factions(world))

    def _grant_seat_home(self, faction: HumanFaction) -> None:
        if faction.seat >= len(SEAT_HOME_NODES):
            return
        node_id = SEAT_HOME_NODES[faction.seat]
        node = self.world.node(node_id)
        if node is None or node.owner is not None:
            logger.info("Seat %s home node %s unavailable", faction.seat, node_id)
            return
        grant_home(self.world, faction.faction_id, node_id, self.rules.starting_units)

    def _maybe_spawn_bot(self, exclude: Iterable[str] = ()) -> None:
        if self.world.phase is Phase.LOBBY and len(self.world.humans()) == 1:
            self.spawn_bot(exclude=exclude)
