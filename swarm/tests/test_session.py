import pytest

from swarm.common.constants import BOT_ID, PLAYER_COLORS
from swarm.common.types import Command, CommandType, Phase
from swarm.engine.session import GameSession
from swarm.engine.state import TransitOrder
from swarm.sync.base import Broadcaster


class RecordingBroadcaster(Broadcaster):
    def __init__(self) -> None:
        self.sent = []
        self.broadcasts = []
        self.disconnected = []

    def send(self, peer_id, kind, data=None):
        self.sent.append((peer_id, kind, data))

    def broadcast(self, kind, data=None, exclude=()):
        self.broadcasts.append((kind, data, tuple(exclude)))

    def disconnect(self, peer_id):
        self.disconnected.append(peer_id)

    def kinds(self):
        return [kind for kind, _, _ in self.broadcasts]


def _make_session(**kwargs):
    out = RecordingBroadcaster()
    return GameSession(out, **kwargs), out


def test_first_join_seats_player_and_spawns_bot():
    session, out = _make_session()
    faction = session.join("a")
    world = session.world

    assert faction.seat == 0
    assert faction.color == PLAYER_COLORS[0]
    assert faction.fuel == 100.0
    assert world.nodes[0].owner == "a"
    assert world.nodes[0].stock["a"] == 10.0
    assert world.nodes[0].home_of == "a"

    assert BOT_ID in world.factions
    assert world.factions[BOT_ID].ready
    assert world.nodes[4].owner == BOT_ID
    assert world.nodes[4].home_of == BOT_ID

    peer, kind, init = out.sent[0]
    assert (peer, kind) == ("a", "init")
    assert init["selfId"] == "a"
    assert init["phase"] == "lobby"
    assert set(init["factions"]) == {"a", BOT_ID}
    assert len(init["nodes"]) == 15
    assert "factionsUpdate" in out.kinds()


def test_second_join_takes_next_seat():
    session, out = _make_session()
    session.join("a")
    faction = session.join("b")
    assert faction.seat == 1
    assert faction.color == PLAYER_COLORS[1]
    assert session.world.nodes[1].owner == "b"
    joined = [b for b in out.broadcasts if b[0] == "factionJoined" and b[1]["id"] == "b"]
    assert joined and joined[0][2] == ("b",)


def test_server_full_rejects_fifth_human():
    session, out = _make_session()
    for peer in ("a", "b", "c", "d"):
        assert session.join(peer) is not None
    assert session.join("e") is None
    assert ("e", "errorMsg", "Server is full!") in out.sent
    assert out.disconnected == ["e"]
    assert "e" not in session.world.factions


def test_freed_seat_is_reused():
    session, _ = _make_session()
    session.join("a")
    session.join("b")
    session.leave("a")
    faction = session.join("c")
    assert faction.seat == 0
    assert session.world.nodes[0].owner == "c"


def test_leave_in_lobby_releases_nodes():
    session, out = _make_session()
    session.join("a")
    session.join("b")
    session.leave("b")
    assert "b" not in session.world.factions
    assert session.world.nodes[1].owner is None
    assert session.world.nodes[1].stock == {}
    assert ("factionLeft", "b", ()) in out.broadcasts


def test_leave_unknown_peer_is_noop():
    session, out = _make_session()
    session.join("a")
    count = len(out.broadcasts)
    session.leave("nobody")
    assert len(out.broadcasts) == count


def test_leave_during_game_keeps_assets():
    session, _ = _make_session()
    session.join("a")
    session.join("b")
    session.toggle_ready("a")
    session.toggle_ready("b")
    assert session.world.phase is Phase.ACTIVE

    session.leave("b")
    node = session.world.nodes[1]
    assert node.owner == "b"
    assert node.stock["b"] == 10.0

    session.tick()
    # no production for a faction that is gone
    assert node.stock["b"] == 10.0


def test_last_human_leaving_resets_everything():
    session, out = _make_session()
    session.join("a")
    session.toggle_ready("a")
    assert session.world.phase is Phase.ACTIVE
    session.world.transit_orders.append(
        TransitOrder(order_id=0, owner="a", source_id=0, dest_id=5, count=5)
    )

    session.leave("a")
    world = session.world
    assert world.phase is Phase.LOBBY
    assert world.factions == {}
    assert world.transit_orders == []
    assert all(n.owner is None and n.stock == {} for n in world.nodes)
    assert ("factionLeft", BOT_ID, ()) in out.broadcasts


def test_bot_respawns_when_lobby_drops_to_one_human():
    session, _ = _make_session()
    session.join("a")
    session.join("b")
    session.kick("a", BOT_ID)
    assert BOT_ID not in session.world.factions
    session.leave("b")
    assert BOT_ID in session.world.factions


def test_ready_up_starts_game():
    session, out = _make_session()
    session.join("a")
    session.join("b")

    session.handle_command("a", Command(CommandType.TOGGLE_READY))
    assert session.world.phase is Phase.LOBBY
    assert "gameStarted" not in out.kinds()

    session.handle_command("b", Command(CommandType.TOGGLE_READY))
    assert session.world.phase is Phase.ACTIVE
    assert session.world.tick == 0
    assert out.kinds().count("gameStarted") == 1


def test_bot_cannot_toggle_and_unknown_peer_ignored():
    session, out = _make_session()
    session.join("a")
    assert not session.toggle_ready(BOT_ID)
    session.handle_command("stranger", Command(CommandType.TOGGLE_READY))
    assert session.world.phase is Phase.LOBBY


def test_kick_human_and_bot():
    session, out = _make_session()
    session.join("a")
    session.join("b")

    session.handle_command("a", Command(CommandType.KICK_FACTION, target_id="b"))
    assert ("b", "errorMsg", "You were kicked.") in out.sent
    assert out.disconnected == ["b"]
    assert "b" not in session.world.factions

    session.handle_command("a", Command(CommandType.KICK_FACTION, target_id=BOT_ID))
    assert BOT_ID not in session.world.factions
    assert session.world.nodes[4].owner is None


def test_kick_ignored_during_game():
    session, out = _make_session()
    session.join("a")
    session.join("b")
    session.toggle_ready("a")
    session.toggle_ready("b")
    session.kick("a", "b")
    assert "b" in session.world.factions
    assert out.disconnected == []


def test_lone_player_wins_only_after_grace_period():
    session, out = _make_session()
    session.join("a")
    session.kick("a", BOT_ID)
    session.toggle_ready("a")
    assert session.world.phase is Phase.ACTIVE

    for _ in range(30):
        session.tick()
    assert "gameOver" not in out.kinds()
    assert out.kinds().count("stateUpdate") == 30

    session.tick()
    assert ("gameOver", "a", ()) in out.broadcasts
    assert session.world.phase is Phase.LOBBY


def test_game_over_resets_and_cycles():
    session, out = _make_session()
    session.join("a")
    session.toggle_ready("a")
    world = session.world
    assert world.phase is Phase.ACTIVE

    world.factions["a"].fuel = 400.0
    world.nodes[4].clear()
    world.nodes[9].owner = "a"
    world.tick = 30
    session.tick()

    assert ("gameOver", "a", ()) in out.broadcasts
    assert world.phase is Phase.LOBBY
    assert world.transit_orders == []
    assert world.next_order_id == 0
    assert world.nodes[9].owner is None
    assert world.nodes[0].owner == "a" and world.nodes[0].stock == {"a": 10.0}
    assert world.nodes[4].owner == BOT_ID and world.nodes[4].stock == {BOT_ID: 10.0}
    assert world.factions["a"].fuel == 100.0
    assert not world.factions["a"].ready
    assert world.factions[BOT_ID].ready
    assert out.kinds()[-2:] == ["stateUpdate", "factionsUpdate"]

    session.toggle_ready("a")
    assert world.phase is Phase.ACTIVE
    assert world.tick == 0


def test_two_player_scenario():
    session, out = _make_session()
    session.join("a")
    session.join("b")
    session.toggle_ready("a")
    session.toggle_ready("b")
    assert "gameStarted" in out.kinds()

    session.handle_command(
        "a", Command(CommandType.SEND_FLEET, from_node_id=0, to_node_id=5, fraction=0.5)
    )
    world = session.world
    assert len(world.transit_orders) == 1
    assert world.transit_orders[0].count == 5
    assert world.nodes[0].stock["a"] == 5.0

    for _ in range(99):
        session.tick()
    assert world.nodes[5].owner is None

    session.tick()
    assert world.nodes[5].owner == "a"
    assert world.nodes[5].stock["a"] == pytest.approx(5.0)
    assert world.phase is Phase.ACTIVE
    assert out.kinds().count("stateUpdate") == 100


def test_buy_units_command():
    session, _ = _make_session()
    session.join("a")
    session.join("b")
    session.toggle_ready("a")
    session.toggle_ready("b")
    session.handle_command("a", Command(CommandType.BUY_UNITS, node_id=0))
    assert session.world.nodes[0].stock["a"] == 30.0
    assert session.world.factions["a"].fuel == 50.0
