from __future__ import annotations

from dataclasses import dataclass, field

from swarm.common.types import Phase


@dataclass
class Node:
    node_id: int
    x: float
    y: float
    radius: float
    owner: str | None = None
    stock: dict[str, float] = field(default_factory=dict)
    home_of: str | None = None

    def stock_of(self, faction_id: str) -> float:
        return self.stock.get(faction_id, 0.0)

    def present_factions(self) -> list[str]:
        """Factions holding at least one whole unit here."""
        return [fid for fid, units in self.stock.items() if units >= 1]

    @property
    def contested(self) -> bool:
        return len(self.present_factions()) > 1

    def clear(self) -> None:
        self.owner = None
        self.stock = {}
        self.home_of = None


@dataclass
class Faction:
    faction_id: str
    color: str
    fuel: float
    ready: bool = False


@dataclass
class HumanFaction(Faction):
    seat: int = 0


@dataclass
class BotFaction(Faction):
    ready: bool = True


@dataclass
class TransitOrder:
    order_id: int
    owner: str
    source_id: int
    dest_id: int
    count: int
    progress: float = 0.0


@dataclass
class WorldState:
    nodes: list[Node]
    factions: dict[str, Faction] = field(default_factory=dict)
    transit_orders: list[TransitOrder] = field(default_factory=list)
    phase: Phase = Phase.LOBBY
    tick: int = 0
    next_order_id: int = 0

    def node(self, node_id: object) -> Node | None:
        if isinstance(node_id, bool) or not isinstance(node_id, int):
            return None
        if 0 <= node_id < len(self.nodes):
            return self.nodes[node_id]
        return None

    def allocate_order_id(self) -> int:
        order_id = self.next_order_id
        self.next_order_id += 1
        return order_id

    def humans(self) -> list[HumanFaction]:
        return [f for f in self.factions.values() if isinstance(f, HumanFaction)]

    def bot(self) -> BotFaction | None:
        for faction in self.factions.values():
            if isinstance(faction, BotFaction):
                return faction
        return None

    def owned_by(self, faction_id: str) -> list[Node]:
        return [n for n in self.nodes if n.owner == faction_id]

    def units_of(self, faction_id: str) -> float:
        """Units a faction holds on nodes plus units in transit."""
        on_nodes = sum(n.stock_of(faction_id) for n in self.nodes)
        in_transit = sum(o.count for o in self.transit_orders if o.owner == faction_id)
        return on_nodes + in_transit
