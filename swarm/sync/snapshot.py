from __future__ import annotations

from swarm.engine.state import BotFaction, Faction, HumanFaction, Node, TransitOrder, WorldState


def render_node(node: Node) -> dict:
    return {
        "id": node.node_id,
        "x": node.x,
        "y": node.y,
        "radius": node.radius,
        "owner": node.owner,
        "stock": dict(node.stock),
        "homeOf": node.home_of,
    }


def render_faction(faction: Faction) -> dict:
    return {
        "id": faction.faction_id,
        "color": faction.color,
        "fuel": faction.fuel,
        "ready": faction.ready,
        "isBot": isinstance(faction, BotFaction),
        "seat": faction.seat if isinstance(faction, HumanFaction) else None,
    }


def render_factions(world: WorldState) -> dict[str, dict]:
    return {fid: render_faction(f) for fid, f in world.factions.items()}


def render_transit_order(order: TransitOrder) -> dict:
    return {
        "id": order.order_id,
        "owner": order.owner,
        "from": order.source_id,
        "to": order.dest_id,
        "count": order.count,
        "progress": order.progress,
    }


def render_state(world: WorldState) -> dict:
    """Full world snapshot broadcast every tick; never a diff."""
    return {
        "nodes": [render_node(n) for n in world.nodes],
        "transitOrders": [render_transit_order(o) for o in world.transit_orders],
        "factions": render_factions(world),
    }


def render_init(world: WorldState, self_id: str) -> dict:
    """Snapshot sent once to a peer when it joins."""
    state = render_state(world)
    return {
        "selfId": self_id,
        "factions": state["factions"],
        "nodes": state["nodes"],
        "transitOrders": state["transitOrders"],
        "phase": world.phase.value,
    }
