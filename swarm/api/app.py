from __future__ import annotations

import asyncio
import logging
import uuid
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, Deque, Dict, Iterable

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from swarm.api.models import (
    BuyUnitsRequest,
    HealthResponse,
    InboundMessage,
    KickFactionRequest,
    SendFleetRequest,
    StateResponse,
)
from swarm.common.config import settings
from swarm.common.types import Command, CommandType
from swarm.engine.session import GameSession
from swarm.engine.ticker import Ticker
from swarm.sync.base import Broadcaster, envelope
from swarm.sync.snapshot import render_state

logger = logging.getLogger(__name__)

PEER_SEND_TIMEOUT = 1.0
MAX_PENDING_MESSAGES = 256

_CLOSE = object()


def _is_state_update(message: Any) -> bool:
    return message is not _CLOSE and message.get("type") == "stateUpdate"


class PeerOutbox:
    """Messages waiting for one peer.

    Discrete events keep their order; only the newest ``stateUpdate`` is
    kept since each one supersedes the last.
    """

    def __init__(self) -> None:
        self.pending: Deque[Any] = deque()
        self._ready = asyncio.Event()

    def __len__(self) -> int:
        return len(self.pending)

    def put(self, message: Any) -> None:
        if _is_state_update(message):
            self.pending = deque(m for m in self.pending if not _is_state_update(m))
        self.pending.append(message)
        self._ready.set()

    async def get(self) -> Any:
        while not self.pending:
            self._ready.clear()
            await self._ready.wait()
        return self.pending.popleft()


class WebSocketBroadcaster(Broadcaster):
    """Fans messages out to per-peer outboxes drained by writer tasks."""

    def __init__(self) -> None:
        self._outboxes: Dict[str, PeerOutbox] = {}

    @property
    def peers(self) -> list[str]:
        return list(self._outboxes)

    def register(self, peer_id: str) -> PeerOutbox:
        outbox = PeerOutbox()
        self._outboxes[peer_id] = outbox
        return outbox

    def unregister(self, peer_id: str) -> None:
        self._outboxes.pop(peer_id, None)

    def send(self, peer_id: str, kind: str, data: Any = None) -> None:
        outbox = self._outboxes.get(peer_id)
        if outbox is not None:
            self._deliver(peer_id, outbox, envelope(kind, data))

    def broadcast(self, kind: str, data: Any = None, exclude: Iterable[str] = ()) -> None:
        message = envelope(kind, data)
        skip = set(exclude)
        for peer_id, outbox in list(self._outboxes.items()):
            if peer_id not in skip:
                self._deliver(peer_id, outbox, message)

    def disconnect(self, peer_id: str) -> None:
        # Queued messages (e.g. the reason) are flushed before the close.
        outbox = self._outboxes.get(peer_id)
        if outbox is not None:
            outbox.put(_CLOSE)

    def _deliver(self, peer_id: str, outbox: PeerOutbox, message: Any) -> None:
        outbox.put(message)
        if len(outbox) > MAX_PENDING_MESSAGES:
            logger.warning("Peer %s is not reading, dropping it", peer_id)
            outbox.pending.clear()
            outbox.put(_CLOSE)
            self.unregister(peer_id)

    async def pump(self, peer_id: str, outbox: PeerOutbox, ws: WebSocket) -> None:
        """Write a peer's outbox to its socket until closed or failed."""
        try:
            while True:
                message = await outbox.get()
                if message is _CLOSE:
                    break
                try:
                    await asyncio.wait_for(ws.send_json(message), timeout=PEER_SEND_TIMEOUT)
                except Exception:
                    logger.exception("Failed to send to peer %s", peer_id)
                    break
        finally:
            self.unregister(peer_id)
        try:
            await ws.close()
        except Exception:
            logger.exception("Failed to close peer %s", peer_id)


broadcaster = WebSocketBroadcaster()
game_session: GameSession | None = None
ticker: Ticker | None = None


def _get_session() -> GameSession:
    assert game_session is not None
    return game_session


@asynccontextmanager
async def lifespan(app: FastAPI):
    global game_session, ticker
    game_session = GameSession(broadcaster, max_players=settings.max_players)
    if settings.enable_tick_loop:
        ticker = Ticker(settings.tick_seconds, game_session.tick)
        ticker.start()
        logger.info("Tick loop running every %ss", settings.tick_seconds)
    else:
        logger.warning("Tick loop disabled via SWARM_ENABLE_TICK_LOOP")
    try:
        yield
    finally:
        if ticker is not None:
            await ticker.stop()
            ticker = None


app = FastAPI(title="Swarm", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


def message_to_command(msg: InboundMessage) -> Command:
    """Convert a parsed frame into a command; raises ValidationError on bad data."""
    cmd = CommandType(msg.type)
    if cmd is CommandType.SEND_FLEET:
        req = SendFleetRequest.model_validate(msg.data)
        return Command(
            cmd=cmd,
            from_node_id=req.from_node_id,
            to_node_id=req.to_node_id,
            fraction=req.fraction,
        )
    if cmd is CommandType.BUY_UNITS:
        data = msg.data if isinstance(msg.data, dict) else {"nodeId": msg.data}
        return Command(cmd=cmd, node_id=BuyUnitsRequest.model_validate(data).node_id)
    if cmd is CommandType.KICK_FACTION:
        data = msg.data if isinstance(msg.data, dict) else {"targetId": msg.data}
        return Command(cmd=cmd, target_id=KickFactionRequest.model_validate(data).target_id)
    return Command(cmd=cmd)


def parse_frame(raw: str) -> Command | None:
    try:
        return message_to_command(InboundMessage.model_validate_json(raw))
    except ValidationError as exc:
        logger.debug("Dropping malformed frame: %s", exc.errors())
        return None


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    game = _get_session()
    return HealthResponse(
        status="ok", phase=game.world.phase.value, factions=len(game.world.factions)
    )


@app.get("/state", response_model=StateResponse)
async def state() -> StateResponse:
    world = _get_session().world
    return StateResponse(phase=world.phase.value, tick=world.tick, **render_state(world))


@app.websocket("/ws")
async def game_ws(ws: WebSocket) -> None:
    await ws.accept()
    game = _get_session()
    peer_id = uuid.uuid4().hex
    outbox = broadcaster.register(peer_id)
    writer = asyncio.create_task(broadcaster.pump(peer_id, outbox, ws))
    try:
        if game.join(peer_id) is None:
            await writer
            return
        while True:
            try:
                raw = await ws.receive_text()
            except WebSocketDisconnect:
                break
            except Exception:
                logger.exception("Websocket receive failed")
                break
            command = parse_frame(raw)
            if command is not None:
                game.handle_command(peer_id, command)
    finally:
        broadcaster.unregister(peer_id)
        game.leave(peer_id)
        writer.cancel()
        await asyncio.gather(writer, return_exceptions=True)
