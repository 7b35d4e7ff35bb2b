from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable


class Broadcaster(ABC):
    """Abstract outbound channel to connected peers.

    Messages are delivered as ``{"type": kind, "data": data}`` envelopes.
    Implementations must not block; the simulation calls them inline.
    """

    @abstractmethod
    def send(self, peer_id: str, kind: str, data: Any = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def broadcast(self, kind: str, data: Any = None, exclude: Iterable[str] = ()) -> None:
        raise NotImplementedError

    @abstractmethod
    def disconnect(self, peer_id: str) -> None:
        raise NotImplementedError


def envelope(kind: str, data: Any = None) -> dict[str, Any]:
    return {"type": kind, "data": data}
