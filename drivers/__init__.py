from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from services.message import Asset

if TYPE_CHECKING:
    from services.bridge import MirrorBridge

V = TypeVar("V")


@dataclass
class BusResult(Generic[V]):
    """Outcome of a single bus call.

    Bus operations never raise; callers branch on ``ok`` and decide for
    themselves whether a failure means "target already gone".
    """
    ok: bool
    value: V | None = None
    error: Exception | None = None

    @classmethod
    def success(cls, value: V | None = None) -> "BusResult[V]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: Exception) -> "BusResult[V]":
        return cls(ok=False, error=error)


class BaseBus(ABC):
    """Abstract base class for the chat platform connection.

    ``channel`` arguments are whatever ``fetch_channel`` returned as its
    value; the bridge treats them as opaque handles.
    """

    def __init__(self):
        self.bridge: "MirrorBridge | None" = None

    def attach(self, bridge: "MirrorBridge"):
        """Deliver this bus's message events to *bridge*."""
        self.bridge = bridge

    @abstractmethod
    async def start(self):
        """Connect and begin delivering events to the bridge.
        Blocks until the connection is closed."""

    @abstractmethod
    async def close(self):
        """Disconnect from the platform."""

    @abstractmethod
    async def fetch_channel(self, channel_id: str) -> BusResult[Any]:
        """Resolve a channel handle by ID."""

    @abstractmethod
    async def fetch_message(self, channel_id: str, message_id: str) -> BusResult[Any]:
        """Fetch the full representation of a message."""

    @abstractmethod
    async def send(self, channel: Any, content: str, assets: list[Asset] | None = None) -> BusResult[str]:
        """Post *content* with *assets* as files; value is the new message ID."""

    @abstractmethod
    async def delete(self, channel: Any, message_id: str) -> BusResult[None]:
        """Delete a message."""
