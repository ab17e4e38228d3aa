"""Chat transport abstraction and the WhatsApp bridge implementation."""

from whatbot.transport.base import DispatchError, HistoryFetchError, Transport, TransportError
from whatbot.transport.bridge import BridgeTransport

__all__ = [
    "BridgeTransport",
    "DispatchError",
    "HistoryFetchError",
    "Transport",
    "TransportError",
]
