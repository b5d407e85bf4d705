"""
Shopbell — delivery order alerts for the shop counter.

Public API:
    from shopbell import AlertClient, ShopbellConfig
"""

__version__ = "0.1.0"

from shopbell.client import AlertClient
from shopbell.core.config import ShopbellConfig
from shopbell.core.events import Event, EventType
from shopbell.core.types import AlertKind, DeliveryAlert, DeliveryPayload, DeliveryRecord
from shopbell.feed.state import ChannelState, ChannelStatus

__all__ = [
    "AlertClient",
    "ShopbellConfig",
    "Event",
    "EventType",
    "AlertKind",
    "DeliveryAlert",
    "DeliveryPayload",
    "DeliveryRecord",
    "ChannelState",
    "ChannelStatus",
]
