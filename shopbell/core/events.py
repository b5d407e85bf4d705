"""
Shopbell Event System — types and constants.

Host signals, channel status changes, alert lifecycle and user notices
all travel over the event bus as events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
import time
import uuid


class EventType:
    """
    Event type constants.

    Hierarchical naming: "category:action"
    Supports wildcard matching: "host:*" matches "host:visible"
    """

    # System lifecycle
    SYSTEM_START = "system:start"
    SYSTEM_STOP = "system:stop"

    # Host environment signals (foreground/background, network)
    HOST_VISIBLE = "host:visible"
    HOST_HIDDEN = "host:hidden"
    HOST_ONLINE = "host:online"
    HOST_OFFLINE = "host:offline"

    # Live feed / poller status
    CHANNEL_STATE = "channel:state"
    POLLER_STARTED = "poller:started"
    POLLER_STOPPED = "poller:stopped"
    POLL_COMPLETE = "poller:complete"

    # Alert lifecycle
    ALERT_ENQUEUED = "alert:enqueued"
    ALERT_REMOVED = "alert:removed"
    ALERT_CLEARED = "alert:cleared"

    # Alarm
    ALARM_START = "alarm:start"
    ALARM_STOP = "alarm:stop"

    # User-facing messages
    NOTICE = "notice"


@dataclass(slots=True)
class Event:
    """
    A single event in the Shopbell system.

    - Typed (hierarchical string)
    - Timestamped
    - Traceable (source + parent_id)
    - Extensible (data dict for event-specific payload)
    """

    type: str
    data: dict[str, Any] = field(default_factory=dict)
    source: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    timestamp: float = field(default_factory=time.time)
    parent_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
