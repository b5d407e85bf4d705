"""
Shopbell shared types — every data object that crosses a module boundary.

All types are dataclasses, frozen because alerts are never mutated in
place: a state change replaces the entry or removes it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Enums
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class AlertKind(str, Enum):
    """Why an order is demanding attention."""

    PAID = "paid"
    UPCOMING = "upcoming"


class DeliveryStatus:
    """Server-side delivery status strings."""

    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELED = "CANCELED"

    # Statuses for which a soon-due reminder makes sense
    UPCOMING_ELIGIBLE = frozenset({PAID, OUT_FOR_DELIVERY})


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Delivery Data
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True, slots=True)
class DeliveryItem:
    """One line of an order."""

    product_name: str = ""
    quantity: int = 0
    amount: int = 0


@dataclass(frozen=True, slots=True)
class DeliveryPayload:
    """
    Everything the presenter and the receipt printer need about an order.

    Opaque to the alerting core, which only looks at order ids and kinds.
    """

    buyer_name: str = ""
    phone: str = ""
    product_summary: str = ""
    items: tuple[DeliveryItem, ...] = ()
    reservation_ids: tuple[int, ...] = ()
    total_amount: int = 0
    delivery_fee: int = 0
    distance_km: float = 0.0
    address1: str = ""
    address2: str = ""
    delivery_date: str = ""
    delivery_hour: int = 0
    delivery_minute: int = 0
    paid_at: str = ""

    @property
    def time_label(self) -> str:
        """'14:30' style label, or '14:00' when minutes are unknown."""
        return f"{self.delivery_hour:02d}:{self.delivery_minute:02d}"

    def to_receipt(self, order_id: int) -> dict[str, Any]:
        """Body for the local printer bridge's /print endpoint."""
        receipt: dict[str, Any] = {
            "orderId": order_id,
            "paidAt": self.paid_at,
            "deliveryHour": self.delivery_hour,
            "deliveryMinute": self.delivery_minute,
            "buyerName": self.buyer_name,
            "phone": self.phone,
            "items": [
                {
                    "productName": item.product_name,
                    "quantity": item.quantity,
                    "amount": item.amount,
                }
                for item in self.items
            ],
            "totalProductAmount": sum(item.amount for item in self.items),
            "deliveryFee": self.delivery_fee,
            "distanceKm": self.distance_km,
            "address1": self.address1,
        }
        if self.address2:
            receipt["address2"] = self.address2
        return receipt


@dataclass(frozen=True, slots=True)
class DeliveryAlert:
    """A queued notification for one order event requiring staff attention."""

    order_id: int
    kind: AlertKind
    payload: DeliveryPayload = field(default_factory=DeliveryPayload)


@dataclass(frozen=True, slots=True)
class DeliveryRecord:
    """One row of the server's in-flight delivery list for a day."""

    id: int
    status: str = ""
    accepted_at: str | None = None
    delivery_date: str = ""
    scheduled_hour: int = 0
    scheduled_minute: int = 0
    payload: DeliveryPayload = field(default_factory=DeliveryPayload)

    @property
    def is_unaccepted_paid(self) -> bool:
        return self.status == DeliveryStatus.PAID and not self.accepted_at

    @property
    def has_schedule(self) -> bool:
        return bool(self.delivery_date) and self.scheduled_hour > 0

    def to_alert(self, kind: AlertKind) -> DeliveryAlert:
        return DeliveryAlert(order_id=self.id, kind=kind, payload=self.payload)
