"""
Tolerant decoding of server payloads into alerts and delivery records.

The server has shipped several spellings of the same fields over time
(snake_case and camelCase, "delivery_minute" vs "deliveryMinute"), so
every field is coalesced from a list of candidate keys.

Defaults when a field is missing or unparseable:
    strings         → ""
    integers/floats → 0
    lists           → ()
    accepted_at     → None

Only the order id is mandatory: without it there is nothing to dedup
on, so decode_alert / decode_record raise DecodeError.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from shopbell.core.errors import DecodeError
from shopbell.core.types import (
    AlertKind,
    DeliveryAlert,
    DeliveryItem,
    DeliveryPayload,
    DeliveryRecord,
)

_ORDER_ID_KEYS = ("order_id", "orderId", "id")


def parse_event_data(raw: str) -> dict[str, Any]:
    """Parse the JSON body of a stream event. Raises DecodeError."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise DecodeError(f"Event data is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError(f"Event data must be an object, got {type(data).__name__}")
    return data


def decode_alert(data: Mapping[str, Any], kind: AlertKind) -> DeliveryAlert:
    """Build an alert from an event or list row. Raises DecodeError."""
    order_id = _order_id(data)
    return DeliveryAlert(order_id=order_id, kind=kind, payload=decode_payload(data))


def decode_record(data: Mapping[str, Any]) -> DeliveryRecord:
    """Build a DeliveryRecord from one row of the deliveries list."""
    payload = decode_payload(data)
    accepted_at = _coalesce(data, "accepted_at", "acceptedAt")
    return DeliveryRecord(
        id=_order_id(data),
        status=_as_str(data.get("status")).upper(),
        accepted_at=str(accepted_at) if accepted_at else None,
        delivery_date=payload.delivery_date,
        scheduled_hour=payload.delivery_hour,
        scheduled_minute=payload.delivery_minute,
        payload=payload,
    )


def decode_records(rows: Any) -> list[DeliveryRecord]:
    """Decode a list of rows, dropping the ones without an id."""
    if not isinstance(rows, list):
        return []
    records: list[DeliveryRecord] = []
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        try:
            records.append(decode_record(row))
        except DecodeError:
            continue
    return records


def decode_payload(data: Mapping[str, Any]) -> DeliveryPayload:
    raw_items = _coalesce(data, "items", "reservation_items", "reservationItems")
    items = tuple(
        DeliveryItem(
            product_name=_as_str(_coalesce(item, "product_name", "productName")),
            quantity=_as_int(item.get("quantity")),
            amount=_as_int(item.get("amount")),
        )
        for item in (raw_items if isinstance(raw_items, list) else [])
        if isinstance(item, Mapping)
    )
    raw_ids = _coalesce(data, "reservation_ids", "reservationIds")
    reservation_ids = tuple(
        _as_int(rid) for rid in (raw_ids if isinstance(raw_ids, list) else [])
    )

    return DeliveryPayload(
        buyer_name=_as_str(_coalesce(data, "buyer_name", "buyerName")),
        phone=_as_str(data.get("phone")),
        product_summary=_as_str(_coalesce(data, "product_summary", "productSummary")),
        items=items,
        reservation_ids=reservation_ids,
        total_amount=_as_int(_coalesce(data, "total_amount", "totalAmount")),
        delivery_fee=_as_int(_coalesce(data, "delivery_fee", "deliveryFee")),
        distance_km=_as_float(_coalesce(data, "distance_km", "distanceKm")),
        address1=_as_str(data.get("address1")),
        address2=_as_str(data.get("address2")),
        delivery_date=_as_str(_coalesce(data, "delivery_date", "deliveryDate")),
        delivery_hour=_as_int(_coalesce(data, "delivery_hour", "deliveryHour")),
        delivery_minute=_as_int(_coalesce(data, "delivery_minute", "deliveryMinute")),
        paid_at=_as_str(_coalesce(data, "paid_at", "paidAt")),
    )


# ━━━ Helpers ━━━


def _order_id(data: Mapping[str, Any]) -> int:
    raw = _coalesce(data, *_ORDER_ID_KEYS)
    order_id = _as_int(raw, default=-1)
    if order_id <= 0:
        raise DecodeError(f"Missing or invalid order id: {raw!r}", field="order_id")
    return order_id


def _coalesce(data: Mapping[str, Any], *keys: str) -> Any:
    """First non-None value among keys."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
