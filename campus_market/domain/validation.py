# campus_market/domain/validation.py
import math
from datetime import datetime, timezone
from typing import Any, Dict

from campus_market.domain.errors import InvalidPickupDetails, MissingDeliveryInfo
from campus_market.domain.order_state import DeliveryMethod


def _get(obj: Any, key: str):
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _clean_str(value) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def require_delivery_info(delivery_method: str, shipping_address, pickup_details) -> None:
    if delivery_method == DeliveryMethod.DELIVERY.value and not shipping_address:
        raise MissingDeliveryInfo("Shipping address is required for delivery")

    if delivery_method == DeliveryMethod.PICKUP.value:
        if not _clean_str(_get(pickup_details, "location_name")):
            raise MissingDeliveryInfo("Pickup location is required for self pick-up orders")


def _parse_coordinate(value, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidPickupDetails(f"Pickup coordinate '{name}' must be a valid number")
    if math.isnan(number) or math.isinf(number):
        raise InvalidPickupDetails(f"Pickup coordinate '{name}' must be a valid number")
    return number


def _parse_instant(value) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            # fromisoformat does not accept a trailing Z before 3.11
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise InvalidPickupDetails("Preferred time must be a valid date")
    else:
        raise InvalidPickupDetails("Preferred time must be a valid date")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_pickup_details(pickup_details) -> Dict[str, Any]:
    """Trim strings, drop empty optionals, coerce coordinates and preferred time.

    The result is JSON-serialisable and stored as-is on the order.
    """
    location_name = _clean_str(_get(pickup_details, "location_name"))
    if not location_name:
        raise MissingDeliveryInfo("Pickup location name is required")

    normalized: Dict[str, Any] = {"location_name": location_name}

    address = _clean_str(_get(pickup_details, "address"))
    if address:
        normalized["address"] = address

    note = _clean_str(_get(pickup_details, "note"))
    if note:
        normalized["note"] = note

    coordinates = _get(pickup_details, "coordinates")
    if coordinates:
        normalized["coordinates"] = {
            "lat": _parse_coordinate(_get(coordinates, "lat"), "lat"),
            "lng": _parse_coordinate(_get(coordinates, "lng"), "lng"),
        }

    preferred_time = _get(pickup_details, "preferred_time")
    if preferred_time:
        normalized["preferred_time"] = _parse_instant(preferred_time).isoformat()

    return normalized
