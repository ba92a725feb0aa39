"""Slot status classification."""

from echannel.config import settings
from echannel.schemas.time_slots import SlotStatus


def classify_slot(
    max_appointments: int,
    current_bookings: int,
    filling_fast_threshold: float | None = None,
) -> SlotStatus:
    """
    Classify a slot by how close it is to capacity.

    Args:
        max_appointments: Slot capacity
        current_bookings: Seats already taken
        filling_fast_threshold: Utilization at which a slot counts as filling
            fast; defaults to the configured threshold

    Returns:
        FULL at or above capacity, FILLING_FAST at or above the threshold,
        AVAILABLE otherwise. A slot with no capacity is FULL.
    """
    if max_appointments <= 0:
        return SlotStatus.FULL

    threshold = filling_fast_threshold
    if threshold is None:
        threshold = settings.filling_fast_threshold
    utilization = current_bookings / max_appointments

    if utilization >= 1:
        return SlotStatus.FULL
    if utilization >= threshold:
        return SlotStatus.FILLING_FAST
    return SlotStatus.AVAILABLE


def available_count(max_appointments: int, current_bookings: int) -> int:
    """Seats left in a slot, never negative."""
    return max(max_appointments - current_bookings, 0)


def utilization_percentage(max_appointments: int, current_bookings: int) -> int:
    """Rounded utilization as a whole percentage."""
    if max_appointments <= 0:
        return 100
    return round(current_bookings / max_appointments * 100)


def with_slot_status(slot: dict) -> dict:
    """Return a slot row mapping enriched with its computed availability fields."""
    data = dict(slot)
    data["available_slots"] = available_count(data["max_appointments"], data["current_bookings"])
    data["status"] = classify_slot(data["max_appointments"], data["current_bookings"])
    return data
