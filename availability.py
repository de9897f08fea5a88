"""
Availability engine

Time grid for a professional on a given day, and which calendar days can be
picked at all. Booked state is kept apart (see booking.is_booked) so the grid
can be rendered with taken slots marked instead of hidden.
"""

import calendar
from datetime import date, datetime
from typing import List, Optional

from booking import is_booked

SLOT_INTERVAL_MIN = 30


def _parse_hhmm(value: str) -> Optional[int]:
    """Minutes since midnight, or None when value is not HH:MM."""
    try:
        hours, minutes = value.split(":")
        hours, minutes = int(hours), int(minutes)
    except (AttributeError, ValueError):
        return None
    if not (0 <= hours <= 24 and 0 <= minutes < 60):
        return None
    return hours * 60 + minutes


def _parse_date(value) -> Optional[date]:
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        return None


def sunday_weekday(day: date) -> int:
    """Weekday with Sunday=0 .. Saturday=6."""
    return (day.weekday() + 1) % 7


def generate_slots(start: str, end: str, interval_minutes: int = SLOT_INTERVAL_MIN) -> List[str]:
    """
    Start times from `start` up to but excluding `end`, every `interval_minutes`.

    Degenerate or malformed input gives an empty list.
    """
    start_min = _parse_hhmm(start)
    end_min = _parse_hhmm(end)
    if start_min is None or end_min is None:
        return []
    if not isinstance(interval_minutes, int) or interval_minutes <= 0:
        return []

    slots = []
    current = start_min
    while current < end_min:
        hour, minute = divmod(current, 60)
        slots.append(f"{hour:02d}:{minute:02d}")
        current += interval_minutes
    return slots


def available_slots(store, professional_id: str, day) -> List[str]:
    professional = store.get_professional(professional_id)
    if not professional:
        return []

    target = _parse_date(day)
    if target is None:
        return []
    if sunday_weekday(target) not in professional.available_days:
        return []

    hours = professional.available_hours
    return generate_slots(hours.start, hours.end)


def slot_board(store, professional_id: str, day: str) -> dict:
    """
    Slots for the day with their booked flag, split into morning/afternoon
    the way the booking page shows them.
    """
    slots = [
        {"time": t, "booked": is_booked(store, professional_id, day, t)}
        for t in available_slots(store, professional_id, day)
    ]
    return {
        "date": day,
        "slots": slots,
        "morning": [s for s in slots if int(s["time"][:2]) < 12],
        "afternoon": [s for s in slots if int(s["time"][:2]) >= 12],
    }


def is_date_selectable(store, professional_id: str, candidate, today: Optional[date] = None) -> bool:
    target = _parse_date(candidate)
    if target is None:
        return False

    # day granularity: today stays selectable whatever the time
    today = today or date.today()
    if target < today:
        return False

    professional = store.get_professional(professional_id)
    if not professional:
        return False
    return sunday_weekday(target) in professional.available_days


def month_grid(store, professional_id: str, year: int, month: int, today: Optional[date] = None) -> dict:
    first_weekday, days_in_month = calendar.monthrange(year, month)
    days = []
    for day_number in range(1, days_in_month + 1):
        current = date(year, month, day_number)
        days.append({
            "date": current.isoformat(),
            "day": day_number,
            "selectable": is_date_selectable(store, professional_id, current, today=today),
        })
    return {
        "year": year,
        "month": month,
        # blank cells before the 1st on a Sunday-first grid
        "leading_blanks": (first_weekday + 1) % 7,
        "days": days,
    }
