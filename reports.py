"""
Back-office aggregates for the dashboard and reports pages.
"""

from collections import OrderedDict
from datetime import date
from typing import Optional


def summary(store, today: Optional[date] = None, months: int = 6) -> dict:
    today_str = (today or date.today()).isoformat()
    appointments = store.list_appointments()
    prices = {s["id"]: s.get("price", 0) for s in store.list_services()}
    professionals = store.list_professionals()

    active = [a for a in appointments if a.status != "cancelled"]

    monthly = {}
    for appt in active:
        month_key = appt.date[:7]
        monthly[month_key] = monthly.get(month_key, 0) + prices.get(appt.service_id, 0)
    recent = OrderedDict(sorted(monthly.items())[-months:])

    by_professional = []
    for prof in professionals:
        count = sum(1 for a in active if a.professional_id == prof["id"])
        by_professional.append({"name": prof["name"], "value": count})

    return {
        "monthly_revenue": [{"month": m, "revenue": r} for m, r in recent.items()],
        "appointments_by_professional": by_professional,
        "total_revenue": sum(monthly.values()),
        "total_appointments": len(active),
        "today_appointments": sum(1 for a in active if a.date == today_str),
        "confirmed": sum(1 for a in appointments if a.status == "confirmed"),
        "cancelled": sum(1 for a in appointments if a.status == "cancelled"),
        "clients": len(store.list_clients()),
        "professionals": len(professionals),
    }
