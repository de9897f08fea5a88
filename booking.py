"""
Booking: conflict check, appointment recording and cancellation.

The client rollup (visits, last visit, history) is maintained here on every
booking and is the only source for the clients list.
"""

import logging
from datetime import datetime
from typing import Optional

from bson import ObjectId

from schemas import Appointment, BookingRequest

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("confirmed", "completed")


class SlotTakenError(Exception):
    """Raised by a store when an active appointment already holds the slot."""

    def __init__(self, professional_id: str, date: str, time: str):
        super().__init__(f"Slot {date} {time} already booked for professional {professional_id}")
        self.professional_id = professional_id
        self.date = date
        self.time = time


def is_booked(store, professional_id: str, date: str, time: str) -> bool:
    for appt in store.list_appointments(professional_id=professional_id, date=date):
        if appt.time == time and appt.status != "cancelled":
            return True
    return False


def record_appointment(store, request: BookingRequest) -> Appointment:
    appt = Appointment(
        id=str(ObjectId()),
        client_name=request.client_name,
        client_phone=request.client_phone,
        service_id=request.service_id,
        professional_id=request.professional_id,
        date=request.date,
        time=request.time,
        status="confirmed",
        created_at=datetime.utcnow(),
    )
    store.append_appointment(appt)

    # one visit more, last write wins for last_visit, history in booking order;
    # a first booking creates the client with a single visit
    store.add_client_visit(appt.client_name, appt.client_phone, appt.date, appt.id)

    logger.info(
        f"Booked {appt.id} for {appt.client_phone} with professional "
        f"{appt.professional_id} at {appt.date} {appt.time}"
    )
    return appt


def set_status(store, appointment_id: str, status: str) -> Optional[Appointment]:
    appt = store.get_appointment(appointment_id)
    if appt is None:
        return None
    if appt.status == status:
        return appt
    return store.update_status(appointment_id, status)


def cancel_appointment(store, appointment_id: str) -> Optional[Appointment]:
    """
    Soft-cancel an appointment. The record is kept and the client's visit
    count is left as is; cancelling twice is a no-op.
    """
    appt = set_status(store, appointment_id, "cancelled")
    if appt is not None:
        logger.info(f"Cancelled appointment {appointment_id}")
    return appt

