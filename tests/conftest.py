from datetime import date, timedelta
from typing import List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from booking import SlotTakenError
from schemas import Appointment, Client, Professional, Service


class InMemoryStore:
    """Dict-backed store with the same surface as database.MongoStore."""

    def __init__(self, enforce_unique_slot=False):
        self.professionals = {}
        self.services = {}
        self.appointments = []
        self.clients = {}
        self.enforce_unique_slot = enforce_unique_slot

    def get_professional(self, professional_id) -> Optional[Professional]:
        return self.professionals.get(professional_id)

    def list_professionals(self) -> List[dict]:
        return [{"id": pid, **p.model_dump()} for pid, p in self.professionals.items()]

    def create_professional(self, professional: Professional) -> dict:
        pid = str(ObjectId())
        self.professionals[pid] = professional
        return {"id": pid, **professional.model_dump()}

    def update_professional(self, professional_id, updates) -> Optional[dict]:
        current = self.professionals.get(professional_id)
        if current is None:
            return None
        self.professionals[professional_id] = Professional(**{**current.model_dump(), **updates})
        return {"id": professional_id, **self.professionals[professional_id].model_dump()}

    def delete_professional(self, professional_id) -> bool:
        return self.professionals.pop(professional_id, None) is not None

    def get_service(self, service_id) -> Optional[Service]:
        return self.services.get(service_id)

    def list_services(self) -> List[dict]:
        return [{"id": sid, **s.model_dump()} for sid, s in self.services.items()]

    def create_service(self, service: Service) -> dict:
        sid = str(ObjectId())
        self.services[sid] = service
        return {"id": sid, **service.model_dump()}

    def update_service(self, service_id, updates) -> Optional[dict]:
        current = self.services.get(service_id)
        if current is None:
            return None
        self.services[service_id] = Service(**{**current.model_dump(), **updates})
        return {"id": service_id, **self.services[service_id].model_dump()}

    def delete_service(self, service_id) -> bool:
        return self.services.pop(service_id, None) is not None

    def list_appointments(self, professional_id=None, date=None, status=None) -> List[Appointment]:
        found = [
            a.model_copy() for a in self.appointments
            if (professional_id is None or a.professional_id == professional_id)
            and (date is None or a.date == date)
            and (status is None or a.status == status)
        ]
        return sorted(found, key=lambda a: (a.date, a.time))

    def get_appointment(self, appointment_id) -> Optional[Appointment]:
        for appt in self.appointments:
            if appt.id == appointment_id:
                return appt.model_copy()
        return None

    def _slot_taken(self, appt, ignore_id=None):
        return any(
            a.id != ignore_id and a.professional_id == appt.professional_id
            and a.date == appt.date and a.time == appt.time and a.status != "cancelled"
            for a in self.appointments
        )

    def append_appointment(self, appt: Appointment) -> None:
        if self.enforce_unique_slot and self._slot_taken(appt):
            raise SlotTakenError(appt.professional_id, appt.date, appt.time)
        self.appointments.append(appt.model_copy())

    def update_status(self, appointment_id, status) -> Optional[Appointment]:
        for i, appt in enumerate(self.appointments):
            if appt.id == appointment_id:
                if (self.enforce_unique_slot and status != "cancelled"
                        and self._slot_taken(appt, ignore_id=appointment_id)):
                    raise SlotTakenError(appt.professional_id, appt.date, appt.time)
                self.appointments[i] = appt.model_copy(update={"status": status})
                return self.appointments[i].model_copy()
        return None

    def find_by_phone(self, phone) -> Optional[Client]:
        client = self.clients.get(phone)
        return client.model_copy(deep=True) if client else None

    def add_client_visit(self, name, phone, visit_date, appointment_id) -> None:
        client = self.clients.setdefault(phone, Client(name=name, phone=phone))
        client.total_visits += 1
        client.last_visit = visit_date
        client.appointments.append(appointment_id)

    def list_clients(self) -> List[Client]:
        return list(self.clients.values())


def upcoming(weekday: int) -> date:
    """Next date strictly after today with the given Sunday=0 weekday."""
    day = date.today() + timedelta(days=1)
    while (day.weekday() + 1) % 7 != weekday:
        day += timedelta(days=1)
    return day


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def weekday_pro(store):
    """Mon-Fri 09:00-18:00."""
    created = store.create_professional(Professional(
        name="Ana Souza",
        specialty="Cabelo",
        available_days=[1, 2, 3, 4, 5],
        available_hours={"start": "09:00", "end": "18:00"},
    ))
    return created["id"]


@pytest.fixture
def weekend_pro(store):
    created = store.create_professional(Professional(
        name="Carla Lima",
        specialty="Unhas",
        available_days=[0, 6],
        available_hours={"start": "10:00", "end": "14:00"},
    ))
    return created["id"]


@pytest.fixture
def haircut(store, weekday_pro):
    created = store.create_service(Service(
        name="Corte feminino", price=80.0, duration=60, category="Cabelo", professional_id=weekday_pro,
    ))
    return created["id"]


@pytest.fixture
def api(store):
    from main import app, get_store

    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
