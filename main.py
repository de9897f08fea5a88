import logging
import os
from datetime import date, datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

import database
from availability import available_slots, is_date_selectable, month_grid, slot_board
from booking import SlotTakenError, cancel_appointment, is_booked, record_appointment, set_status
from database import MongoStore
from reports import summary
from schemas import (
    AppointmentStatusUpdate,
    BookingRequest,
    Professional,
    ProfessionalUpdate,
    Service,
    ServiceUpdate,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ---------- Utils ----------

def serialize_doc(doc) -> dict:
    if not doc:
        return doc
    d = doc.model_dump() if hasattr(doc, "model_dump") else {**doc}
    if d.get("_id") is not None:
        d["id"] = str(d.pop("_id"))
    # Convert datetimes to isoformat
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            d[k] = v.isoformat()
    return d


_store = None


def get_store():
    global _store
    if database.db is None:
        raise HTTPException(status_code=503, detail="Database not available")
    if _store is None:
        _store = MongoStore(database.db)
    return _store


# ---------- FastAPI App ----------

app = FastAPI(title="Salon Booking API")

allowed = os.getenv("APP_ALLOWED_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Health ----------

@app.get("/")
def read_root():
    return {"message": "Salon Booking API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        if database.db is None:
            response["database"] = "❌ Not Connected"
        else:
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
            response["collections"] = database.db.list_collection_names()
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# ---------- Helper logic ----------

def ensure_professional(store, professional_id: str) -> Professional:
    professional = store.get_professional(professional_id)
    if not professional:
        raise HTTPException(status_code=404, detail="Professional not found")
    return professional


def parse_day(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format, expected YYYY-MM-DD")


# ---------- Professionals ----------

@app.get("/api/professionals")
def list_professionals(store=Depends(get_store)):
    return store.list_professionals()


@app.post("/api/professionals", status_code=201)
def create_professional(payload: Professional, store=Depends(get_store)):
    return store.create_professional(payload)


@app.get("/api/professionals/{professional_id}")
def get_professional(professional_id: str, store=Depends(get_store)):
    professional = ensure_professional(store, professional_id)
    return {"id": professional_id, **professional.model_dump()}


@app.patch("/api/professionals/{professional_id}")
def update_professional(professional_id: str, payload: ProfessionalUpdate, store=Depends(get_store)):
    updates = payload.model_dump(exclude_unset=True)
    current = ensure_professional(store, professional_id)
    # re-validate the merged record so hours stay ordered
    try:
        Professional(**{**current.model_dump(), **updates})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    return store.update_professional(professional_id, updates)


@app.delete("/api/professionals/{professional_id}", status_code=204)
def delete_professional(professional_id: str, store=Depends(get_store)):
    if not store.delete_professional(professional_id):
        raise HTTPException(status_code=404, detail="Professional not found")


@app.get("/api/professionals/{professional_id}/slots")
def professional_slots(
    professional_id: str,
    date: str = Query(..., description="YYYY-MM-DD"),
    store=Depends(get_store),
):
    parse_day(date)
    return slot_board(store, professional_id, date)


@app.get("/api/professionals/{professional_id}/calendar")
def professional_calendar(
    professional_id: str,
    year: Optional[int] = Query(None, ge=1, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    store=Depends(get_store),
):
    today = date.today()
    return month_grid(store, professional_id, year or today.year, month or today.month, today=today)


# ---------- Services ----------

@app.get("/api/services")
def list_services(store=Depends(get_store)):
    return store.list_services()


@app.post("/api/services", status_code=201)
def create_service(payload: Service, store=Depends(get_store)):
    return store.create_service(payload)


@app.patch("/api/services/{service_id}")
def update_service(service_id: str, payload: ServiceUpdate, store=Depends(get_store)):
    updates = payload.model_dump(exclude_unset=True)
    current = store.get_service(service_id)
    if not current:
        raise HTTPException(status_code=404, detail="Service not found")
    # explicit nulls must not reach the stored record
    try:
        Service(**{**current.model_dump(), **updates})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    return store.update_service(service_id, updates)


@app.delete("/api/services/{service_id}", status_code=204)
def delete_service(service_id: str, store=Depends(get_store)):
    if not store.delete_service(service_id):
        raise HTTPException(status_code=404, detail="Service not found")


# ---------- Appointments ----------

@app.get("/api/appointments")
def list_appointments(
    date: Optional[str] = Query(None, description="YYYY-MM-DD to filter by day"),
    professional_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None, pattern="^(confirmed|cancelled|completed)$"),
    store=Depends(get_store),
):
    if date:
        parse_day(date)
    docs = store.list_appointments(professional_id=professional_id, date=date, status=status)
    return [serialize_doc(d) for d in docs]


@app.post("/api/appointments", status_code=201)
def create_appointment(payload: BookingRequest, store=Depends(get_store)):
    ensure_professional(store, payload.professional_id)
    if not store.get_service(payload.service_id):
        raise HTTPException(status_code=404, detail="Service not found")

    if not is_date_selectable(store, payload.professional_id, payload.date):
        raise HTTPException(status_code=422, detail="Date is not available for this professional")
    if payload.time not in available_slots(store, payload.professional_id, payload.date):
        raise HTTPException(status_code=422, detail="Time is not an open slot for this professional and date")

    if is_booked(store, payload.professional_id, payload.date, payload.time):
        logger.warning(
            f"Slot {payload.date} {payload.time} already booked for professional {payload.professional_id}"
        )
        raise HTTPException(status_code=409, detail="Time slot already booked for this professional")

    try:
        appt = record_appointment(store, payload)
    except SlotTakenError:
        raise HTTPException(status_code=409, detail="Time slot already booked for this professional")
    return serialize_doc(appt)


@app.post("/api/appointments/{appointment_id}/cancel")
def cancel(appointment_id: str, store=Depends(get_store)):
    appt = cancel_appointment(store, appointment_id)
    if appt is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return serialize_doc(appt)


@app.patch("/api/appointments/{appointment_id}")
def update_appointment_status(appointment_id: str, payload: AppointmentStatusUpdate, store=Depends(get_store)):
    try:
        appt = set_status(store, appointment_id, payload.status)
    except SlotTakenError:
        raise HTTPException(status_code=409, detail="Another active appointment holds this slot")
    if appt is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return serialize_doc(appt)


# ---------- Clients ----------

@app.get("/api/clients")
def list_clients(store=Depends(get_store)):
    return [serialize_doc(c) for c in store.list_clients()]


# ---------- Reports ----------

@app.get("/api/reports/summary")
def reports_summary(store=Depends(get_store)):
    return summary(store)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
