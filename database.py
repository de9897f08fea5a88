"""
MongoDB access

`db` is the configured database handle (None when DATABASE_URL / DATABASE_NAME
are not set). `MongoStore` wraps a database handle with the operations the
booking and availability code needs; request handlers receive it through
`get_store` so tests can swap in another store.
"""

import logging
import os
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError

from booking import ACTIVE_STATUSES, SlotTakenError
from schemas import Appointment, Client, Professional, Service

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

db = None
if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL)
    db = _client[DATABASE_NAME]


def to_object_id(_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(_id)
    except (InvalidId, TypeError):
        return None


def _with_id(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    d = {**doc}
    d["id"] = str(d.pop("_id"))
    return d


class MongoStore:
    def __init__(self, database):
        self.db = database
        self.ensure_indexes()

    def ensure_indexes(self):
        # one active appointment per (professional, date, time)
        self.db["appointment"].create_index(
            [("professional_id", ASCENDING), ("date", ASCENDING), ("time", ASCENDING)],
            name="active_slot_unique",
            unique=True,
            partialFilterExpression={"status": {"$in": list(ACTIVE_STATUSES)}},
        )
        self.db["client"].create_index("phone", unique=True)

    # ---------- Professionals ----------

    def get_professional(self, professional_id: str) -> Optional[Professional]:
        oid = to_object_id(professional_id)
        if oid is None:
            return None
        doc = self.db["professional"].find_one({"_id": oid})
        return Professional(**doc) if doc else None

    def list_professionals(self) -> List[dict]:
        return [_with_id(d) for d in self.db["professional"].find()]

    def create_professional(self, professional: Professional) -> dict:
        result = self.db["professional"].insert_one(professional.model_dump())
        return _with_id(self.db["professional"].find_one({"_id": result.inserted_id}))

    def update_professional(self, professional_id: str, updates: dict) -> Optional[dict]:
        return self._update("professional", professional_id, updates)

    def delete_professional(self, professional_id: str) -> bool:
        return self._delete("professional", professional_id)

    # ---------- Services ----------

    def get_service(self, service_id: str) -> Optional[Service]:
        oid = to_object_id(service_id)
        if oid is None:
            return None
        doc = self.db["service"].find_one({"_id": oid})
        return Service(**doc) if doc else None

    def list_services(self) -> List[dict]:
        return [_with_id(d) for d in self.db["service"].find()]

    def create_service(self, service: Service) -> dict:
        result = self.db["service"].insert_one(service.model_dump())
        return _with_id(self.db["service"].find_one({"_id": result.inserted_id}))

    def update_service(self, service_id: str, updates: dict) -> Optional[dict]:
        return self._update("service", service_id, updates)

    def delete_service(self, service_id: str) -> bool:
        return self._delete("service", service_id)

    # ---------- Appointments ----------

    def list_appointments(self, professional_id: Optional[str] = None, date: Optional[str] = None,
                          status: Optional[str] = None) -> List[Appointment]:
        filt = {}
        if professional_id:
            filt["professional_id"] = professional_id
        if date:
            filt["date"] = date
        if status:
            filt["status"] = status
        docs = self.db["appointment"].find(filt).sort([("date", ASCENDING), ("time", ASCENDING)])
        return [Appointment(**_with_id(d)) for d in docs]

    def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        oid = to_object_id(appointment_id)
        if oid is None:
            return None
        doc = self.db["appointment"].find_one({"_id": oid})
        return Appointment(**_with_id(doc)) if doc else None

    def append_appointment(self, appt: Appointment) -> None:
        data = appt.model_dump(exclude={"id"})
        data["_id"] = ObjectId(appt.id)
        try:
            self.db["appointment"].insert_one(data)
        except DuplicateKeyError:
            logger.warning(f"Rejected double booking for {appt.professional_id} at {appt.date} {appt.time}")
            raise SlotTakenError(appt.professional_id, appt.date, appt.time)

    def update_status(self, appointment_id: str, status: str) -> Optional[Appointment]:
        oid = to_object_id(appointment_id)
        if oid is None:
            return None
        try:
            doc = self.db["appointment"].find_one_and_update(
                {"_id": oid},
                {"$set": {"status": status, "updated_at": datetime.utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            current = self.get_appointment(appointment_id)
            raise SlotTakenError(current.professional_id, current.date, current.time)
        return Appointment(**_with_id(doc)) if doc else None

    # ---------- Clients ----------

    def find_by_phone(self, phone: str) -> Optional[Client]:
        doc = self.db["client"].find_one({"phone": phone})
        return Client(**doc) if doc else None

    def add_client_visit(self, name: str, phone: str, visit_date: str, appointment_id: str) -> None:
        update = {
            "$inc": {"total_visits": 1},
            "$set": {"last_visit": visit_date},
            "$push": {"appointments": appointment_id},
            "$setOnInsert": {"name": name},
        }
        try:
            self.db["client"].update_one({"phone": phone}, update, upsert=True)
        except DuplicateKeyError:
            # a concurrent first booking inserted the client; it exists now
            self.db["client"].update_one({"phone": phone}, update)

    def list_clients(self) -> List[Client]:
        return [Client(**d) for d in self.db["client"].find().sort("last_visit", -1)]

    # ---------- Helpers ----------

    def _update(self, collection: str, _id: str, updates: dict) -> Optional[dict]:
        oid = to_object_id(_id)
        if oid is None:
            return None
        if not updates:
            return _with_id(self.db[collection].find_one({"_id": oid}))
        doc = self.db[collection].find_one_and_update(
            {"_id": oid},
            {"$set": {**updates, "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return _with_id(doc)

    def _delete(self, collection: str, _id: str) -> bool:
        oid = to_object_id(_id)
        if oid is None:
            return False
        return self.db[collection].delete_one({"_id": oid}).deleted_count > 0

