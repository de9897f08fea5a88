"""
Database Schemas for the Salon Booking System

Each Pydantic model maps to a MongoDB collection using the lowercase class name.
Examples:
- Professional -> "professional"
- Service -> "service"
- Appointment -> "appointment"
- Client -> "client"
"""

import re
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

AppointmentStatus = Literal["confirmed", "cancelled", "completed"]


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def check_weekdays(days: List[int]) -> List[int]:
    if any(d < 0 or d > 6 for d in days):
        raise ValueError("available_days entries must be between 0 (Sunday) and 6 (Saturday)")
    return sorted(set(days))


class AvailableHours(BaseModel):
    start: str = Field("09:00", pattern=TIME_PATTERN, description="Opening time HH:MM")
    end: str = Field("18:00", pattern=TIME_PATTERN, description="Closing time HH:MM")

    @model_validator(mode="after")
    def check_order(self):
        # zero-padded HH:MM compares correctly as text
        if self.start >= self.end:
            raise ValueError("available_hours.start must be before available_hours.end")
        return self


class Professional(BaseModel):
    """
    Salon professionals
    Collection: professional
    """
    name: str = Field(..., min_length=1, description="Display name")
    specialty: str = Field("", description="Specialty text e.g. 'Colorist'")
    photo: str = Field("", description="Photo URL or storage reference")
    services: List[str] = Field(default_factory=list, description="IDs of offered services")
    available_days: List[int] = Field(
        default_factory=lambda: [1, 2, 3, 4, 5],
        description="Working weekdays, 0=Sunday .. 6=Saturday",
    )
    available_hours: AvailableHours = Field(default_factory=AvailableHours)

    @field_validator("available_days")
    @classmethod
    def check_days(cls, days: List[int]) -> List[int]:
        return check_weekdays(days)


class Service(BaseModel):
    """
    Services offered by the salon
    Collection: service
    """
    name: str = Field(..., min_length=1, description="Service name e.g. 'Corte feminino'")
    price: float = Field(..., ge=0, description="Price")
    duration: int = Field(..., gt=0, description="Duration of the service in minutes")
    category: str = Field("", description="Category label")
    professional_id: Optional[str] = Field(None, description="Owning professional, if any")


class Appointment(BaseModel):
    """
    Appointments linking client, professional and service
    Collection: appointment
    """
    id: Optional[str] = None
    client_name: str = Field(..., description="Name of the client")
    client_phone: str = Field(..., description="Client phone, digits only")
    service_id: str = Field(..., description="ID of the service")
    professional_id: str = Field(..., description="ID of the professional")
    date: str = Field(..., pattern=DATE_PATTERN, description="YYYY-MM-DD")
    time: str = Field(..., pattern=TIME_PATTERN, description="HH:MM on the slot grid")
    status: AppointmentStatus = Field("confirmed", description="Status of appointment")
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Client(BaseModel):
    """
    Per-phone rollup of booking history
    Collection: client
    """
    name: str
    phone: str = Field(..., description="Natural key, digits only")
    total_visits: int = Field(0, ge=0)
    last_visit: Optional[str] = Field(None, description="Date of the most recently booked visit")
    appointments: List[str] = Field(default_factory=list, description="Appointment ids in booking order")


# ---------- Request Models ----------

class ProfessionalUpdate(BaseModel):
    name: Optional[str] = None
    specialty: Optional[str] = None
    photo: Optional[str] = None
    services: Optional[List[str]] = None
    available_days: Optional[List[int]] = None
    available_hours: Optional[AvailableHours] = None

    @field_validator("available_days")
    @classmethod
    def check_days(cls, days: Optional[List[int]]) -> Optional[List[int]]:
        if days is None:
            return days
        return check_weekdays(days)


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    duration: Optional[int] = Field(None, gt=0)
    category: Optional[str] = None
    professional_id: Optional[str] = None


class BookingRequest(BaseModel):
    client_name: str = Field(...)
    client_phone: str = Field(...)
    service_id: str = Field(...)
    professional_id: str = Field(...)
    date: str = Field(..., pattern=DATE_PATTERN)
    time: str = Field(..., pattern=TIME_PATTERN)

    @field_validator("client_name")
    @classmethod
    def check_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("client_name must have at least 3 characters")
        return value

    @field_validator("client_phone")
    @classmethod
    def normalize_phone(cls, value: str) -> str:
        phone = digits_only(value)
        if len(phone) < 10:
            raise ValueError("client_phone must have at least 10 digits")
        return phone


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
