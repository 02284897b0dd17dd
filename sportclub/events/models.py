"""
Event models - Modelli eventi
"""

from datetime import datetime
from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator

from .recurrence import RecurrenceRule, parse_boundary


class EventType(str, Enum):
    one_time = "one_time"
    recurring = "recurring"


class DeleteScope(str, Enum):
    one = "one"         # solo questo evento
    series = "series"   # tutta la serie (parent_event_id)


class AttendanceStatus(str, Enum):
    going = "going"
    maybe = "maybe"
    declined = "declined"


class EventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    location: Optional[str] = None
    gym_id: Optional[str] = None
    activity_id: Optional[str] = None
    event_type: EventType = EventType.one_time
    event_kind: str = "training"
    requires_confirmation: bool = False
    confirmation_deadline: Optional[datetime] = None
    selected_teams: Optional[List[str]] = None

    @model_validator(mode="after")
    def _end_after_start(self):
        try:
            ends_before = self.end_date < self.start_date
        except TypeError:
            raise ValueError("Date di inizio e fine con fuso orario incoerente")
        if ends_before:
            raise ValueError("La data di fine deve essere successiva alla data di inizio")
        return self


class EventCreate(EventBase):
    """Creazione evento singolo o ricorrente"""
    recurrence_rule: Optional[RecurrenceRule] = None
    recurrence_end_date: Optional[str] = None

    @field_validator("recurrence_end_date")
    @classmethod
    def _valid_boundary(cls, v):
        if v:
            try:
                parse_boundary(v)
            except ValueError:
                raise ValueError("Data fine ricorrenza non valida")
        return v


class EventUpdate(EventBase):
    """Modifica di un evento"""
    id: str
    event_type: Optional[EventType] = None
    requires_confirmation: Optional[bool] = None


class AttendanceResponse(BaseModel):
    """Risposta dell'atleta a un evento"""
    event_id: str = Field(..., min_length=1)
    status: AttendanceStatus
    note: Optional[str] = None
