"""
Payment models - Uscite della società
"""

from datetime import date
from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field, field_validator

from sportclub.fees.models import parse_amount


class PaymentType(str, Enum):
    general_cost = "general_cost"       # spesa generale
    coach_payment = "coach_payment"     # compenso allenatore


class PaymentFrequency(str, Enum):
    one_time = "one_time"
    recurring = "recurring"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"


class PaymentBase(BaseModel):
    description: Optional[str] = None
    recurrence_pattern: Optional[str] = None
    due_date: Optional[date] = None
    gym_id: Optional[str] = None
    activity_id: Optional[str] = None
    team_id: Optional[str] = None
    coach_id: Optional[str] = None

    @field_validator(
        "recurrence_pattern", "due_date", "gym_id", "activity_id", "team_id", "coach_id",
        mode="before"
    )
    @classmethod
    def _blank_to_none(cls, v):
        return None if v == "" else v


class PaymentCreate(PaymentBase):
    """Nuova uscita"""
    type: PaymentType = PaymentType.general_cost
    amount: float = Field(default=0, ge=0)
    frequency: PaymentFrequency = PaymentFrequency.one_time
    status: PaymentStatus = PaymentStatus.pending

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        """Stato assente o "to_pay" (dal form) → pending"""
        if not v or v == "to_pay":
            return PaymentStatus.pending.value
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v):
        return parse_amount(v)


class PaymentUpdate(PaymentBase):
    """Modifica di un'uscita; solo i campi inviati vengono aggiornati"""
    id: Optional[str] = None
    type: Optional[PaymentType] = None
    amount: Optional[float] = Field(default=None, ge=0)
    frequency: Optional[PaymentFrequency] = None
    status: Optional[PaymentStatus] = None

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        if v == "to_pay":
            return PaymentStatus.pending.value
        return v or None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v):
        if v is None or v == "":
            return None
        return parse_amount(v)
