"""
Membership fee models - Modelli quote associative
"""

from datetime import date
from typing import Optional, List, Any
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================
# Enums
# =============================================

class InstallmentStatus(str, Enum):
    """Stato di pagamento della rata"""
    not_due = "not_due"                 # non scaduta
    due_soon = "due_soon"               # in scadenza (entro la finestra)
    overdue = "overdue"                 # scaduta
    partially_paid = "partially_paid"   # riservato, mai derivato
    paid = "paid"                       # pagata (solo azione esplicita)


class FeeAction(str, Enum):
    """Azioni di PATCH /admin/membership-fees"""
    generate_installments = "generate_installments"
    recalculate_installment_statuses = "recalculate_installment_statuses"
    bulk_update_installments = "bulk_update_installments"
    update_installment_status = "update_installment_status"
    update_installment_details = "update_installment_details"


def parse_amount(value: Any) -> float:
    """
    Conversione tollerante dei numeri inseriti nei form.
    "12,5" → 12.5, "" / None → 0
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", ".")
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"Valore numerico non valido: {value}")


# =============================================
# Modelli richiesta
# =============================================

class PredefinedInstallmentIn(BaseModel):
    """Rata predefinita (modello)"""
    installment_number: int = Field(..., ge=1)
    due_date: date
    amount: float = Field(..., ge=0)
    description: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v):
        return parse_amount(v)


class MembershipFeeCreate(BaseModel):
    """Creazione quota associativa"""
    team_id: str
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    enrollment_fee: float = Field(default=0, ge=0)
    insurance_fee: float = Field(default=0, ge=0)
    monthly_fee: float = Field(default=0, ge=0)
    months_count: float = Field(default=0, ge=0)
    installments_count: int = Field(default=1, ge=1)
    installments: Optional[List[PredefinedInstallmentIn]] = None

    @field_validator("enrollment_fee", "insurance_fee", "monthly_fee", "months_count", mode="before")
    @classmethod
    def _decimal_comma(cls, v):
        return parse_amount(v)

    @field_validator("installments_count", mode="before")
    @classmethod
    def _installments_count(cls, v):
        if v is None or v == "":
            return 1
        return v

    @field_validator("installments")
    @classmethod
    def _sequential_numbers(cls, v):
        if v:
            numbers = sorted(i.installment_number for i in v)
            if numbers != list(range(1, len(numbers) + 1)):
                raise ValueError("I numeri delle rate devono essere sequenziali a partire da 1")
        return v


class MembershipFeeUpdate(MembershipFeeCreate):
    """Modifica quota associativa"""
    id: str


class FeeActionRequest(BaseModel):
    """Corpo di PATCH /admin/membership-fees"""
    action: str
    fee_id: Optional[str] = None
    installment_id: Optional[str] = None
    installment_ids: Optional[List[str]] = None
    status: Optional[InstallmentStatus] = None
    due_date: Optional[date] = None
    amount: Optional[float] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v):
        if v is None or v == "":
            return None
        return parse_amount(v)


class InstallmentPaymentRequest(BaseModel):
    """Registrazione pagamento di una o più rate"""
    model_config = ConfigDict(populate_by_name=True)

    installment_ids: Optional[List[str]] = Field(default=None, alias="installmentIds")
    payment_date: Optional[date] = Field(default=None, alias="paymentDate")
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")


# =============================================
# Modelli risposta
# =============================================

class InstallmentKPI(BaseModel):
    """Contatori rate per la dashboard incassi"""
    not_due: int = 0
    due_soon: int = 0
    overdue: int = 0
    partially_paid: int = 0
    paid: int = 0
    total_amount: float = 0
    total_paid: float = 0
