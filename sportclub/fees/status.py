"""
Installment status rules - Regole stato rate

Funzioni pure, nessun accesso al database.
"""

from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union, Any

from .models import InstallmentStatus

DUE_SOON_DAYS = 30


def as_date(value: Union[str, date, datetime]) -> date:
    """ISO string / datetime → date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def compute_total_amount(
    enrollment_fee: float,
    insurance_fee: float,
    monthly_fee: float,
    months_count: float
) -> float:
    """enrollment + insurance + monthly × months"""
    total = (
        float(enrollment_fee or 0)
        + float(insurance_fee or 0)
        + float(monthly_fee or 0) * float(months_count or 0)
    )
    return round(total, 2)


def status_window(today: date, window_days: int = DUE_SOON_DAYS) -> Tuple[date, date]:
    """(oggi, ultimo giorno ancora in scadenza)"""
    return today, today + timedelta(days=window_days)


def derive_status(
    due_date: Union[str, date, datetime],
    today: Optional[date] = None,
    window_days: int = DUE_SOON_DAYS
) -> InstallmentStatus:
    """
    Stato calcolato dalla sola data di scadenza.

    - due_date < today                    → overdue
    - today <= due_date <= today + window → due_soon
    - due_date > today + window           → not_due

    paid / partially_paid non vengono mai derivati.
    """
    today = today or date.today()
    start, horizon = status_window(today, window_days)
    due = as_date(due_date)

    if due < start:
        return InstallmentStatus.overdue
    if due <= horizon:
        return InstallmentStatus.due_soon
    return InstallmentStatus.not_due


def build_installment_rows(
    membership_fee_id: str,
    profile_ids: Iterable[str],
    predefined: List[Dict[str, Any]],
    today: Optional[date] = None,
    window_days: int = DUE_SOON_DAYS,
    existing: Optional[Set[Tuple[str, int]]] = None
) -> List[Dict[str, Any]]:
    """
    Una riga per (atleta × rata predefinita).

    Le coppie (profile_id, installment_number) presenti in `existing` sono saltate.
    """
    today = today or date.today()
    existing = existing or set()
    rows = []

    for profile_id in profile_ids:
        for template in predefined:
            number = template["installment_number"]
            if (profile_id, number) in existing:
                continue
            rows.append({
                "membership_fee_id": membership_fee_id,
                "profile_id": profile_id,
                "installment_number": number,
                "due_date": as_date(template["due_date"]).isoformat(),
                "amount": template["amount"],
                "status": derive_status(template["due_date"], today, window_days).value,
            })

    return rows
