"""
Payment API Router - API uscite
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from supabase import Client

from database.supabase_client import get_admin_client
from sportclub.auth import UserContext, require_admin
from sportclub.errors import ValidationFailure
from .models import PaymentCreate, PaymentUpdate
from .service import PaymentService

router = APIRouter(prefix="/admin/payments", tags=["Payments"])


def get_payment_service(client: Client = Depends(get_admin_client)) -> PaymentService:
    return PaymentService(client)


@router.get("")
async def list_payments(
    user: UserContext = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service)
):
    """Uscite con palestra, attività, squadra, allenatore e autore"""
    return {"payments": await service.list_payments()}


@router.post("")
async def create_payment(
    payload: PaymentCreate,
    user: UserContext = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service)
):
    payment = await service.create_payment(payload, created_by=user.user_id)
    return {"success": True, "payment": payment, "message": "Pagamento creato con successo"}


@router.patch("")
async def update_payment(
    payload: PaymentUpdate,
    user: UserContext = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service)
):
    if not payload.id:
        raise ValidationFailure("ID pagamento richiesto")

    await service.update_payment(payload)
    return {"success": True, "message": "Pagamento aggiornato con successo"}


@router.delete("")
async def delete_payment(
    id: Optional[str] = Query(None, description="ID pagamento"),
    user: UserContext = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service)
):
    if not id:
        raise ValidationFailure("ID pagamento richiesto")

    await service.delete_payment(id)
    return {"success": True, "message": "Pagamento eliminato con successo"}
