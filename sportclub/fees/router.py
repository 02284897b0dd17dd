"""
Membership Fee API Router - API quote associative

Piani di pagamento, generazione rate, ricalcolo stati, incassi.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from supabase import Client

from database.supabase_client import get_admin_client
from sportclub.auth import UserContext, require_admin
from sportclub.config import app_config
from sportclub.errors import ValidationFailure
from .models import (
    FeeAction,
    FeeActionRequest,
    InstallmentKPI,
    InstallmentPaymentRequest,
    MembershipFeeCreate,
    MembershipFeeUpdate,
)
from .service import MembershipFeeService

router = APIRouter(prefix="/admin", tags=["Membership Fees"])


def get_fee_service(client: Client = Depends(get_admin_client)) -> MembershipFeeService:
    return MembershipFeeService(client)


# =============================================
# Piani di pagamento
# =============================================

@router.post("/membership-fees")
async def create_membership_fee(
    payload: MembershipFeeCreate,
    user: UserContext = Depends(require_admin),
    service: MembershipFeeService = Depends(get_fee_service)
):
    """
    Crea una quota associativa

    total_amount è sempre calcolato lato server.
    """
    fee_id = await service.create_fee(payload, created_by=user.user_id)
    return {
        "success": True,
        "fee_id": fee_id,
        "message": "Quota associativa creata con successo"
    }


@router.get("/membership-fees")
async def list_membership_fees(
    user: UserContext = Depends(require_admin),
    service: MembershipFeeService = Depends(get_fee_service)
):
    """Quote con squadra, autore, rate predefinite e rate assegnate"""
    return {"fees": await service.list_fees()}


@router.put("/membership-fees")
async def update_membership_fee(
    payload: MembershipFeeUpdate,
    user: UserContext = Depends(require_admin),
    service: MembershipFeeService = Depends(get_fee_service)
):
    """Aggiorna una quota (rate predefinite sostituite se `installments` è presente)"""
    await service.update_fee(payload)
    return {
        "success": True,
        "message": "Quota associativa aggiornata con successo"
    }


@router.delete("/membership-fees")
async def delete_membership_fee(
    id: Optional[str] = Query(None, description="ID quota"),
    user: UserContext = Depends(require_admin),
    service: MembershipFeeService = Depends(get_fee_service)
):
    if not id:
        raise ValidationFailure("ID quota richiesto")

    await service.delete_fee(id)
    return {
        "success": True,
        "message": "Quota associativa eliminata con successo"
    }


@router.patch("/membership-fees")
async def membership_fee_action(
    body: FeeActionRequest,
    user: UserContext = Depends(require_admin),
    service: MembershipFeeService = Depends(get_fee_service)
):
    """
    Azioni sulle rate

    - generate_installments (fee_id)
    - recalculate_installment_statuses
    - bulk_update_installments (installment_ids, status)
    - update_installment_status (installment_id, status)
    - update_installment_details (installment_id, due_date and/or amount)
    """
    if body.action == FeeAction.generate_installments.value:
        if not body.fee_id:
            raise ValidationFailure("ID quota richiesto")

        result = await service.generate_installments(body.fee_id)
        return {
            "success": True,
            "message": f"Rate generate con successo per {result['members']} atleti basandosi sulle rate predefinite",
            **result
        }

    if body.action == FeeAction.recalculate_installment_statuses.value:
        updated = await service.recalculate_statuses()
        return {"success": True, "message": "Stati rate ricalcolati", "updated": updated}

    if body.action == FeeAction.bulk_update_installments.value:
        if not body.installment_ids or not body.status:
            raise ValidationFailure("Parametri non validi")

        count = await service.bulk_update_installments(body.installment_ids, body.status)
        return {"success": True, "message": "Aggiornamento rate completato", "updated": count}

    if body.action == FeeAction.update_installment_status.value:
        if not body.installment_id or not body.status:
            raise ValidationFailure("ID rata e stato richiesti")

        await service.update_installment_status(body.installment_id, body.status)
        return {"success": True, "message": "Stato rata aggiornato con successo"}

    if body.action == FeeAction.update_installment_details.value:
        if not body.installment_id:
            raise ValidationFailure("ID rata richiesto")

        await service.update_installment_details(body.installment_id, body.due_date, body.amount)
        return {"success": True, "message": "Dettagli rata aggiornati con successo"}

    raise ValidationFailure("Azione non supportata")


@router.get("/membership-fees/available")
async def list_available_membership_fees(
    team_id: Optional[str] = Query(None, description="Filtro squadra"),
    user: UserContext = Depends(require_admin),
    service: MembershipFeeService = Depends(get_fee_service)
):
    """Quote selezionabili quando si assegnano atleti a una squadra"""
    fees = await service.list_available_fees(team_id)
    return {"membership_fees": fees, "total": len(fees)}


# =============================================
# Rate
# =============================================

@router.get("/installments")
async def list_installments(
    team_id: Optional[str] = Query(None),
    profile_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="not_due|due_soon|overdue|partially_paid|paid|all"),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    limit: int = Query(200, ge=1),
    offset: int = Query(0, ge=0),
    user: UserContext = Depends(require_admin),
    service: MembershipFeeService = Depends(get_fee_service)
):
    return await service.list_installments(
        team_id=team_id,
        profile_id=profile_id,
        status=status,
        date_from=date_from,
        date_to=date_to,
        limit=min(limit, app_config.max_page_limit),
        offset=offset
    )


@router.get("/incassi/kpi")
async def installment_kpi(
    user: UserContext = Depends(require_admin),
    service: MembershipFeeService = Depends(get_fee_service)
):
    """Contatori incassi per stato"""
    data = await service.installment_kpi()
    return {"data": InstallmentKPI(**data)}


@router.post("/incassi/payments")
async def register_installment_payment(
    body: InstallmentPaymentRequest,
    user: UserContext = Depends(require_admin),
    service: MembershipFeeService = Depends(get_fee_service)
):
    """
    Registra il pagamento di una o più rate

    Se alcune rate non vengono aggiornate la risposta è 207 con l'elenco degli errori.
    """
    if not body.installment_ids:
        raise ValidationFailure("Nessuna rata selezionata")
    if not body.payment_date or not body.payment_method:
        raise ValidationFailure("Data e metodo di pagamento sono obbligatori")

    result = await service.register_payment(body.installment_ids, body.payment_date, body.payment_method)
    processed, errors = result["processed"], result["errors"]

    if errors:
        return JSONResponse(status_code=207, content={
            "message": f"Processate {len(processed)} rate, errori: {len(errors)}",
            "errors": errors,
            "processedInstallments": processed,
        })

    return {
        "success": True,
        "message": f"Pagamento registrato per {len(processed)} rate",
        "processedInstallments": processed,
    }
