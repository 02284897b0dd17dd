"""
Payment Service - Servizio uscite

Spese generali e compensi degli allenatori. Sono le uscite sommate dal
bilancio; gli incassi delle quote restano in fee_installments.
"""

from typing import Optional, List, Dict, Any

from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client

from sportclub.errors import NotFound, PersistenceFailure, ValidationFailure, execute_read
from .models import PaymentCreate, PaymentStatus, PaymentType, PaymentUpdate


def enrich_payments(client: Client, payments: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Aggiunge palestra, attività, squadra, allenatore e autore a ogni uscita.
    Una lettura fallita lascia vuoti solo i dati collegati.
    """
    if not payments:
        return []

    def lookup(table: str, columns: str, key: str) -> Dict[str, Dict[str, Any]]:
        ids = list({p[key] for p in payments if p.get(key)})
        if not ids:
            return {}
        try:
            rows = client.table(table).select(columns).in_("id", ids).execute().data or []
        except APIError as e:
            logger.warning(f"Errore query {table}: {e}")
            return {}
        return {r["id"]: r for r in rows}

    gyms = lookup("gyms", "id, name, address", "gym_id")
    activities = lookup("activities", "id, name", "activity_id")
    teams = lookup("teams", "id, name, code", "team_id")
    coaches = lookup("profiles", "id, first_name, last_name", "coach_id")
    creators = lookup("profiles", "id, first_name, last_name", "created_by")

    enriched = []
    for p in payments:
        creator = creators.get(p.get("created_by"))
        enriched.append({
            **p,
            "gyms": gyms.get(p.get("gym_id")),
            "activities": activities.get(p.get("activity_id")),
            "teams": teams.get(p.get("team_id")),
            "coaches": coaches.get(p.get("coach_id")),
            "created_by_profile": {
                "first_name": creator.get("first_name"),
                "last_name": creator.get("last_name")
            } if creator else None,
        })
    return enriched


def _check_coach(data: Dict[str, Any]):
    """general_cost senza allenatore, coach_payment con allenatore"""
    if data.get("type") == PaymentType.general_cost.value:
        data["coach_id"] = None
    elif data.get("type") == PaymentType.coach_payment.value and not data.get("coach_id"):
        raise ValidationFailure("coach_id richiesto per type=coach_payment")


class PaymentService:
    """Servizio uscite"""

    def __init__(self, client: Client):
        self.supabase = client

    async def list_payments(self) -> List[Dict[str, Any]]:
        """Uscite per scadenza, quelle senza data per prime"""
        payments = execute_read(
            self.supabase.table("payments").select("*").order("due_date", nullsfirst=True),
            "Errore recupero pagamenti"
        ).data or []
        return enrich_payments(self.supabase, payments)

    async def create_payment(self, payload: PaymentCreate, created_by: str) -> Optional[Dict[str, Any]]:
        data = payload.model_dump(mode="json")
        _check_coach(data)
        data["created_by"] = created_by

        try:
            response = self.supabase.table("payments").insert(data).execute()
        except APIError as e:
            logger.error(f"Errore creazione pagamento: {e}")
            raise PersistenceFailure.from_api_error(e.message or "Errore creazione pagamento", e)

        payment = response.data[0] if response.data else None
        logger.info(
            f"Pagamento creato: {payment['id'] if payment else '?'} "
            f"({data['type']}, {data['amount']})"
        )
        return payment

    async def update_payment(self, payload: PaymentUpdate):
        data = payload.model_dump(mode="json", exclude_unset=True, exclude={"id"})
        if not data:
            raise ValidationFailure("Nessun dato da aggiornare")
        if "type" in data:
            _check_coach(data)

        try:
            response = self.supabase.table("payments").update(data).eq("id", payload.id).execute()
        except APIError as e:
            logger.error(f"Errore aggiornamento pagamento {payload.id}: {e}")
            raise PersistenceFailure.from_api_error(e.message or "Errore aggiornamento pagamento", e)

        if not response.data:
            raise NotFound("Pagamento non trovato")

        if data.get("status") == PaymentStatus.paid.value:
            logger.info(f"Pagamento {payload.id} segnato come pagato")
        else:
            logger.info(f"Pagamento aggiornato: {payload.id}")

    async def delete_payment(self, payment_id: str):
        try:
            response = self.supabase.table("payments").delete().eq("id", payment_id).execute()
        except APIError as e:
            logger.error(f"Errore eliminazione pagamento {payment_id}: {e}")
            raise PersistenceFailure.from_api_error(e.message or "Errore eliminazione pagamento", e)

        if not response.data:
            raise NotFound("Pagamento non trovato")

        logger.info(f"Pagamento eliminato: {payment_id}")
