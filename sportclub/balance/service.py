"""
Balance Service - Bilancio

Entrate (rate delle quote) contro uscite (payments) della stagione
attiva, divise in effettivo / previsto / da incassare.
"""

from datetime import date
from typing import Optional, List, Dict, Any, Iterable

from loguru import logger
from supabase import Client

from sportclub.errors import ValidationFailure, execute_read
from sportclub.payments.service import enrich_payments

PAID = "paid"


def _amount(row: Dict[str, Any]) -> float:
    try:
        return float(row.get("amount") or 0)
    except (TypeError, ValueError):
        return 0.0


def _split(rows: Iterable[Dict[str, Any]], today: str) -> Dict[str, float]:
    """
    actual      = pagato
    forecast    = non pagato, scadenza dopo oggi
    outstanding = non pagato, scadenza oggi o prima
    Le righe non pagate senza scadenza non finiscono in nessuna voce.
    """
    actual = forecast = outstanding = 0.0
    for row in rows:
        if row.get("status") == PAID:
            actual += _amount(row)
            continue
        due = row.get("due_date")
        if not due:
            continue
        if str(due)[:10] > today:
            forecast += _amount(row)
        else:
            outstanding += _amount(row)
    return {"actual": actual, "forecast": forecast, "outstanding": outstanding}


def summarize(
    installments: List[Dict[str, Any]],
    payments: List[Dict[str, Any]],
    today: Optional[date] = None
) -> Dict[str, Dict[str, float]]:
    """Riepilogo dal totale di rate (entrate) e uscite"""
    today_str = (today or date.today()).isoformat()
    income = _split(installments, today_str)
    expenses = _split(payments, today_str)

    summary = {}
    for bucket in ("actual", "forecast", "outstanding"):
        summary[bucket] = {
            "income": round(income[bucket], 2),
            "expenses": round(expenses[bucket], 2),
            "balance": round(income[bucket] - expenses[bucket], 2),
        }

    total_income = sum(income.values())
    total_expenses = sum(expenses.values())
    summary["total"] = {
        "income": round(total_income, 2),
        "expenses": round(total_expenses, 2),
        "balance": round(total_income - total_expenses, 2),
    }
    return summary


class BalanceService:
    """Servizio bilancio"""

    def __init__(self, client: Client):
        self.supabase = client

    def _select(self, table: str, columns: str, message: str, **filters) -> List[Dict[str, Any]]:
        query = self.supabase.table(table).select(columns)
        for column, value in filters.items():
            if isinstance(value, list):
                query = query.in_(column, value)
            else:
                query = query.eq(column, value)
        return execute_read(query, message).data or []

    async def get_active_season(self) -> Dict[str, Any]:
        seasons = execute_read(
            self.supabase.table("seasons").select("id, name").eq("is_active", True).limit(1),
            "Errore nel recupero della stagione"
        ).data
        if not seasons:
            raise ValidationFailure("Nessuna stagione attiva trovata")
        return seasons[0]

    async def get_balance(
        self,
        activity_id: Optional[str] = None,
        team_id: Optional[str] = None,
        gym_id: Optional[str] = None,
        coach_id: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Bilancio della stagione attiva.

        Le rate sono filtrate passando da quota → squadra → attività → stagione;
        il filtro palestra usa la palestra dell'attività. Le uscite hanno
        colonne proprie palestra/attività/squadra/allenatore. L'intervallo di
        date (entrambi gli estremi) si applica a due_date su entrambi i lati.
        """
        season = await self.get_active_season()

        activity_filters: Dict[str, Any] = {"season_id": season["id"]}
        if gym_id:
            activity_filters["gym_id"] = gym_id
        activities = self._select(
            "activities", "id", "Errore nel recupero delle attività", **activity_filters
        )
        activity_ids = [a["id"] for a in activities]
        if activity_id:
            activity_ids = [a for a in activity_ids if a == activity_id]

        installments: List[Dict[str, Any]] = []
        if activity_ids:
            team_filters: Dict[str, Any] = {"activity_id": activity_ids}
            if team_id:
                team_filters["id"] = team_id
            teams = self._select("teams", "id, activity_id", "Errore nel recupero delle squadre", **team_filters)
            team_ids = [t["id"] for t in teams]

            fee_ids = []
            if team_ids:
                fees = self._select(
                    "membership_fees", "id, team_id", "Errore nel recupero delle quote", team_id=team_ids
                )
                fee_ids = [f["id"] for f in fees]

            if fee_ids:
                query = self.supabase.table("fee_installments").select(
                    "id, amount, due_date, status, membership_fee_id"
                ).in_("membership_fee_id", fee_ids)
                if start_date and end_date:
                    query = query.gte("due_date", start_date).lte("due_date", end_date)
                installments = execute_read(query, "Errore nel recupero delle rate").data or []

        query = self.supabase.table("payments").select(
            "id, type, amount, status, due_date, gym_id, activity_id, team_id, coach_id"
        )
        if activity_id:
            query = query.eq("activity_id", activity_id)
        if team_id:
            query = query.eq("team_id", team_id)
        if gym_id:
            query = query.eq("gym_id", gym_id)
        if coach_id:
            query = query.eq("coach_id", coach_id)
        if start_date and end_date:
            query = query.gte("due_date", start_date).lte("due_date", end_date)
        payments = execute_read(query, "Errore nel recupero dei pagamenti").data or []

        logger.debug(
            f"Bilancio stagione {season.get('name')}: {len(installments)} rate, {len(payments)} uscite"
        )
        return {
            "season": season,
            "summary": summarize(installments, payments, today),
            "details": {
                "installments": installments,
                "payments": enrich_payments(self.supabase, payments),
            },
        }
