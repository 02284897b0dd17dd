"""
Membership Fee Service - Servizio quote associative

Piani di pagamento, rate predefinite (modelli) e rate per atleta
generate a partire da essi.
"""

from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Optional, List, Dict, Any

from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client

from sportclub.config import app_config
from sportclub.errors import NotFound, PersistenceFailure, ValidationFailure, execute_read
from .models import (
    InstallmentStatus,
    MembershipFeeCreate,
    MembershipFeeUpdate,
)
from .status import (
    build_installment_rows,
    compute_total_amount,
    status_window,
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _index_by_id(rows: Optional[List[Dict[str, Any]]]) -> Dict[Any, Dict[str, Any]]:
    return {r["id"]: r for r in (rows or [])}


class MembershipFeeService:
    """Servizio quote associative"""

    def __init__(self, client: Client, window_days: Optional[int] = None):
        self.supabase = client
        self.window_days = window_days if window_days is not None else app_config.due_soon_days

    def _by_ids(self, table: str, columns: str, ids: List[str], message: str) -> Dict[Any, Dict[str, Any]]:
        if not ids:
            return {}
        query = self.supabase.table(table).select(columns).in_("id", ids)
        return _index_by_id(execute_read(query, message).data)

    # =============================================
    # Piani di pagamento
    # =============================================

    def _fee_row(self, payload: MembershipFeeCreate) -> Dict[str, Any]:
        return {
            "team_id": payload.team_id,
            "name": payload.name,
            "description": payload.description or None,
            "enrollment_fee": payload.enrollment_fee,
            "insurance_fee": payload.insurance_fee,
            "monthly_fee": payload.monthly_fee,
            "months_count": payload.months_count,
            "installments_count": payload.installments_count,
            "total_amount": compute_total_amount(
                payload.enrollment_fee,
                payload.insurance_fee,
                payload.monthly_fee,
                payload.months_count
            ),
        }

    def _insert_predefined(self, fee_id: str, payload: MembershipFeeCreate):
        """Rate modello; un errore viene registrato ma la quota resta"""
        rows = [
            {
                "membership_fee_id": fee_id,
                "installment_number": i.installment_number,
                "due_date": i.due_date.isoformat(),
                "amount": i.amount,
                "description": i.description,
            }
            for i in payload.installments or []
        ]
        if not rows:
            return
        try:
            self.supabase.table("predefined_installments").insert(rows).execute()
        except APIError as e:
            logger.error(f"Errore creazione rate predefinite (quota {fee_id}): {e}")

    async def create_fee(self, payload: MembershipFeeCreate, created_by: str) -> str:
        """Crea la quota e le sue rate predefinite"""
        row = self._fee_row(payload)
        row["created_by"] = created_by

        try:
            response = self.supabase.table("membership_fees").insert(row).execute()
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore creazione quota associativa", e)

        if not response.data:
            raise PersistenceFailure("Errore creazione quota associativa")

        fee_id = response.data[0]["id"]
        self._insert_predefined(fee_id, payload)

        logger.info(f"Quota associativa creata: {fee_id} (totale {row['total_amount']})")
        return fee_id

    async def update_fee(self, payload: MembershipFeeUpdate):
        """Aggiorna la quota; le rate predefinite vengono sostituite se presenti"""
        row = self._fee_row(payload)

        try:
            self.supabase.table("membership_fees").update(row).eq("id", payload.id).execute()
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore aggiornamento quota associativa", e)

        if payload.installments is not None:
            try:
                self.supabase.table("predefined_installments").delete().eq(
                    "membership_fee_id", payload.id
                ).execute()
            except APIError as e:
                logger.error(f"Errore eliminazione rate predefinite (quota {payload.id}): {e}")
            else:
                self._insert_predefined(payload.id, payload)

        logger.info(f"Quota associativa aggiornata: {payload.id}")

    async def delete_fee(self, fee_id: str):
        """Elimina rate predefinite, rate assegnate e infine la quota"""
        try:
            self.supabase.table("predefined_installments").delete().eq("membership_fee_id", fee_id).execute()
            self.supabase.table("fee_installments").delete().eq("membership_fee_id", fee_id).execute()
            self.supabase.table("membership_fees").delete().eq("id", fee_id).execute()
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore eliminazione quota associativa", e)

        logger.info(f"Quota associativa eliminata: {fee_id}")

    async def get_fee(self, fee_id: str) -> Dict[str, Any]:
        """Quota per id; errore di lettura o quota assente → 404"""
        try:
            response = self.supabase.table("membership_fees").select("*").eq("id", fee_id).limit(1).execute()
        except APIError as e:
            logger.error(f"Errore recupero quota {fee_id}: {e}")
            raise NotFound("Quota non trovata")
        if not response.data:
            raise NotFound("Quota non trovata")
        return response.data[0]

    async def list_fees(self) -> List[Dict[str, Any]]:
        """
        Tutte le quote con squadra, autore, rate predefinite e rate assegnate.
        I dati collegati sono letti con una query per tabella.
        """
        fees = execute_read(
            self.supabase.table("membership_fees").select("*").order("created_at", desc=True),
            "Errore recupero quote"
        ).data or []

        if not fees:
            return []

        fee_ids = [f["id"] for f in fees]
        team_ids = list({f["team_id"] for f in fees if f.get("team_id")})

        teams = self._by_ids("teams", "id, name, code", team_ids, "Errore recupero squadre")

        predefined = execute_read(
            self.supabase.table("predefined_installments").select(
                "id, membership_fee_id, installment_number, due_date, amount, description"
            ).in_("membership_fee_id", fee_ids).order("installment_number"),
            "Errore recupero rate predefinite"
        ).data or []

        installments = execute_read(
            self.supabase.table("fee_installments").select(
                "id, membership_fee_id, profile_id, installment_number, due_date, amount, status, paid_at"
            ).in_("membership_fee_id", fee_ids),
            "Errore recupero rate"
        ).data or []

        profile_ids = list(
            {f["created_by"] for f in fees if f.get("created_by")}
            | {i["profile_id"] for i in installments if i.get("profile_id")}
        )
        profiles = self._by_ids("profiles", "id, first_name, last_name", profile_ids, "Errore recupero profili")

        predefined_by_fee = defaultdict(list)
        for p in predefined:
            predefined_by_fee[p["membership_fee_id"]].append(p)

        installments_by_fee = defaultdict(list)
        for i in installments:
            profile = profiles.get(i.get("profile_id"))
            installments_by_fee[i["membership_fee_id"]].append({
                **i,
                "profiles": {
                    "first_name": profile.get("first_name"),
                    "last_name": profile.get("last_name")
                } if profile else None
            })

        enriched = []
        for fee in fees:
            creator = profiles.get(fee.get("created_by"))
            enriched.append({
                **fee,
                "teams": teams.get(fee.get("team_id")),
                "created_by_profile": {
                    "first_name": creator.get("first_name"),
                    "last_name": creator.get("last_name")
                } if creator else None,
                "predefined_installments": predefined_by_fee.get(fee["id"], []),
                "fee_installments": installments_by_fee.get(fee["id"], []),
            })

        return enriched

    async def list_available_fees(self, team_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Quote assegnabili agli atleti di una squadra"""
        query = self.supabase.table("membership_fees").select(
            "id, name, description, total_amount, enrollment_fee, insurance_fee, "
            "monthly_fee, months_count, installments_count, team_id"
        )
        if team_id:
            query = query.eq("team_id", team_id)

        fees = execute_read(query.order("name"), "Errore recupero piani di pagamento").data or []

        team_ids = list({f["team_id"] for f in fees if f.get("team_id")})
        teams = self._by_ids("teams", "id, name, code", team_ids, "Errore recupero squadre")

        result = []
        for fee in fees:
            team = teams.get(fee.get("team_id"))
            # quote di squadre eliminate non sono assegnabili
            if not team:
                continue
            result.append({
                **fee,
                "team_name": team.get("name"),
                "team_code": team.get("code"),
            })
        return result

    # =============================================
    # Generazione rate
    # =============================================

    async def get_predefined_installments(self, fee_id: str) -> List[Dict[str, Any]]:
        try:
            response = self.supabase.table("predefined_installments").select("*").eq(
                "membership_fee_id", fee_id
            ).order("installment_number").execute()
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore recupero rate predefinite", e)
        return response.data or []

    async def generate_installments(self, fee_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Una rata per ogni (membro della squadra × rata predefinita).

        Le coppie già presenti per la quota, con chiave
        (profile_id, membership_fee_id, installment_number), non vengono
        toccate: rieseguire la generazione riempie solo i buchi
        (es. nuovi membri della squadra).
        """
        fee = await self.get_fee(fee_id)

        predefined = await self.get_predefined_installments(fee_id)
        if not predefined:
            raise ValidationFailure("Nessuna rata predefinita trovata per questa quota")

        try:
            members = self.supabase.table("team_members").select("profile_id").eq(
                "team_id", fee["team_id"]
            ).execute().data or []
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore recupero membri squadra", e)

        profile_ids = list(dict.fromkeys(m["profile_id"] for m in members if m.get("profile_id")))

        existing_rows = execute_read(
            self.supabase.table("fee_installments").select(
                "profile_id, installment_number"
            ).eq("membership_fee_id", fee_id),
            "Errore recupero rate esistenti"
        ).data or []
        existing = {(r["profile_id"], r["installment_number"]) for r in existing_rows}

        rows = build_installment_rows(
            fee_id, profile_ids, predefined, today, self.window_days, existing
        )

        if rows:
            try:
                self.supabase.table("fee_installments").insert(rows).execute()
            except APIError as e:
                raise PersistenceFailure.from_api_error(
                    e.message or "Errore creazione rate", e, attempting=len(rows)
                )

        skipped = len(profile_ids) * len(predefined) - len(rows)
        logger.info(
            f"Rate generate per quota {fee_id}: {len(rows)} create, {skipped} già presenti "
            f"({len(profile_ids)} atleti)"
        )

        return {
            "members": len(profile_ids),
            "created": len(rows),
            "skipped": skipped,
        }

    async def assign_fee_to_athletes(
        self,
        fee_id: str,
        athlete_ids: List[str],
        today: Optional[date] = None
    ) -> int:
        """
        Sostituisce le rate degli atleti per una quota.
        Le righe esistenti per (profile_id, membership_fee_id) vengono prima eliminate.
        """
        try:
            self.supabase.table("fee_installments").delete().in_(
                "profile_id", athlete_ids
            ).eq("membership_fee_id", fee_id).execute()
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore rimozione rate esistenti", e)

        predefined = await self.get_predefined_installments(fee_id)
        if not predefined:
            logger.error(f"Nessuna rata predefinita trovata per il piano di pagamento: {fee_id}")
            return 0

        rows = build_installment_rows(fee_id, athlete_ids, predefined, today, self.window_days)
        try:
            self.supabase.table("fee_installments").insert(rows).execute()
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore creazione rate", e, attempting=len(rows))

        logger.info(f"Rate assegnate per quota {fee_id}: {len(rows)}")
        return len(rows)

    # =============================================
    # Ricalcolo stati
    # =============================================

    async def recalculate_statuses(self, today: Optional[date] = None) -> Dict[str, int]:
        """
        Ricalcola lo stato di tutte le rate non pagate dalla data di scadenza.

        Tre update disgiunti; ognuno esclude le rate già nello stato di
        destinazione e quelle pagate. Ritorna le righe modificate per stato.
        """
        today = today or date.today()
        start, horizon = status_window(today, self.window_days)
        today_str, horizon_str = start.isoformat(), horizon.isoformat()
        table = "fee_installments"
        paid = InstallmentStatus.paid.value

        updated = {}

        try:
            response = self.supabase.table(table).update(
                {"status": InstallmentStatus.overdue.value}
            ).lt("due_date", today_str).neq("status", paid).neq(
                "status", InstallmentStatus.overdue.value
            ).execute()
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore aggiornamento rate scadute", e)
        updated[InstallmentStatus.overdue.value] = len(response.data or [])

        try:
            response = self.supabase.table(table).update(
                {"status": InstallmentStatus.due_soon.value}
            ).gte("due_date", today_str).lte("due_date", horizon_str).neq("status", paid).neq(
                "status", InstallmentStatus.due_soon.value
            ).execute()
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore aggiornamento rate in scadenza", e)
        updated[InstallmentStatus.due_soon.value] = len(response.data or [])

        try:
            response = self.supabase.table(table).update(
                {"status": InstallmentStatus.not_due.value}
            ).gt("due_date", horizon_str).neq("status", paid).neq(
                "status", InstallmentStatus.not_due.value
            ).execute()
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore aggiornamento rate non scadute", e)
        updated[InstallmentStatus.not_due.value] = len(response.data or [])

        logger.info(f"Stati rate ricalcolati ({today_str}): {updated}")
        return updated

    # =============================================
    # Modifiche manuali
    # =============================================

    @staticmethod
    def _status_update(status: InstallmentStatus) -> Dict[str, Any]:
        """paid imposta paid_at, ogni altro stato lo azzera"""
        if status == InstallmentStatus.paid:
            return {"status": status.value, "paid_at": _now_iso()}
        return {"status": status.value, "paid_at": None}

    async def update_installment_status(self, installment_id: str, status: InstallmentStatus):
        try:
            self.supabase.table("fee_installments").update(
                self._status_update(status)
            ).eq("id", installment_id).execute()
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore aggiornamento stato rata", e)

    async def bulk_update_installments(self, installment_ids: List[str], status: InstallmentStatus) -> int:
        try:
            response = self.supabase.table("fee_installments").update(
                self._status_update(status)
            ).in_("id", installment_ids).execute()
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore aggiornamento rate", e)

        count = len(response.data or [])
        logger.info(f"Aggiornamento massivo rate → {status.value}: {count}")
        return count

    async def update_installment_details(
        self,
        installment_id: str,
        due_date: Optional[date] = None,
        amount: Optional[float] = None
    ):
        data: Dict[str, Any] = {}
        if due_date:
            data["due_date"] = due_date.isoformat()
        if amount is not None:
            data["amount"] = amount

        if not data:
            raise ValidationFailure("Nessun dato da aggiornare")

        try:
            self.supabase.table("fee_installments").update(data).eq("id", installment_id).execute()
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore aggiornamento dettagli rata", e)

    # =============================================
    # Pagamenti
    # =============================================

    async def register_payment(
        self,
        installment_ids: List[str],
        payment_date: date,
        payment_method: str
    ) -> Dict[str, Any]:
        """
        Segna come pagate le rate indicate, con paid_at = data del pagamento.

        Solo le rate assegnate a un atleta (profile_id presente) vengono
        considerate. Ogni rata è aggiornata separatamente: gli errori sono
        raccolti e non interrompono le altre.
        """
        rows = execute_read(
            self.supabase.table("fee_installments").select("*").in_("id", installment_ids),
            "Errore caricamento rate"
        ).data or []
        installments = [r for r in rows if r.get("profile_id")]

        if not installments:
            raise NotFound("Rate non trovate")

        processed = []
        errors = []
        for installment in installments:
            try:
                self.supabase.table("fee_installments").update({
                    "status": InstallmentStatus.paid.value,
                    "paid_at": payment_date.isoformat(),
                }).eq("id", installment["id"]).execute()
            except APIError as e:
                errors.append(f"Errore aggiornamento rata {installment['id']}: {e.message or e}")
                continue
            processed.append({"id": installment["id"], "amount": installment.get("amount")})

        logger.info(
            f"Pagamento registrato ({payment_method}, {payment_date.isoformat()}): "
            f"{len(processed)} rate, {len(errors)} errori"
        )
        return {"processed": processed, "errors": errors}

    # =============================================
    # Elenchi / KPI
    # =============================================

    async def list_installments(
        self,
        team_id: Optional[str] = None,
        profile_id: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 200,
        offset: int = 0
    ) -> Dict[str, Any]:
        """
        Rate filtrate, con atleta, quota e squadra.
        Il filtro squadra passa da membership_fees.team_id.
        """
        query = self.supabase.table("fee_installments").select(
            "id, membership_fee_id, profile_id, installment_number, due_date, amount, status, paid_at"
        )
        if profile_id:
            query = query.eq("profile_id", profile_id)
        if status and status != "all":
            query = query.eq("status", status)
        if date_from:
            query = query.gte("due_date", date_from.isoformat())
        if date_to:
            query = query.lte("due_date", date_to.isoformat())

        rows = execute_read(query.order("due_date"), "Errore recupero rate").data or []

        fee_ids = list({r["membership_fee_id"] for r in rows if r.get("membership_fee_id")})
        fees = self._by_ids("membership_fees", "id, name, team_id", fee_ids, "Errore recupero quote")

        if team_id:
            rows = [r for r in rows if fees.get(r.get("membership_fee_id"), {}).get("team_id") == team_id]

        team_ids = list({f["team_id"] for f in fees.values() if f.get("team_id")})
        teams = self._by_ids("teams", "id, name, code", team_ids, "Errore recupero squadre")

        profile_ids = list({r["profile_id"] for r in rows if r.get("profile_id")})
        profiles = self._by_ids("profiles", "id, first_name, last_name", profile_ids, "Errore recupero profili")

        total = len(rows)
        items = []
        for r in rows[offset:offset + limit]:
            fee = fees.get(r.get("membership_fee_id"))
            team = teams.get(fee.get("team_id")) if fee else None
            items.append({
                **r,
                "profile": profiles.get(r.get("profile_id")),
                "membership_fee": {"id": fee["id"], "name": fee["name"]} if fee else None,
                "team": team,
            })

        return {"items": items, "total": total}

    async def installment_kpi(self) -> Dict[str, Any]:
        """Contatori per stato e importi, solo rate assegnate"""
        try:
            rows = self.supabase.table("fee_installments").select(
                "profile_id, amount, due_date, status, paid_at"
            ).execute().data or []
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore caricamento dati", e)

        counters = {s.value: 0 for s in InstallmentStatus}
        total_amount = 0.0
        total_paid = 0.0

        for row in rows:
            if not row.get("profile_id"):
                continue
            status = row.get("status")
            if status in counters:
                counters[status] += 1
            amount = float(row.get("amount") or 0)
            total_amount += amount
            if row.get("paid_at"):
                total_paid += amount

        return {
            **counters,
            "total_amount": round(total_amount, 2),
            "total_paid": round(total_paid, 2),
        }

    async def athlete_installments(self, profile_id: str) -> List[Dict[str, Any]]:
        """Rate dell'atleta con quota, squadra e attività"""
        try:
            rows = self.supabase.table("fee_installments").select(
                "id, installment_number, due_date, amount, status, paid_at, membership_fee_id"
            ).eq("profile_id", profile_id).order("due_date").execute().data or []
        except APIError as e:
            raise PersistenceFailure.from_api_error("Errore caricamento rate", e)

        fee_ids = list({r["membership_fee_id"] for r in rows if r.get("membership_fee_id")})
        if not fee_ids:
            return []

        fees = self._by_ids(
            "membership_fees",
            "id, team_id, name, description, total_amount, enrollment_fee, insurance_fee, "
            "monthly_fee, months_count, installments_count",
            fee_ids,
            "Errore caricamento quote"
        )

        team_ids = list({f["team_id"] for f in fees.values() if f.get("team_id")})
        teams = self._by_ids("teams", "id, name, code, activity_id", team_ids, "Errore caricamento squadre")

        activity_ids = list({t["activity_id"] for t in teams.values() if t.get("activity_id")})
        activities = self._by_ids("activities", "id, name", activity_ids, "Errore caricamento attività")

        composed = []
        for row in rows:
            fee = fees.get(row["membership_fee_id"]) or {}
            team = teams.get(fee.get("team_id")) or {}
            activity = activities.get(team.get("activity_id")) or {}
            composed.append({
                "id": row["id"],
                "installment_number": row["installment_number"],
                "due_date": row["due_date"],
                "amount": row["amount"],
                "status": row["status"],
                "paid_at": row.get("paid_at"),
                "membership_fee": {
                    "id": fee.get("id"),
                    "name": fee.get("name") or "Quota",
                    "description": fee.get("description"),
                    "total_amount": fee.get("total_amount") or 0,
                    "enrollment_fee": fee.get("enrollment_fee") or 0,
                    "insurance_fee": fee.get("insurance_fee") or 0,
                    "monthly_fee": fee.get("monthly_fee") or 0,
                    "months_count": fee.get("months_count") or 0,
                    "installments_count": fee.get("installments_count") or 1,
                    "team": {
                        "name": team.get("name") or "N/D",
                        "code": team.get("code") or "N/D",
                        "activity": {"name": activity.get("name") or "N/D"},
                    },
                },
            })
        return composed
