"""
Event Service - Servizio eventi

Eventi del calendario, serie ricorrenti, squadre collegate e riepilogo
delle presenze.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client

from sportclub.config import app_config
from sportclub.errors import NotFound, PersistenceFailure, ValidationFailure, execute_read
from .models import EventCreate, EventUpdate, EventType, DeleteScope, AttendanceStatus
from .recurrence import expand_occurrences, parse_boundary


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class EventService:
    """Servizio eventi"""

    def __init__(self, client: Client, max_occurrences: Optional[int] = None):
        self.supabase = client
        self.max_occurrences = (
            max_occurrences if max_occurrences is not None
            else app_config.max_recurrence_occurrences
        )

    # =============================================
    # Creazione
    # =============================================

    def _base_row(self, payload: EventCreate, created_by: str) -> Dict[str, Any]:
        return {
            "title": payload.title,
            "description": payload.description or None,
            "location": payload.location or None,
            "gym_id": payload.gym_id or None,
            "activity_id": payload.activity_id or None,
            "event_kind": payload.event_kind or "training",
            "requires_confirmation": payload.requires_confirmation,
            "confirmation_deadline": (
                _iso(payload.confirmation_deadline) if payload.requires_confirmation else None
            ),
            "created_by": created_by,
        }

    async def create_event(self, payload: EventCreate, created_by: str) -> List[str]:
        """
        Inserisce un evento singolo oppure tutte le occorrenze di uno ricorrente.

        Le occorrenze sono righe indipendenti; dopo l'inserimento ricevono
        tutte parent_event_id = id della prima riga inserita.
        """
        base = self._base_row(payload, created_by)

        if payload.event_type == EventType.recurring and payload.recurrence_rule:
            until = parse_boundary(payload.recurrence_end_date)
            occurrences = expand_occurrences(
                payload.start_date,
                payload.end_date,
                payload.recurrence_rule,
                until,
                self.max_occurrences
            )
            if not occurrences:
                raise ValidationFailure("La data di fine ricorrenza precede l'inizio dell'evento")

            rows = [
                {
                    **base,
                    "start_date": start.isoformat(),
                    "end_date": end.isoformat(),
                    "event_type": EventType.recurring.value,
                    "recurrence_rule": payload.recurrence_rule.model_dump(mode="json"),
                    "recurrence_end_date": payload.recurrence_end_date,
                }
                for start, end in occurrences
            ]
            error_message = "Errore creazione eventi ricorrenti"
        else:
            rows = [{
                **base,
                "start_date": payload.start_date.isoformat(),
                "end_date": payload.end_date.isoformat(),
                "event_type": payload.event_type.value,
            }]
            error_message = "Errore creazione evento"

        try:
            response = self.supabase.table("events").insert(rows).execute()
        except APIError as e:
            logger.error(f"{error_message}: {e}")
            raise PersistenceFailure.from_api_error(error_message, e)

        if not response.data:
            raise PersistenceFailure(error_message)

        event_ids = [r["id"] for r in response.data]

        if len(rows) > 1 or payload.event_type == EventType.recurring:
            self._link_series(event_ids)

        if payload.selected_teams:
            self._insert_event_teams(event_ids, payload.selected_teams)

        logger.info(f"Eventi creati: {len(event_ids)} ({payload.title})")
        return event_ids

    def _link_series(self, event_ids: List[str]):
        """parent_event_id = primo id; se fallisce le righe restano scollegate"""
        parent_id = event_ids[0]
        try:
            self.supabase.table("events").update(
                {"parent_event_id": parent_id}
            ).in_("id", event_ids).execute()
        except APIError as e:
            logger.warning(f"Impostazione parent_event_id fallita: {e}")

    def _insert_event_teams(self, event_ids: List[str], team_ids: List[str]):
        rows = [
            {"event_id": event_id, "team_id": team_id}
            for event_id in event_ids
            for team_id in dict.fromkeys(team_ids)
        ]
        try:
            self.supabase.table("event_teams").insert(rows).execute()
        except APIError as e:
            logger.error(f"Errore creazione event_teams: {e}")

    # =============================================
    # Modifica / eliminazione
    # =============================================

    async def update_event(self, payload: EventUpdate):
        data = {
            "title": payload.title,
            "description": payload.description or None,
            "start_date": payload.start_date.isoformat(),
            "end_date": payload.end_date.isoformat(),
            "location": payload.location or None,
            "gym_id": payload.gym_id or None,
            "activity_id": payload.activity_id or None,
            "event_kind": payload.event_kind or "training",
        }
        if payload.event_type is not None:
            data["event_type"] = payload.event_type.value
        if payload.requires_confirmation is not None:
            data["requires_confirmation"] = payload.requires_confirmation
            data["confirmation_deadline"] = (
                _iso(payload.confirmation_deadline) if payload.requires_confirmation else None
            )

        try:
            self.supabase.table("events").update(data).eq("id", payload.id).execute()
        except APIError as e:
            logger.error(f"Errore aggiornamento evento {payload.id}: {e}")
            raise PersistenceFailure.from_api_error("Errore aggiornamento evento", e)

        if payload.selected_teams is not None:
            try:
                self.supabase.table("event_teams").delete().eq("event_id", payload.id).execute()
            except APIError as e:
                logger.error(f"Errore rimozione squadre evento {payload.id}: {e}")
            else:
                if payload.selected_teams:
                    self._insert_event_teams([payload.id], payload.selected_teams)

        logger.info(f"Evento aggiornato: {payload.id}")

    async def series_ids(self, event_id: str) -> List[str]:
        """Tutte le occorrenze della serie a cui appartiene l'evento"""
        response = execute_read(
            self.supabase.table("events").select("id, parent_event_id").eq("id", event_id).limit(1),
            "Errore recupero evento"
        )
        if not response.data:
            raise NotFound("Evento non trovato")

        series_id = response.data[0].get("parent_event_id") or event_id
        rows = execute_read(
            self.supabase.table("events").select("id").or_(
                f"id.eq.{series_id},parent_event_id.eq.{series_id}"
            ),
            "Errore recupero serie"
        ).data or []
        return [r["id"] for r in rows]

    async def delete_event(self, event_id: str, scope: DeleteScope = DeleteScope.one) -> int:
        """
        Elimina un evento o l'intera serie, prima i collegamenti alle squadre.
        Ritorna il numero di eventi effettivamente eliminati; nessuno → 404.
        """
        if scope == DeleteScope.series:
            ids = await self.series_ids(event_id)
            error_message = "Errore eliminazione serie"
        else:
            ids = [event_id]
            error_message = "Errore eliminazione evento"

        try:
            self.supabase.table("event_teams").delete().in_("event_id", ids).execute()
            response = self.supabase.table("events").delete().in_("id", ids).execute()
        except APIError as e:
            logger.error(f"{error_message}: {e}")
            raise PersistenceFailure.from_api_error(error_message, e)

        deleted = len(response.data or [])
        if not deleted:
            raise NotFound("Evento non trovato")

        logger.info(f"Eventi eliminati ({scope.value}): {deleted}")
        return deleted

    # =============================================
    # Elenco
    # =============================================

    async def list_events(
        self,
        team_id: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Dict[str, Any]:
        """
        Eventi ordinati per inizio, con palestra, attività, squadre e autore.
        I dati collegati sono letti per tabella, solo per la pagina richiesta.
        """
        event_ids = None
        if team_id:
            links = execute_read(
                self.supabase.table("event_teams").select("event_id").eq("team_id", team_id),
                "Errore recupero eventi"
            ).data or []
            event_ids = list(dict.fromkeys(l["event_id"] for l in links))
            if not event_ids:
                return {"events": [], "total": 0, "limit": limit, "offset": offset}

        query = self.supabase.table("events").select("*", count="exact")
        if event_ids is not None:
            query = query.in_("id", event_ids)
        if date_from:
            query = query.gte("start_date", date_from)
        if date_to:
            query = query.lte("start_date", date_to)

        response = execute_read(
            query.order("start_date").range(offset, offset + limit - 1),
            "Errore recupero eventi"
        )

        events = response.data or []
        total = response.count if response.count is not None else len(events)
        if not events:
            return {"events": [], "total": total, "limit": limit, "offset": offset}

        page_ids = [e["id"] for e in events]
        gym_ids = list({e["gym_id"] for e in events if e.get("gym_id")})
        activity_ids = list({e["activity_id"] for e in events if e.get("activity_id")})
        creator_ids = list({e["created_by"] for e in events if e.get("created_by")})

        gyms = self._fetch_map("gyms", "id, name, address, city", gym_ids)
        activities = self._fetch_map("activities", "id, name", activity_ids)
        creators = self._fetch_map("profiles", "id, first_name, last_name", creator_ids)

        teams_by_event = defaultdict(list)
        try:
            links = self.supabase.table("event_teams").select(
                "event_id, team_id"
            ).in_("event_id", page_ids).execute().data or []
            teams = self._fetch_map("teams", "id, name", list({l["team_id"] for l in links}))
            for link in links:
                team = teams.get(link["team_id"])
                if team:
                    teams_by_event[link["event_id"]].append({"teams": team})
        except APIError as e:
            logger.error(f"Errore recupero squadre eventi: {e}")

        enriched = []
        for event in events:
            creator = creators.get(event.get("created_by"))
            enriched.append({
                **event,
                "gyms": gyms.get(event.get("gym_id")),
                "activities": activities.get(event.get("activity_id")),
                "event_teams": teams_by_event.get(event["id"], []),
                "created_by_profile": {
                    "first_name": creator.get("first_name"),
                    "last_name": creator.get("last_name")
                } if creator else None,
            })

        return {"events": enriched, "total": total, "limit": limit, "offset": offset}

    def _fetch_map(self, table: str, columns: str, ids: List[str]) -> Dict[str, Dict[str, Any]]:
        """id → riga; se la lettura fallisce si perdono solo i dati collegati"""
        if not ids:
            return {}
        try:
            rows = self.supabase.table(table).select(columns).in_("id", ids).execute().data or []
        except APIError as e:
            logger.error(f"Errore query {table}: {e}")
            return {}
        return {r["id"]: r for r in rows}

    # =============================================
    # Presenze
    # =============================================

    async def respond(
        self,
        event_id: str,
        profile_id: str,
        status: AttendanceStatus,
        note: Optional[str] = None
    ):
        """Risposta di un atleta all'evento; una sola per (evento, atleta)"""
        try:
            self.supabase.table("event_attendances").upsert({
                "event_id": event_id,
                "profile_id": profile_id,
                "status": status.value,
                "note": note or None,
                "responded_at": datetime.now(timezone.utc).isoformat(),
            }, on_conflict="event_id,profile_id").execute()
        except APIError as e:
            logger.error(f"Errore risposta evento {event_id} ({profile_id}): {e}")
            raise PersistenceFailure.from_api_error(e.message or "Errore salvataggio risposta", e)

        logger.info(f"Risposta evento {event_id}: {profile_id} → {status.value}")

    async def attendance_summary(self, event_id: str) -> Dict[str, Any]:
        """Risposte di tutti i membri delle squadre dell'evento"""
        links = execute_read(
            self.supabase.table("event_teams").select("team_id").eq("event_id", event_id),
            "Errore recupero squadre evento"
        ).data or []
        team_ids = [l["team_id"] for l in links]

        profile_ids = []
        if team_ids:
            members = execute_read(
                self.supabase.table("team_members").select("profile_id").in_("team_id", team_ids),
                "Errore recupero membri squadre"
            ).data or []
            profile_ids = list(dict.fromkeys(m["profile_id"] for m in members if m.get("profile_id")))

        profiles = self._fetch_map("profiles", "id, first_name, last_name, email", profile_ids)

        answers = execute_read(
            self.supabase.table("event_attendances").select(
                "profile_id, status, note, responded_at"
            ).eq("event_id", event_id),
            "Errore recupero presenze"
        ).data or []
        by_profile = {a["profile_id"]: a for a in answers}

        groups = {s.value: [] for s in AttendanceStatus}
        no_response = []
        for profile_id in profile_ids:
            profile = profiles.get(profile_id)
            if not profile:
                continue
            answer = by_profile.get(profile_id)
            if not answer:
                no_response.append(profile)
                continue
            status = answer.get("status")
            bucket = status if status in groups else AttendanceStatus.declined.value
            groups[bucket].append({**answer, "profiles": profile})

        return {
            **groups,
            "no_response": no_response,
            "counts": {
                **{k: len(v) for k, v in groups.items()},
                "no_response": len(no_response),
            },
        }
