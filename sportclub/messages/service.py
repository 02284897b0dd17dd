"""
Message Service - Servizio messaggi

Messaggi indirizzati a squadre e/o singoli utenti, con i metadati degli
allegati. Il contenuto dei file resta nello storage.
"""

from collections import defaultdict
from typing import Optional, List, Dict, Any, Set

from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client

from sportclub.errors import PersistenceFailure, execute_read
from .models import AttachmentIn, MessageCreate, MessageUpdate


class MessageService:
    """Servizio messaggi"""

    def __init__(self, client: Client):
        self.supabase = client

    # =============================================
    # Scritture accessorie (non bloccanti)
    # =============================================

    def _insert_attachments(self, message_id: str, attachments: List[AttachmentIn], created_by: str):
        if not attachments:
            return
        rows = [
            {**a.model_dump(), "message_id": message_id, "created_by": created_by}
            for a in attachments
        ]
        try:
            self.supabase.table("message_attachments").insert(rows).execute()
        except APIError as e:
            logger.error(f"Errore inserimento allegati (messaggio {message_id}): {e}")

    def _insert_recipients(self, message_id: str, team_ids: List[str], profile_ids: List[str]):
        team_rows = [
            {"message_id": message_id, "team_id": team_id, "is_read": False}
            for team_id in dict.fromkeys(team_ids)
        ]
        user_rows = [
            {"message_id": message_id, "profile_id": profile_id, "is_read": False}
            for profile_id in dict.fromkeys(profile_ids)
        ]
        for label, rows in (("squadre", team_rows), ("utenti", user_rows)):
            if not rows:
                continue
            try:
                self.supabase.table("message_recipients").insert(rows).execute()
            except APIError as e:
                logger.error(f"Errore assegnazione {label} messaggio {message_id}: {e}")

    def resolve_recipients(self, team_ids: List[str], profile_ids: List[str], sender_id: str) -> Dict[str, List[str]]:
        """
        Profili raggiunti da un messaggio, raggruppati per ruolo.
        Include membri e allenatori delle squadre; esclude il mittente.
        """
        ids: Set[str] = {p for p in profile_ids if p and p != sender_id}
        if team_ids:
            members = execute_read(
                self.supabase.table("team_members").select("profile_id").in_("team_id", team_ids),
                "Errore recupero membri squadre"
            ).data or []
            ids.update(m["profile_id"] for m in members if m.get("profile_id") and m["profile_id"] != sender_id)

            coaches = execute_read(
                self.supabase.table("team_coaches").select("coach_id").in_("team_id", team_ids),
                "Errore recupero allenatori squadre"
            ).data or []
            ids.update(c["coach_id"] for c in coaches if c.get("coach_id") and c["coach_id"] != sender_id)

        by_role: Dict[str, List[str]] = {"coach": [], "athlete": [], "admin": []}
        if not ids:
            return by_role

        profiles = execute_read(
            self.supabase.table("profiles").select("id, role").in_("id", sorted(ids)),
            "Errore recupero profili destinatari"
        ).data or []
        for p in profiles:
            role = p.get("role")
            by_role[role if role in ("coach", "athlete") else "admin"].append(p["id"])
        return by_role

    # =============================================
    # CRUD
    # =============================================

    async def create_message(self, payload: MessageCreate, created_by: str) -> Dict[str, Any]:
        """
        Crea il messaggio con allegati e destinatari.

        Returns:
            {"message_id": ..., "recipients": {ruolo: numero profili}}
            recipients è None se la risoluzione dei destinatari fallisce
        """
        try:
            response = self.supabase.table("messages").insert({
                "subject": payload.subject,
                "content": payload.content,
                "attachment_url": payload.attachment_url or None,
                "created_by": created_by,
            }).execute()
        except APIError as e:
            logger.error(f"Errore creazione messaggio: {e}")
            raise PersistenceFailure.from_api_error("Errore creazione messaggio", e)

        if not response.data:
            raise PersistenceFailure("Errore creazione messaggio")

        message_id = response.data[0]["id"]
        self._insert_attachments(message_id, payload.attachments or [], created_by)
        self._insert_recipients(message_id, payload.selected_teams, payload.selected_users)

        recipients: Optional[Dict[str, int]] = None
        try:
            by_role = self.resolve_recipients(payload.selected_teams, payload.selected_users, created_by)
            recipients = {role: len(ids) for role, ids in by_role.items()}
        except PersistenceFailure:
            # messaggio già salvato, manca solo il conteggio
            pass

        logger.info(f"Messaggio {message_id} creato, destinatari: {recipients}")
        return {"message_id": message_id, "recipients": recipients}

    async def update_message(self, payload: MessageUpdate, updated_by: str):
        """Aggiorna il testo, allinea gli allegati per file_path e sostituisce i destinatari"""
        message_id = payload.id
        try:
            self.supabase.table("messages").update({
                "subject": payload.subject,
                "content": payload.content,
                "attachment_url": payload.attachment_url or None,
            }).eq("id", message_id).execute()
        except APIError as e:
            logger.error(f"Errore aggiornamento messaggio {message_id}: {e}")
            raise PersistenceFailure.from_api_error("Errore aggiornamento messaggio", e)

        if payload.attachments is not None:
            self._sync_attachments(message_id, payload.attachments, updated_by)

        try:
            self.supabase.table("message_recipients").delete().eq("message_id", message_id).execute()
        except APIError as e:
            logger.error(f"Errore rimozione destinatari messaggio {message_id}: {e}")
        self._insert_recipients(message_id, payload.selected_teams, payload.selected_users)

        logger.info(f"Messaggio aggiornato: {message_id}")

    def _sync_attachments(self, message_id: str, attachments: List[AttachmentIn], created_by: str):
        try:
            existing = self.supabase.table("message_attachments").select(
                "id, file_path"
            ).eq("message_id", message_id).execute().data or []
        except APIError as e:
            logger.error(f"Errore lettura allegati messaggio {message_id}: {e}")
            return

        keep = {a.file_path for a in attachments}
        to_delete = [e["id"] for e in existing if e["file_path"] not in keep]
        if to_delete:
            try:
                self.supabase.table("message_attachments").delete().in_("id", to_delete).execute()
            except APIError as e:
                logger.error(f"Errore eliminazione allegati messaggio {message_id}: {e}")

        existing_paths = {e["file_path"] for e in existing}
        self._insert_attachments(
            message_id,
            [a for a in attachments if a.file_path not in existing_paths],
            created_by
        )

    async def delete_message(self, message_id: str):
        try:
            self.supabase.table("message_recipients").delete().eq("message_id", message_id).execute()
            self.supabase.table("message_attachments").delete().eq("message_id", message_id).execute()
        except APIError as e:
            logger.error(f"Errore rimozione dati collegati al messaggio {message_id}: {e}")

        try:
            self.supabase.table("messages").delete().eq("id", message_id).execute()
        except APIError as e:
            logger.error(f"Errore eliminazione messaggio {message_id}: {e}")
            raise PersistenceFailure.from_api_error("Errore eliminazione messaggio", e)

        logger.info(f"Messaggio eliminato: {message_id}")

    async def list_messages(self) -> List[Dict[str, Any]]:
        """Messaggi dal più recente, con autore, destinatari e allegati"""
        messages = execute_read(
            self.supabase.table("messages").select("*").order("created_at", desc=True),
            "Errore recupero messaggi"
        ).data or []

        if not messages:
            return []

        message_ids = [m["id"] for m in messages]
        recipients = execute_read(
            self.supabase.table("message_recipients").select(
                "id, message_id, is_read, read_at, team_id, profile_id"
            ).in_("message_id", message_ids),
            "Errore recupero destinatari"
        ).data or []
        attachments = execute_read(
            self.supabase.table("message_attachments").select(
                "id, message_id, file_path, file_name, mime_type, file_size"
            ).in_("message_id", message_ids),
            "Errore recupero allegati"
        ).data or []

        team_ids = list({r["team_id"] for r in recipients if r.get("team_id")})
        profile_ids = list(
            {r["profile_id"] for r in recipients if r.get("profile_id")}
            | {m["created_by"] for m in messages if m.get("created_by")}
        )
        teams = self._by_id("teams", "id, name", team_ids)
        profiles = self._by_id("profiles", "id, first_name, last_name, email", profile_ids)

        recipients_by_message = defaultdict(list)
        for r in recipients:
            item = {"id": r["id"], "is_read": r.get("is_read"), "read_at": r.get("read_at")}
            if r.get("team_id") and r["team_id"] in teams:
                item["teams"] = teams[r["team_id"]]
            if r.get("profile_id") and r["profile_id"] in profiles:
                item["profiles"] = profiles[r["profile_id"]]
            recipients_by_message[r["message_id"]].append(item)

        attachments_by_message = defaultdict(list)
        for a in attachments:
            attachments_by_message[a["message_id"]].append(
                {k: v for k, v in a.items() if k != "message_id"}
            )

        result = []
        for m in messages:
            item = dict(m)
            creator = profiles.get(m.get("created_by"))
            if creator:
                item["created_by_profile"] = {
                    "first_name": creator.get("first_name"),
                    "last_name": creator.get("last_name"),
                }
            if m["id"] in recipients_by_message:
                item["message_recipients"] = recipients_by_message[m["id"]]
            if m["id"] in attachments_by_message:
                item["attachments"] = attachments_by_message[m["id"]]
            result.append(item)
        return result

    def _by_id(self, table: str, columns: str, ids: List[str]) -> Dict[str, Dict[str, Any]]:
        if not ids:
            return {}
        rows = execute_read(
            self.supabase.table(table).select(columns).in_("id", ids),
            f"Errore recupero {table}"
        ).data or []
        return {r["id"]: r for r in rows}
