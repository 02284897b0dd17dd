"""
Bulk athlete operations - Operazioni massive atleti

Assegnazione a una squadra (con eventuale piano di pagamento), rimozione,
numero di maglia e scadenza del certificato medico per un elenco di atleti.
Il dry run valida e conta, ma non scrive nulla.
"""

from datetime import date
from typing import Optional, List, Dict, Any

from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client

from sportclub.errors import NotFound, PersistenceFailure, ValidationFailure
from sportclub.fees.service import MembershipFeeService
from .models import BulkOperation, BulkOperationRequest


def _parse_jersey(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationFailure("Numero maglia non valido")


class AthleteBulkService:
    """Operazioni massive sugli atleti"""

    def __init__(self, client: Client, fee_service: Optional[MembershipFeeService] = None):
        self.supabase = client
        self.fee_service = fee_service or MembershipFeeService(client)

    async def run(self, request: BulkOperationRequest, today: Optional[date] = None) -> Dict[str, Any]:
        # lo stesso atleta ripetuto conta una volta
        athlete_ids = list(dict.fromkeys(request.athlete_ids))
        params = request.parameters or {}

        if request.operation == BulkOperation.assign_to_team.value:
            return await self.assign_to_team(athlete_ids, params, request.dry_run, today)
        if request.operation == BulkOperation.remove_from_team.value:
            return await self.remove_from_team(athlete_ids, params, request.dry_run)
        if request.operation == BulkOperation.update_jersey.value:
            return await self.update_jersey(athlete_ids, params, request.dry_run)
        if request.operation == BulkOperation.update_medical_expiry.value:
            return await self.update_medical_expiry(athlete_ids, params, request.dry_run)

        raise ValidationFailure("Operazione non supportata")

    # =============================================
    # Ricerche
    # =============================================

    def _get_team(self, team_id: str) -> Dict[str, Any]:
        try:
            response = self.supabase.table("teams").select("id, name").eq("id", team_id).limit(1).execute()
        except APIError as e:
            logger.error(f"Errore recupero squadra {team_id}: {e}")
            raise NotFound("Squadra non trovata")
        if not response.data:
            raise NotFound("Squadra non trovata")
        return response.data[0]

    def _get_fee(self, fee_id: str, team_id: str) -> Dict[str, Any]:
        try:
            response = self.supabase.table("membership_fees").select(
                "id, name, team_id"
            ).eq("id", fee_id).limit(1).execute()
        except APIError as e:
            logger.error(f"Errore recupero piano di pagamento {fee_id}: {e}")
            raise NotFound("Piano di pagamento non trovato")
        if not response.data:
            raise NotFound("Piano di pagamento non trovato")

        fee = response.data[0]
        if fee.get("team_id") != team_id:
            raise ValidationFailure("Il piano di pagamento non è associato alla squadra selezionata")
        return fee

    # =============================================
    # Operazioni
    # =============================================

    async def assign_to_team(
        self,
        athlete_ids: List[str],
        params: Dict[str, Any],
        dry_run: bool,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        team_id = params.get("teamId")
        if not team_id:
            raise ValidationFailure("ID squadra mancante")

        jersey_number = params.get("jerseyNumber")
        fee_id = params.get("membershipFeeId")

        team = self._get_team(team_id)
        fee = self._get_fee(fee_id, team_id) if fee_id else None
        jersey = _parse_jersey(jersey_number)
        fee_message = f' con piano di pagamento "{fee["name"]}"' if fee else ""

        if dry_run:
            return {
                "message": f'DRY RUN: {len(athlete_ids)} atleti verrebbero assegnati alla squadra "{team["name"]}"{fee_message}',
                "operation": BulkOperation.assign_to_team.value,
                "affected": len(athlete_ids),
                "parameters": {
                    "teamId": team_id,
                    "teamName": team["name"],
                    "jerseyNumber": jersey_number,
                    "membershipFeeId": fee_id,
                },
            }

        rows = [
            {"profile_id": athlete_id, "team_id": team_id, "jersey_number": jersey}
            for athlete_id in athlete_ids
        ]
        try:
            self.supabase.table("team_members").upsert(rows, on_conflict="profile_id,team_id").execute()
        except APIError as e:
            logger.error(f"Errore assegnazione atleti: {e}")
            raise PersistenceFailure.from_api_error(e.message or "Errore assegnazione atleti", e)

        installments = 0
        if fee:
            installments = await self.fee_service.assign_fee_to_athletes(fee["id"], athlete_ids, today)

        logger.info(f"Atleti assegnati alla squadra {team_id}: {len(athlete_ids)} (rate: {installments})")
        return {
            "message": f'{len(athlete_ids)} atleti assegnati alla squadra "{team["name"]}"{fee_message}',
            "operation": BulkOperation.assign_to_team.value,
            "affected": len(athlete_ids),
            "teamName": team["name"],
            "installments_created": installments,
        }

    async def remove_from_team(self, athlete_ids: List[str], params: Dict[str, Any], dry_run: bool) -> Dict[str, Any]:
        team_id = params.get("teamId")
        if not team_id:
            raise ValidationFailure("ID squadra mancante")

        team = self._get_team(team_id)

        if dry_run:
            return {
                "message": f'DRY RUN: {len(athlete_ids)} atleti verrebbero rimossi dalla squadra "{team["name"]}"',
                "operation": BulkOperation.remove_from_team.value,
                "affected": len(athlete_ids),
                "parameters": {"teamId": team_id, "teamName": team["name"]},
            }

        try:
            self.supabase.table("team_members").delete().in_(
                "profile_id", athlete_ids
            ).eq("team_id", team_id).execute()
        except APIError as e:
            logger.error(f"Errore rimozione atleti: {e}")
            raise PersistenceFailure.from_api_error(e.message or "Errore rimozione atleti", e)

        logger.info(f"Atleti rimossi dalla squadra {team_id}: {len(athlete_ids)}")
        return {
            "message": f'{len(athlete_ids)} atleti rimossi dalla squadra "{team["name"]}"',
            "operation": BulkOperation.remove_from_team.value,
            "affected": len(athlete_ids),
            "teamName": team["name"],
        }

    async def update_jersey(self, athlete_ids: List[str], params: Dict[str, Any], dry_run: bool) -> Dict[str, Any]:
        jersey_number = params.get("jerseyNumber")
        team_id = params.get("teamId")
        if not jersey_number or not team_id:
            raise ValidationFailure("Numero maglia o ID squadra mancanti")

        team = self._get_team(team_id)
        jersey = _parse_jersey(jersey_number)

        if dry_run:
            return {
                "message": (
                    f'DRY RUN: {len(athlete_ids)} atleti avrebbero il numero maglia aggiornato a '
                    f'"{jersey_number}" nella squadra "{team["name"]}"'
                ),
                "operation": BulkOperation.update_jersey.value,
                "affected": len(athlete_ids),
                "parameters": {"teamId": team_id, "teamName": team["name"], "jerseyNumber": jersey_number},
            }

        try:
            self.supabase.table("team_members").update(
                {"jersey_number": jersey}
            ).in_("profile_id", athlete_ids).eq("team_id", team_id).execute()
        except APIError as e:
            logger.error(f"Errore aggiornamento numero maglia: {e}")
            raise PersistenceFailure.from_api_error(e.message or "Errore aggiornamento numero maglia", e)

        return {
            "message": (
                f'{len(athlete_ids)} atleti hanno aggiornato il numero maglia a '
                f'"{jersey_number}" nella squadra "{team["name"]}"'
            ),
            "operation": BulkOperation.update_jersey.value,
            "affected": len(athlete_ids),
            "teamName": team["name"],
            "jerseyNumber": jersey_number,
        }

    async def update_medical_expiry(self, athlete_ids: List[str], params: Dict[str, Any], dry_run: bool) -> Dict[str, Any]:
        expiry = params.get("expiryDate")
        if not expiry:
            raise ValidationFailure("Data scadenza mancante")
        try:
            expiry_date = date.fromisoformat(str(expiry)[:10])
        except ValueError:
            raise ValidationFailure("Data scadenza non valida")

        if dry_run:
            return {
                "message": (
                    f"DRY RUN: {len(athlete_ids)} atleti avrebbero la data scadenza certificato "
                    f'medico aggiornata a "{expiry}"'
                ),
                "operation": BulkOperation.update_medical_expiry.value,
                "affected": len(athlete_ids),
                "parameters": {"expiryDate": expiry},
            }

        rows = [
            {"profile_id": athlete_id, "medical_certificate_expiry": expiry_date.isoformat()}
            for athlete_id in athlete_ids
        ]
        try:
            self.supabase.table("athlete_profiles").upsert(rows, on_conflict="profile_id").execute()
        except APIError as e:
            logger.error(f"Errore aggiornamento scadenza certificato: {e}")
            raise PersistenceFailure.from_api_error(e.message or "Errore aggiornamento scadenza certificato", e)

        return {
            "message": f'{len(athlete_ids)} atleti hanno aggiornato la scadenza certificato medico a "{expiry}"',
            "operation": BulkOperation.update_medical_expiry.value,
            "affected": len(athlete_ids),
            "expiryDate": expiry,
        }
