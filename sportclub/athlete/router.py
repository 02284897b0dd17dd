"""
Athlete portal API Router - Area atleta
"""

from fastapi import APIRouter, Depends
from supabase import Client

from database.supabase_client import get_admin_client
from sportclub.auth import UserContext, UserRole, require_roles
from sportclub.events.models import AttendanceResponse
from sportclub.events.service import EventService
from sportclub.fees.service import MembershipFeeService

router = APIRouter(prefix="/athlete", tags=["Athlete"])

require_athlete = require_roles([UserRole.athlete])


@router.get("/fees")
async def my_fees(
    user: UserContext = Depends(require_athlete),
    client: Client = Depends(get_admin_client)
):
    """Rate dell'atleta, dalla scadenza più vecchia"""
    service = MembershipFeeService(client)
    return {"installments": await service.athlete_installments(user.user_id)}


@router.post("/events/attendance")
async def respond_to_event(
    body: AttendanceResponse,
    user: UserContext = Depends(require_athlete),
    client: Client = Depends(get_admin_client)
):
    """Conferma, forse o rifiuto; una nuova risposta sostituisce la precedente"""
    await EventService(client).respond(body.event_id, user.user_id, body.status, body.note)
    return {"success": True}
