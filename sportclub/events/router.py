"""
Event API Router - API eventi
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from supabase import Client

from database.supabase_client import get_admin_client
from sportclub.auth import UserContext, require_admin
from sportclub.config import app_config
from sportclub.errors import ValidationFailure
from .models import EventCreate, EventUpdate, EventType, DeleteScope
from .service import EventService

router = APIRouter(prefix="/admin/events", tags=["Events"])


def get_event_service(client: Client = Depends(get_admin_client)) -> EventService:
    return EventService(client)


@router.post("")
async def create_event(
    payload: EventCreate,
    user: UserContext = Depends(require_admin),
    service: EventService = Depends(get_event_service)
):
    """
    Crea un evento

    Gli eventi ricorrenti diventano una riga per ogni occorrenza.
    """
    event_ids = await service.create_event(payload, created_by=user.user_id)

    if payload.event_type == EventType.recurring:
        message = f"Creati {len(event_ids)} eventi ricorrenti"
    else:
        message = "Evento creato con successo"

    return {"success": True, "event_ids": event_ids, "message": message}


@router.get("")
async def list_events(
    team_id: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    user: UserContext = Depends(require_admin),
    service: EventService = Depends(get_event_service)
):
    limit = min(limit or app_config.default_page_limit, app_config.max_page_limit)
    return await service.list_events(
        team_id=team_id,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset
    )


@router.put("")
async def update_event(
    payload: EventUpdate,
    user: UserContext = Depends(require_admin),
    service: EventService = Depends(get_event_service)
):
    await service.update_event(payload)
    return {"success": True, "message": "Evento aggiornato con successo"}


@router.delete("")
async def delete_event(
    id: Optional[str] = Query(None, description="ID evento"),
    scope: DeleteScope = Query(DeleteScope.one),
    user: UserContext = Depends(require_admin),
    service: EventService = Depends(get_event_service)
):
    """scope=series elimina tutte le occorrenze della serie"""
    if not id:
        raise ValidationFailure("ID evento richiesto")

    deleted = await service.delete_event(id, scope)

    if scope == DeleteScope.series:
        message = f"Serie eliminata ({deleted} eventi)"
    else:
        message = "Evento eliminato con successo"
    return {"success": True, "message": message, "deleted": deleted}


@router.get("/attendance")
async def event_attendance(
    event_id: Optional[str] = Query(None),
    user: UserContext = Depends(require_admin),
    service: EventService = Depends(get_event_service)
):
    """Riepilogo risposte dei membri delle squadre dell'evento"""
    if not event_id:
        raise ValidationFailure("ID evento richiesto")
    return await service.attendance_summary(event_id)
