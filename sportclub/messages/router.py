"""
Message API Router - API messaggi
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from supabase import Client

from database.supabase_client import get_admin_client
from sportclub.auth import UserContext, require_admin
from sportclub.errors import ValidationFailure
from .models import MessageCreate, MessageUpdate
from .service import MessageService

router = APIRouter(prefix="/admin/messages", tags=["Messages"])


def get_message_service(client: Client = Depends(get_admin_client)) -> MessageService:
    return MessageService(client)


@router.post("")
async def create_message(
    payload: MessageCreate,
    user: UserContext = Depends(require_admin),
    service: MessageService = Depends(get_message_service)
):
    created = await service.create_message(payload, created_by=user.user_id)
    return {
        "success": True,
        "message_id": created["message_id"],
        "recipients": created["recipients"],
        "message": "Messaggio creato con successo"
    }


@router.get("")
async def list_messages(
    user: UserContext = Depends(require_admin),
    service: MessageService = Depends(get_message_service)
):
    return {"messages": await service.list_messages()}


@router.put("")
async def update_message(
    payload: MessageUpdate,
    user: UserContext = Depends(require_admin),
    service: MessageService = Depends(get_message_service)
):
    if not payload.id:
        raise ValidationFailure("ID messaggio richiesto")

    await service.update_message(payload, updated_by=user.user_id)
    return {"success": True, "message": "Messaggio aggiornato con successo"}


@router.delete("")
async def delete_message(
    id: Optional[str] = Query(None, description="ID messaggio"),
    user: UserContext = Depends(require_admin),
    service: MessageService = Depends(get_message_service)
):
    if not id:
        raise ValidationFailure("ID messaggio richiesto")

    await service.delete_message(id)
    return {"success": True, "message": "Messaggio eliminato con successo"}
