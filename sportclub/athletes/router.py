"""
Athlete bulk operations API Router - API operazioni massive atleti
"""

from fastapi import APIRouter, Depends
from supabase import Client

from database.supabase_client import get_admin_client
from sportclub.auth import UserContext, require_admin
from sportclub.errors import ValidationFailure
from .models import BulkOperationRequest
from .service import AthleteBulkService

router = APIRouter(prefix="/admin/athletes", tags=["Athletes"])


def get_bulk_service(client: Client = Depends(get_admin_client)) -> AthleteBulkService:
    return AthleteBulkService(client)


@router.post("/bulk")
async def bulk_operation(
    body: BulkOperationRequest,
    user: UserContext = Depends(require_admin),
    service: AthleteBulkService = Depends(get_bulk_service)
):
    """
    Operazione massiva su un elenco di atleti

    Con dryRun=true la risposta riporta lo stesso conteggio `affected`
    e non viene scritto nulla.
    """
    if not body.operation or not body.athlete_ids:
        raise ValidationFailure("Parametri mancanti o non validi")
    return await service.run(body)
