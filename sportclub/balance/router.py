"""
Balance API Router - API bilancio
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from supabase import Client

from database.supabase_client import get_admin_client
from sportclub.auth import UserContext, require_admin
from .service import BalanceService

router = APIRouter(prefix="/admin", tags=["Balance"])


def get_balance_service(client: Client = Depends(get_admin_client)) -> BalanceService:
    return BalanceService(client)


@router.get("/balance")
async def get_balance(
    activity_id: Optional[str] = Query(None, alias="activityId"),
    team_id: Optional[str] = Query(None, alias="teamId"),
    gym_id: Optional[str] = Query(None, alias="gymId"),
    user_id: Optional[str] = Query(None, alias="userId", description="Allenatore"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    user: UserContext = Depends(require_admin),
    service: BalanceService = Depends(get_balance_service)
):
    """Effettivo / previsto / da incassare / totale della stagione attiva"""
    return await service.get_balance(
        activity_id=activity_id or None,
        team_id=team_id or None,
        gym_id=gym_id or None,
        coach_id=user_id or None,
        start_date=start_date or None,
        end_date=end_date or None
    )
