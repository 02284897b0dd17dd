"""
Bulk athlete operation models - Operazioni massive atleti
"""

from typing import Any, Dict, List
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class BulkOperation(str, Enum):
    assign_to_team = "assign_to_team"
    remove_from_team = "remove_from_team"
    update_jersey = "update_jersey"
    update_medical_expiry = "update_medical_expiry"


class BulkOperationRequest(BaseModel):
    """
    Corpo di POST /admin/athletes/bulk

    parametri per operazione:
    - assign_to_team: teamId, jerseyNumber?, membershipFeeId?
    - remove_from_team: teamId
    - update_jersey: teamId, jerseyNumber
    - update_medical_expiry: expiryDate
    """
    model_config = ConfigDict(populate_by_name=True)

    operation: str
    athlete_ids: List[str] = Field(..., alias="athleteIds")
    parameters: Dict[str, Any] = Field(default_factory=dict)
    dry_run: bool = Field(default=False, alias="dryRun")
