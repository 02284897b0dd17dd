from .router import router as athletes_router, get_bulk_service
from .service import AthleteBulkService
from .models import BulkOperation, BulkOperationRequest

__all__ = [
    "athletes_router",
    "get_bulk_service",
    "AthleteBulkService",
    "BulkOperation",
    "BulkOperationRequest",
]
