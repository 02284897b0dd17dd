"""
Membership Fees Module - Quote associative

- piani di pagamento e rate predefinite
- generazione delle rate per atleta
- derivazione stato, ricalcolo periodico, registrazione pagamenti
"""

from .router import router as fees_router, get_fee_service
from .service import MembershipFeeService
from .models import InstallmentStatus, FeeAction
from .status import derive_status, compute_total_amount

__all__ = [
    "fees_router",
    "get_fee_service",
    "MembershipFeeService",
    "InstallmentStatus",
    "FeeAction",
    "derive_status",
    "compute_total_amount",
]
