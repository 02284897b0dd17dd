from .router import router as balance_router, get_balance_service
from .service import BalanceService, summarize

__all__ = ["balance_router", "get_balance_service", "BalanceService", "summarize"]
