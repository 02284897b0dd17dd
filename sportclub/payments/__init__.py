from .router import router as payments_router, get_payment_service
from .service import PaymentService, enrich_payments

__all__ = ["payments_router", "get_payment_service", "PaymentService", "enrich_payments"]
