from .router import router as messages_router, get_message_service
from .service import MessageService

__all__ = ["messages_router", "get_message_service", "MessageService"]
