"""
Auth Module - Autenticazione

Le sessioni sono emesse da Supabase Auth; qui si risolve solo l'utente
e si verificano i ruoli.
"""
from .models import UserRole
from .dependencies import (
    UserContext,
    get_current_user,
    require_admin,
    require_roles,
)

__all__ = [
    "UserRole",
    "UserContext",
    "get_current_user",
    "require_admin",
    "require_roles",
]
