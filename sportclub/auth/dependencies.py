"""
Session and role dependencies - Sessione e ruoli

Ogni rotta protetta dipende da una delle guardie qui sotto invece di
ripetere da sola i passi "recupera utente, verifica ruolo".
"""

from typing import Optional, List
from fastapi import Depends, HTTPException, status, Request
from loguru import logger
from supabase import Client

from database.supabase_client import get_supabase_client
from .models import UserRole


class UserContext:
    """Utente autenticato"""

    def __init__(
        self,
        user_id: str,
        role: Optional[str],
        email: Optional[str] = None
    ):
        self.user_id = user_id
        self.role = role
        self.email = email

    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value


def _extract_bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


async def get_current_user(
    request: Request,
    supabase: Client = Depends(get_supabase_client)
) -> UserContext:
    """
    Risolve l'utente dal token di accesso Supabase.

    - token mancante o non valido → 401
    - il ruolo viene da user_metadata.role
    """
    token = _extract_bearer_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )

    try:
        user_response = supabase.auth.get_user(token)
    except Exception as e:
        logger.warning(f"Verifica sessione fallita: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )

    user = getattr(user_response, "user", None) if user_response else None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )

    metadata = getattr(user, "user_metadata", None) or {}
    return UserContext(
        user_id=user.id,
        role=metadata.get("role"),
        email=getattr(user, "email", None)
    )


def require_admin(user: UserContext = Depends(get_current_user)) -> UserContext:
    """Solo amministratori"""
    if not user.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden"
        )
    return user


def require_roles(allowed_roles: List[UserRole]):
    """Uno qualsiasi dei ruoli indicati"""
    allowed = {r.value for r in allowed_roles}

    def _check(user: UserContext = Depends(get_current_user)) -> UserContext:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden"
            )
        return user
    return _check
