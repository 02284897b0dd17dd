"""
Auth models - Ruoli utente
"""
from enum import Enum


class UserRole(str, Enum):
    """Ruolo salvato in user_metadata di Supabase"""
    admin = "admin"       # segreteria / amministrazione
    coach = "coach"       # allenatore
    athlete = "athlete"   # atleta
