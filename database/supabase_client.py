"""
Supabase database clients - Client database Supabase
"""
from typing import Optional
from supabase import create_client, Client

from sportclub.config import supabase_config


# singleton
_supabase_client: Optional[Client] = None
_admin_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Client con chiave anon (singleton).
    Usato solo per risolvere la sessione dal bearer token.
    """
    global _supabase_client
    if _supabase_client is None:
        if not supabase_config.supabase_url or not supabase_config.supabase_key:
            raise ValueError("Impostare le variabili d'ambiente SUPABASE_URL e SUPABASE_KEY")
        _supabase_client = create_client(
            supabase_config.supabase_url,
            supabase_config.supabase_key
        )
    return _supabase_client


def get_admin_client() -> Client:
    """
    Client con chiave service-role (singleton).
    Ignora la row-level security: ogni route che lo usa ha un controllo di ruolo.
    """
    global _admin_client
    if _admin_client is None:
        if not supabase_config.supabase_url or not supabase_config.supabase_service_key:
            raise ValueError("Impostare le variabili d'ambiente SUPABASE_URL e SUPABASE_SERVICE_KEY")
        _admin_client = create_client(
            supabase_config.supabase_url,
            supabase_config.supabase_service_key
        )
    return _admin_client
