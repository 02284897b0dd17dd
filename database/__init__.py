from .supabase_client import get_supabase_client, get_admin_client

__all__ = ["get_supabase_client", "get_admin_client"]
