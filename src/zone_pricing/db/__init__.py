"""Database and cache clients."""

from .redis import close_redis_client, get_redis_client
from .supabase import get_supabase_client, reset_supabase_client

__all__ = ["get_supabase_client", "reset_supabase_client", "get_redis_client", "close_redis_client"]
