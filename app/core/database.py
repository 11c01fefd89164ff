"""
Database Configuration

Supabase client for REST API access (already pooled via PostgREST).

Tables used by this service:
- challenges: roster (participants array), date boundaries, flags
- users: profile rows for roster members
- weight_logs: one row per measurement, weight stored in kilograms

The client is created on first use so that importing the app (tests, Celery
worker boot) does not require Supabase credentials.
"""

from typing import Optional

from supabase import create_client, Client
from app.core.config import settings


_supabase: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Get Supabase client instance.

    This uses the REST API which is already connection-pooled via PostgREST.
    """
    global _supabase

    if _supabase is None:
        _supabase = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)

    return _supabase
