import logging
from supabase import create_client, Client
from fastapi import HTTPException
from planforge.config import settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Process-wide Supabase clients, created on first use."""
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            if not settings.supabase_configured:
                raise HTTPException(status_code=503, detail="Supabase is not configured")
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """service_role client for work running outside a request (image worker).
        Falls back to the anon client when no service key is set."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or cls.get_client()

    @classmethod
    def ping(cls) -> bool:
        """True when a one-row read from projects succeeds"""
        try:
            cls.get_client().table("projects").select("id").limit(1).execute()
            return True
        except Exception as e:
            logger.warning(f"Supabase readiness check failed: {e}")
            return False

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()
