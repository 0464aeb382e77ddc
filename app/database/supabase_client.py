from supabase import create_client, Client
from app.config.settings import settings


class SupabaseClient:
    _service_client: Client = None

    @classmethod
    def get_service_client(cls) -> Client:
        """Shared client with the service_role key; bypasses RLS and can call the auth admin API.

        Falls back to the anon key when no service key is configured (local development).
        """
        if cls._service_client is None:
            key = settings.supabase_service_role_key or settings.supabase_key
            cls._service_client = create_client(settings.supabase_url, key)
        return cls._service_client

    @classmethod
    def new_anon_client(cls) -> Client:
        """Fresh anon client. Password sign-in stores a session on the client, so never share it."""
        return create_client(settings.supabase_url, settings.supabase_key)

    @classmethod
    def reset_client(cls):
        cls._service_client = None


def get_supabase() -> Client:
    """Store client injected into every service through Depends."""
    return SupabaseClient.get_service_client()


def get_anon_supabase() -> Client:
    return SupabaseClient.new_anon_client()
