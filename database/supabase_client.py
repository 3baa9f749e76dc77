from typing import Optional

from supabase import create_client, Client

from config.settings import SUPABASE_URL, SUPABASE_KEY

_client: Optional[Client] = None


def get_supabase() -> Client:
    """
    Return the shared Supabase client, creating it on first use.

    Tests replace ``_client`` with an in-memory stand-in before any
    request is served.
    """
    global _client
    if _client is None:
        if not SUPABASE_URL or not SUPABASE_KEY:
            raise RuntimeError(
                "Missing SUPABASE_URL or SUPABASE_SERVICE_KEY. "
                "Please set them before starting the application."
            )
        _client = create_client(SUPABASE_URL, SUPABASE_KEY)
    return _client
