import os
from supabase import create_client, Client
from typing import Optional


def get_supabase_client(access_token: Optional[str] = None) -> Client:
    """Get Supabase client instance with optional user authentication"""
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")

    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")

    client = create_client(SUPABASE_URL, SUPABASE_ANON_KEY)

    # Verification tables are protected by RLS, so requests run as the caller
    if access_token:
        client.postgrest.auth(access_token)

    return client

