"""
Database client configuration.
Uses Supabase (PostgREST) as the CRM record store.
"""

import os
from supabase import create_client, Client, ClientOptions
from dotenv import load_dotenv

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")

# Upper bound (seconds) for every record store call made by the intake pipeline
PERSISTENCE_TIMEOUT_SECONDS = float(os.getenv("PERSISTENCE_TIMEOUT_SECONDS", "10"))

if not SUPABASE_URL:
    raise ValueError("SUPABASE_URL must be set in environment variables")

# Admin client for service-level operations (bypasses RLS). Intake writes
# records for whichever tenant the notification names, so it needs this key.
supabase_admin: Client = (
    create_client(
        SUPABASE_URL,
        SUPABASE_SERVICE_KEY,
        options=ClientOptions(postgrest_client_timeout=PERSISTENCE_TIMEOUT_SECONDS),
    )
    if SUPABASE_SERVICE_KEY
    else None
)
