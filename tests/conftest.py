"""
Test configuration — sets required env vars before any imports.
"""

import os

# Set dummy env vars so Settings() doesn't fail during test collection.
# These are never used for real calls — the record store is mocked.
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
