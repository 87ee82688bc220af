"""
Backend adapters implementing the AuthBackend and TaskBackend ports.

- rest_client.py: hosted Supabase-compatible REST/auth API over httpx
- local_backend.py: SQLite stand-in used for demos and tests
"""
