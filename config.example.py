# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TODO_APP_NAME": "Title shown in the task screen header (default: My Tasks).",
    "TODO_LOG_LEVEL": "File log level (default: INFO). The console only shows warnings.",
    "TODO_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    # Hosted backend (Supabase-compatible). Leave empty to use the local SQLite backend.
    "TODO_BACKEND_URL": "Backend project URL (SUPABASE_URL is accepted too).",
    "TODO_BACKEND_KEY": "Public anon API key (SUPABASE_ANON_KEY / SUPABASE_KEY accepted too).",
    "TODO_TASKS_TABLE": "Table holding task rows (default: tasks).",
    "TODO_HTTP_TIMEOUT_SECONDS": "Per-request timeout for the hosted backend (default: 15).",
    # Optional auto sign-in at startup
    "TODO_EMAIL": "Sign in with this email on startup.",
    "TODO_PASSWORD": "Password for TODO_EMAIL.",
    # Paths (gitignored)
    "TODO_DATA_DIR": "Local data directory for logs and the local backend (default: .local/todo).",
    "TODO_LOCAL_DB_PATH": "Local backend SQLite path (default: <data_dir>/todo.sqlite3).",
}
