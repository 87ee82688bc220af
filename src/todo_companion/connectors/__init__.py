"""User-facing connectors (terminal)."""
