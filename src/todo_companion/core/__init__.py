"""Core: ports, errors, session provider and snapshot plumbing."""
