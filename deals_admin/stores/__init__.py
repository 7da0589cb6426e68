"""Data stores for persistence and caching.

Stores handle:
- PostgreSQL: engine, sessions, ORM base
- Redis: review stats caching with TTL

No approval or risk logic in stores - that belongs in services.
"""
