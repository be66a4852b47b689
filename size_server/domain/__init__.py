"""Domain layer (pure logic).

- Keep the size, bounds and boon rules here.
- Avoid I/O: no HTTP/FastAPI, no locks, no identity lookups.
- Prefer deterministic functions (time/random passed in as arguments).
"""
