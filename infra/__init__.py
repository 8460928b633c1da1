"""
Infrastructure primitives.

This package contains low-level building blocks shared by the sync client
and the ingestor service (logging, error taxonomy, HTTP error mapping,
timeouts, endpoint paths).

No business logic.
No framework dependencies.
"""
