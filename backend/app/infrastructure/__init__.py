"""Infrastructure Layer — database sessions, password/token security, logging.

Invariants:
    - Driver errors are mapped to core.errors types before they reach routes
    - Nothing here knows about individual resources
"""
