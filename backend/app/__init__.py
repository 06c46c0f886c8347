"""SchoolHub Application Package — multi-tenant school management API.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
