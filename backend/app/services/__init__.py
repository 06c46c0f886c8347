"""Services Layer — multi-step workflows that touch the database.

Invariants:
    - Services stage changes on the caller's session; the route commits
    - Tenant checks happen before any write is staged

Design Decisions:
    - Only workflows shared by several routes or too long for a route body live
      here (querying helpers, audit, CSV import, wallets, marketplace orders)
"""
