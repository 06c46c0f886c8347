"""Core Layer — domain rules with no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Functions take plain values and return plain values (numbering adds a
      random suffix, nothing else touches the outside world)

Design Decisions:
    - Functional core separated from imperative shell: routes and services load
      rows, core decides, routes and services persist
"""
