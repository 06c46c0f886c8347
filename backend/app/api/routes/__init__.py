"""Route Modules — one file per resource/concern.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Every data route depends on require_module (or get_current_user) and
      filters through the caller's school scope
    - Pure rules live in core/, shared workflows in services/

Design Decisions:
    - Explicit registration in main.py over auto-discovery
"""
