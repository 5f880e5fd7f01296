"""
imani_session.services

Service-layer package.

Responsibilities:
- Own the session state and its mutation discipline (loading flag, mutual exclusion).
- Decide when the real backend is swapped for the demo backend.
- Orchestrate multi-step workflows (company registration) across the backend.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services should be pure Python and easily testable with fake backends.
