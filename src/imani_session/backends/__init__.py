"""
imani_session.backends

Backend boundary.

Responsibilities:
- Define the single `Backend` interface the session layer depends on.
- Provide the hosted implementation (`SupabaseBackend`) and the local simulated
  implementation (`DemoBackend`).
"""

# Package marker; implementations are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Services select a backend once (via the fallback controller) and never branch on
# which implementation they are talking to.
