"""
imani_session.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Durable key/value flags that survive process restarts (the demo-mode flag).
- Engine/session setup and repositories.
"""

# Package marker.
