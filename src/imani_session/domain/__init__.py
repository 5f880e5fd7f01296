"""
imani_session.domain

Domain package.

Responsibilities:
- Data model shared by every layer (actors, tenants, credentials, communications).
- Error taxonomy and the session state snapshot.
"""

# Package marker.
