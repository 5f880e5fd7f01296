"""
imani_session.auth

Authentication/authorization package.

Responsibilities:
- Credential verification (email+password, phone+PIN).
- Resolving the current actor (profile + tenant + PIN status).
- PIN hashing, input validation and role gating.
"""

# Package marker.
