"""
routeguard.api

API package for the routeguard service.

Responsibilities:
- FastAPI app factory, health router and sample handler groups.
- API-layer dependency wiring.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: composition here, auth in `routeguard.auth`, routing rules
# in `routeguard.dispatch`.
