"""
routeguard.api.routers

Plain FastAPI routers (health probes).
"""
