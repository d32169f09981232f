"""
routeguard.observability

Logging and request-context helpers.

Responsibilities:
- structlog configuration.
- HTTP middleware that binds request metadata into log context.
"""

# Package marker.
