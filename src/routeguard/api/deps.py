"""
routeguard.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Encapsulate app.state access patterns (dispatcher).
"""

from __future__ import annotations

from fastapi import Request

from routeguard.dispatch.dispatcher import Dispatcher


def dispatcher_from_app(request: Request) -> Dispatcher:
    # The dispatcher is created in `routeguard.api.app.create_app`.
    return request.app.state.dispatcher  # type: ignore[attr-defined]
