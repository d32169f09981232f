"""
routeguard.api.__main__

Entrypoint for running the service via `python -m routeguard.api`.

Responsibilities:
- Load settings.
- Create the app with the sample handler group.
- Start uvicorn with structlog-compatible logging config.
"""

from __future__ import annotations

import uvicorn

from routeguard.api.app import create_app
from routeguard.api.handlers.greetings import Greetings
from routeguard.settings import get_settings


def main() -> None:
    settings = get_settings()
    app = create_app(settings=settings, handler_groups=[Greetings()])

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()
