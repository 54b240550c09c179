"""
rolesync.api.__main__

Entrypoint: `python -m rolesync.api` (or the `rolesync` console script).

Responsibilities:
- Load settings, create the app (which starts the Discord gateway) and run uvicorn.
"""

from __future__ import annotations

import uvicorn

from rolesync.api.app import create_app
from rolesync.settings import get_settings


def main() -> None:
    settings = get_settings()
    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()
