"""
imani_session.api.__main__

`python -m imani_session.api` (or the `imani-session` script): serve the session API.
"""

from __future__ import annotations

import uvicorn

from imani_session.api.app import create_app
from imani_session.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        # One worker: client session stores are process-local state.
        workers=1,
        access_log=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
