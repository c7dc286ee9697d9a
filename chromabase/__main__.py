"""Run the API with uvicorn: ``python -m chromabase``."""

from __future__ import annotations

from typing import Any

import uvicorn

from chromabase.config import Settings


def server_config(settings: Settings, app: Any = "chromabase.main:app") -> uvicorn.Config:
    """uvicorn config for one process serving ``app``.

    Live streams only end when their task is cancelled, so shutdown waits at
    most ``shutdown_grace_s`` for open connections before cancelling them and
    running the lifespan teardown.
    """
    # Registry and subscriber set live in-process: one worker only.
    return uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        workers=1,
        timeout_graceful_shutdown=settings.shutdown_grace_s,
    )


def main() -> None:
    uvicorn.Server(server_config(Settings())).run()


if __name__ == "__main__":
    main()
