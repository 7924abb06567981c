"""Run the API with uvicorn: ``python -m wellspace`` or the ``wellspace`` script."""

import uvicorn

from wellspace.config import get_settings


def run() -> None:
    """Serve ``wellspace.main:app`` with the host, port and worker settings."""
    settings = get_settings()
    # Auto-reload is a development convenience and cannot run multiple workers
    reload = settings.api_reload and settings.is_development
    uvicorn.run(
        "wellspace.main:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=1 if reload else settings.api_workers,
        reload=reload,
        log_config=None,
    )


if __name__ == "__main__":
    run()
