"""
Server entry point: ``python -m content_registry.main`` or ``content-registry serve``.
"""

from typing import Optional

import uvicorn

from .api import app  # noqa: F401
from .config import get_settings


def run(
    host: Optional[str] = None,
    port: Optional[int] = None,
    reload: Optional[bool] = None,
) -> None:
    """Serve the API with uvicorn. Unset arguments fall back to settings."""
    settings = get_settings()
    reload = settings.debug if reload is None else reload
    uvicorn.run(
        "content_registry.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        # uvicorn ignores workers when reloading
        workers=1 if reload else settings.api_workers,
    )


if __name__ == "__main__":
    run()
