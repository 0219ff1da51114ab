"""HTTP routers."""

from .contents import router as contents_router
from .publications import router as publications_router

__all__ = ["contents_router", "publications_router"]
