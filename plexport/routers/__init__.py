from plexport.routers.auth import router as auth_router
from plexport.routers.media import router as media_router

__all__ = ["auth_router", "media_router"]
