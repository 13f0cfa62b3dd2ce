import fastapi

from .downloads import downloads_router
from .proxy import proxy_router
from .uploads import uploads_router

routers: list[fastapi.APIRouter] = [
    downloads_router,
    proxy_router,
    uploads_router,
]

__all__ = ['routers']
