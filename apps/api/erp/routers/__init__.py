"""API routers."""

from erp.routers.auth import router as auth_router
from erp.routers.claims import router as claims_router
from erp.routers.leads import router as leads_router
from erp.routers.users import router as users_router
from erp.routers.websocket import router as websocket_router

__all__ = [
    "auth_router",
    "claims_router",
    "leads_router",
    "users_router",
    "websocket_router",
]
