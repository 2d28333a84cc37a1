from activation_server.api.routes.admin import router as admin_router
from activation_server.api.routes.client import router as client_router

__all__ = ["admin_router", "client_router"]
