import logging

from fastapi import FastAPI

from activation_server.api.errors import AdminApiError, admin_error_handler, store_unavailable_handler
from activation_server.api.routes import admin_router, client_router
from activation_server.config import get_settings
from activation_server.store import StoreUnavailable

settings = get_settings()

logging.basicConfig(level=settings.log_level)

app = FastAPI(title=settings.app_name)
app.add_exception_handler(AdminApiError, admin_error_handler)
app.add_exception_handler(StoreUnavailable, store_unavailable_handler)

app.include_router(client_router)
app.include_router(admin_router)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
