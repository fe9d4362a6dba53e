# cartshare/api/__init__.py
from fastapi import FastAPI

from cartshare.api.routers import admin, health, notifications, shared_carts


def create_app() -> FastAPI:
    app = FastAPI(
        title="Shared Cart Service",
        version="1.0.0",
    )

    app.include_router(health.router)
    app.include_router(shared_carts.router)
    app.include_router(notifications.router)
    app.include_router(admin.router)

    return app
