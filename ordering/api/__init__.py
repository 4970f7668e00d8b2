# ordering/api/__init__.py
from fastapi import FastAPI
from ordering.api.routers import carts, orders
from ordering.api.routers.health import router as health_router


def create_app() -> FastAPI:
    app = FastAPI(title="Cart & Order Service", version="1.0.0")
    app.include_router(health_router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    return app
