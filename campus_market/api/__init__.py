# campus_market/api/__init__.py
from fastapi import FastAPI

from campus_market.api.routers import carts, health, orders, payments, seller


def create_app() -> FastAPI:
    app = FastAPI(
        title="Campus Marketplace - Checkout & Orders",
        version="1.0.0",
    )

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(seller.router)
    app.include_router(payments.router)

    return app
