"""
Registre central des routers (API v1 panier/checkout, health).
"""
from fastapi import FastAPI

from salonbook.cart.views import router as cart_router
from salonbook.checkout.views import router as checkout_router
from salonbook.health.router import router as health_router


def register_routers(app: FastAPI) -> None:
    app.include_router(cart_router)
    app.include_router(checkout_router)
    app.include_router(health_router)
