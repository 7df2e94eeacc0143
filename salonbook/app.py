# module salonbook.app
from fastapi import FastAPI

from salonbook.app_setup.middlewares import (
    register_basic_middlewares,
    register_security_middleware,
    register_no_cache_middleware,
)
from salonbook.app_setup.exceptions import register_exception_handlers
from salonbook.app_setup.routers import register_routers
from salonbook.app_setup.lifespan import lifespan as app_lifespan


def create_app() -> FastAPI:
    """
    Crée et configure l'instance FastAPI.
    Ordre:
      1) register_basic_middlewares: CORS, TrustedHost, ProxyHeaders.
      2) register_security_middleware: en-têtes de sécurité.
      3) register_no_cache_middleware: pas de cache sur panier/checkout.
      4) register_exception_handlers: 401/403 et CheckoutError.
      5) register_routers: cart, checkout, health.
    """
    app = FastAPI(title="Salonbook API", lifespan=app_lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app


# App globale
app = create_app()
