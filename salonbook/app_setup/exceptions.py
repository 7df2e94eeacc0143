"""
Gestionnaires d'exceptions.
- 401/403 (HTTPException): redirection 303 vers la connexion pour les pages (Accept: text/html hors /api/*).
- Erreurs de checkout avec redirect_to: redirection 303 dès que le client accepte text/html.
- JSON {"detail", "code", ...} pour les clients API.
"""
import logging
import urllib.parse

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.status import HTTP_303_SEE_OTHER

from salonbook.config import LOGIN_PATH
from salonbook.errors import CheckoutError

logger = logging.getLogger(__name__)


def _accepts_html(request: Request) -> bool:
    return "text/html" in (request.headers.get("accept") or "").lower()


def _wants_html(request: Request) -> bool:
    return _accepts_html(request) and not request.url.path.startswith("/api/")


def _redirect(path: str, message: str) -> RedirectResponse:
    msg = urllib.parse.quote_plus(message)
    sep = "&" if "?" in path else "?"
    return RedirectResponse(url=f"{path}{sep}error={msg}", status_code=HTTP_303_SEE_OTHER)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def html_redirect_on_auth_errors(request: Request, exc: HTTPException):
        if exc.status_code in (401, 403) and _wants_html(request):
            detail = str(getattr(exc, "detail", "")) or (
                "Veuillez vous connecter" if exc.status_code == 401 else "Accès interdit"
            )
            return _redirect(LOGIN_PATH, detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))

    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        if exc.status_code >= 500:
            logger.error("checkout error path=%s code=%s", request.url.path, exc.code)
        if exc.redirect_to and _accepts_html(request):
            return RedirectResponse(url=exc.redirect_to, status_code=HTTP_303_SEE_OTHER)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
