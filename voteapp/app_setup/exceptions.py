"""
Gestionnaires d’exceptions.
- AppError (voteapp.errors): JSON {"detail", "code", ...} avec le statut porté par la classe.
- RequestValidationError: 400 (corps ou paramètres mal formés), même forme de réponse.
- HTTPException: JSON FastAPI standard {"detail"} (401/403/404/429...).
- Toute autre exception: 500 sans détail interne, trace dans les logs.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from voteapp.errors import AppError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("app error path=%s code=%s detail=%s", request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"detail": "Requête invalide", "code": "ValidationError", "errors": errors},
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled error path=%s", request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Erreur interne", "code": "internal_error"})
